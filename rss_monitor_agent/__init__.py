"""Poll RSS feeds and email new posts with optional AI reply suggestions."""

__version__ = "1.0.0"
