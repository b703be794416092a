"""Main entry point for the RSS reply monitor."""

import argparse
import logging
import sys
from typing import List, Optional

from .annotator import create_annotator
from .config import ConfigError, load_config
from .email_notifier import create_notifier
from .monitor import FeedMonitor
from .scheduler import MonitorScheduler
from .tracker import SeenItemTracker

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
NOISY_LOGGERS = ("apscheduler", "urllib3", "httpx", "openai")


def setup_logging(level: str) -> None:
    level_value = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level_value,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    if level_value > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Poll RSS feeds and email new posts with optional AI reply suggestions"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single feed check and exit instead of scheduling",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the notification instead of sending it",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
        help="Override LOG_LEVEL",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to a .env file (default: .env in the working directory)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level or "INFO")

    try:
        config = load_config(args.env_file)
    except ConfigError as e:
        logger.error(f"Fatal error during startup: {e}")
        return 1

    setup_logging(args.log_level or config.logging.level)

    monitoring = config.monitoring
    logger.info("=== RSS Reply Monitor Starting ===")
    logger.info(f"Monitoring sources: {', '.join(monitoring.sources)}")
    logger.info(f"Check interval: every {monitoring.check_interval_minutes} minute(s)")
    logger.info(f"Post age window: {monitoring.post_age_minutes} minute(s)")
    logger.info(f"Email notifications to: {config.email.to_email} via {config.email.provider}")

    annotator = create_annotator(config.llm)
    logger.info(f"AI annotation: {'on' if annotator.enabled else 'off'}")

    monitor = FeedMonitor(
        monitoring,
        notifier=create_notifier(config, dry_run=args.dry_run),
        tracker=SeenItemTracker(),
        annotator=annotator,
    )

    if args.once:
        summary = monitor.safe_run_cycle()
        if summary is None:
            return 1
        return 0 if summary.dispatched or summary.new == 0 else 1

    MonitorScheduler(monitor.safe_run_cycle, monitoring.check_interval_minutes).start()
    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
