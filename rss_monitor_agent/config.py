"""Configuration management."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
EMAIL_PROVIDERS = ("smtp", "mailersend")

DEFAULT_PROMPT = (
    "You are a helpful assistant analyzing RSS feed posts. Decide if the post is "
    "worth replying to and generate a thoughtful response. Respond in JSON format: "
    '{"should_reply": true/false, "reply": "your reply", "reason": "reason if skipping"}.'
)


class ConfigError(ValueError):
    """Raised when the environment does not describe a runnable configuration."""


@dataclass
class SMTPConfig:
    """SMTP transport configuration."""
    host: str
    port: int
    username: str
    password: str


@dataclass
class EmailConfig:
    """Notification email configuration."""
    from_email: str
    to_email: str
    from_name: str = "RSS Reply Monitor"
    provider: str = "smtp"                  # "smtp" or "mailersend"
    mailersend_api_token: str = ""
    smtp: Optional[SMTPConfig] = None


@dataclass
class MonitoringConfig:
    """Feed polling configuration."""
    sources: List[str]                      # subreddit names or feed URLs
    check_interval_minutes: int = 5
    post_age_minutes: int = 5
    max_workers: int = 8


@dataclass
class LLMConfig:
    """LLM API configuration. An empty api_key disables annotation."""
    api_key: str = ""
    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None
    prompt: str = DEFAULT_PROMPT
    max_tokens: int = 600
    temperature: float = 0.2
    timeout: float = 30.0

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class AppConfig:
    """Complete application configuration."""
    email: EmailConfig
    monitoring: MonitoringConfig
    llm: LLMConfig = field(default_factory=LLMConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    app_env: str = "development"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def is_valid_email(address: str) -> bool:
    """Basic email-shape check."""
    return bool(address) and bool(EMAIL_PATTERN.match(address))


def _parse_list_env(key: str, default: List[str]) -> List[str]:
    """Parse comma-separated list from environment variable."""
    value = os.getenv(key, "")
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_int_env(key: str, default: int, errors: List[str]) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        errors.append(f"{key} must be an integer (got {raw!r})")
        return default


def load_prompt(path: Optional[str] = None) -> str:
    """
    Load the annotation system prompt from a file.

    Falls back to DEFAULT_PROMPT when the file is missing, empty or unreadable.
    """
    prompt_path = Path(path or os.getenv("OPENAI_PROMPT_FILE", "openai-prompt.txt"))
    try:
        if prompt_path.is_file():
            prompt = prompt_path.read_text(encoding="utf-8").strip()
            if prompt:
                return prompt
    except OSError as e:
        logger.warning(f"Could not read prompt file {prompt_path}: {e}")
    return DEFAULT_PROMPT


def load_config(env_file: Optional[str] = None) -> AppConfig:
    """
    Load configuration from environment variables (and a .env file if present).

    Raises:
        ConfigError: If required values are missing or invalid.
    """
    load_dotenv(env_file)

    errors: List[str] = []

    # Email
    from_email = os.getenv("FROM_EMAIL", "").strip()
    to_email = os.getenv("TO_EMAIL", "").strip()
    from_name = os.getenv("FROM_NAME", "RSS Reply Monitor")
    provider = os.getenv("EMAIL_PROVIDER", "smtp").strip().lower()

    if not from_email:
        errors.append("Missing required environment variable: FROM_EMAIL")
    elif not is_valid_email(from_email):
        errors.append(f"Invalid FROM_EMAIL: {from_email}")
    if not to_email:
        errors.append("Missing required environment variable: TO_EMAIL")
    elif not is_valid_email(to_email):
        errors.append(f"Invalid TO_EMAIL: {to_email}")

    mailersend_api_token = os.getenv("MAILERSEND_API_TOKEN", "").strip()
    smtp_config = None
    if provider == "mailersend":
        if not mailersend_api_token:
            errors.append("MAILERSEND_API_TOKEN is required when EMAIL_PROVIDER=mailersend")
    elif provider == "smtp":
        smtp_host = os.getenv("SMTP_HOST", "").strip()
        if not smtp_host:
            errors.append("SMTP_HOST is required when EMAIL_PROVIDER=smtp")
        smtp_config = SMTPConfig(
            host=smtp_host,
            port=_parse_int_env("SMTP_PORT", 587, errors),
            username=os.getenv("SMTP_USERNAME", "").strip() or from_email,
            password=os.getenv("SMTP_PASSWORD", ""),
        )
    else:
        errors.append(f"EMAIL_PROVIDER must be one of {', '.join(EMAIL_PROVIDERS)} (got {provider!r})")

    # Monitoring
    sources = _parse_list_env("SOURCES", []) or _parse_list_env("SUBREDDITS", [])
    if not sources:
        errors.append("SOURCES must contain at least one feed source")

    check_interval = _parse_int_env("CHECK_INTERVAL_MINUTES", 5, errors)
    if check_interval < 1:
        errors.append("CHECK_INTERVAL_MINUTES must be at least 1")
    post_age = _parse_int_env("POST_AGE_MINUTES", 5, errors)
    if post_age < 1:
        errors.append("POST_AGE_MINUTES must be at least 1")
    max_workers = _parse_int_env("MAX_WORKERS", 8, errors)
    if max_workers < 1:
        errors.append("MAX_WORKERS must be at least 1")

    # Logging
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)} (got {log_level!r})")

    if errors:
        raise ConfigError("Invalid configuration:\n  - " + "\n  - ".join(errors))

    # LLM (optional - annotation disabled without an API key)
    llm = LLMConfig(
        api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        base_url=os.getenv("OPENAI_BASE_URL") or None,
        prompt=load_prompt(),
    )

    return AppConfig(
        email=EmailConfig(
            from_email=from_email,
            to_email=to_email,
            from_name=from_name,
            provider=provider,
            mailersend_api_token=mailersend_api_token,
            smtp=smtp_config,
        ),
        monitoring=MonitoringConfig(
            sources=sources,
            check_interval_minutes=check_interval,
            post_age_minutes=post_age,
            max_workers=max_workers,
        ),
        llm=llm,
        logging=LoggingConfig(level=log_level),
        app_env=os.getenv("APP_ENV", "development").strip().lower(),
    )
