"""Email notification module for sending batched item notifications."""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Sequence

import requests

from .config import AppConfig, EmailConfig
from .models import BatchEntry

logger = logging.getLogger(__name__)

MAILERSEND_URL = "https://api.mailersend.com/v1/email"
SEND_TIMEOUT = 30
FOOTER = "\n\n---\nRSS Reply Monitor"


def format_entry(index: int, entry: BatchEntry) -> str:
    item = entry.item
    text = f"{index}.\n{item.source}\n{item.title}\n{item.link}"
    if entry.skipped:
        text += f"\n\nAI Decision: SKIP\nReason: {entry.skip_reason}"
    elif entry.reply:
        text += f"\n\nAI Suggested Reply:\n{entry.reply}"
    return text


def format_email_body(entries: Sequence[BatchEntry]) -> str:
    """Render a batch as a plain-text email body."""
    count = len(entries)
    header = f"You have {count} new post{'s' if count != 1 else ''}:\n\n"
    body = "\n\n".join(format_entry(i, entry) for i, entry in enumerate(entries, start=1))
    return header + body + FOOTER


def build_subject(entries: Sequence[BatchEntry], development: bool = False) -> str:
    if len(entries) == 1:
        subject = f"New post from {entries[0].item.source}"
    else:
        subject = f"{len(entries)} new posts"
    if development:
        subject = f"[dev] {subject}"
    return subject


class Notifier(ABC):
    """Sends one notification per batch."""

    def __init__(self, email_config: EmailConfig, development: bool = False):
        self.email_config = email_config
        self.development = development

    def send(self, entries: Sequence[BatchEntry]) -> bool:
        """
        Send a notification for a batch of entries.

        Returns:
            True only if the provider accepted the message.
        """
        if not entries:
            logger.debug("No entries to send, skipping email")
            return False

        skipped = sum(1 for e in entries if e.skipped)
        if skipped:
            logger.info(f"{skipped} of {len(entries)} item(s) marked SKIP by AI; including them in the email")

        subject = build_subject(entries, self.development)
        body = format_email_body(entries)

        logger.info(f"Sending email notification for {len(entries)} item(s)...")
        try:
            self.deliver(subject, body)
        except requests.HTTPError as e:
            logger.error(f"Failed to send email: {e}")
            if e.response is not None and e.response.text:
                logger.error(f"Error details: {e.response.text}")
            return False
        except (requests.RequestException, smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            return False

        logger.info(f"Email sent successfully to {self.email_config.to_email}")
        logger.debug(f"Subject: {subject}")
        return True

    @abstractmethod
    def deliver(self, subject: str, body: str) -> None:
        """Hand the message to the transport; raise on failure."""


class SMTPNotifier(Notifier):
    """Sends through an SMTP server (STARTTLS on 587, SSL on 465)."""

    def deliver(self, subject: str, body: str) -> None:
        smtp = self.email_config.smtp
        if smtp is None:
            raise smtplib.SMTPException("SMTP is not configured")

        msg = MIMEMultipart()
        msg["From"] = formataddr((self.email_config.from_name, self.email_config.from_email))
        msg["To"] = self.email_config.to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        logger.debug(f"Connecting to SMTP server: {smtp.host}:{smtp.port}")
        if smtp.port == 465:
            server = smtplib.SMTP_SSL(smtp.host, smtp.port, timeout=SEND_TIMEOUT)
        else:
            server = smtplib.SMTP(smtp.host, smtp.port, timeout=SEND_TIMEOUT)

        try:
            if smtp.port != 465:
                server.starttls()
            if smtp.password:
                server.login(smtp.username, smtp.password)
            server.send_message(msg)
        finally:
            server.quit()


class MailerSendNotifier(Notifier):
    """Sends through the MailerSend email API."""

    def deliver(self, subject: str, body: str) -> None:
        payload = {
            "from": {"email": self.email_config.from_email, "name": self.email_config.from_name},
            "to": [{"email": self.email_config.to_email}],
            "subject": subject,
            "text": body,
        }
        headers = {
            "Authorization": f"Bearer {self.email_config.mailersend_api_token}",
            "Content-Type": "application/json",
        }
        response = requests.post(MAILERSEND_URL, json=payload, headers=headers, timeout=SEND_TIMEOUT)
        response.raise_for_status()


class DryRunNotifier(Notifier):
    """Logs the rendered message instead of sending it."""

    def deliver(self, subject: str, body: str) -> None:
        logger.info(f"[dry-run] Subject: {subject}\n{body}")


def create_notifier(config: AppConfig, dry_run: bool = False) -> Notifier:
    if dry_run:
        return DryRunNotifier(config.email, config.is_development)
    if config.email.provider == "mailersend":
        return MailerSendNotifier(config.email, config.is_development)
    return SMTPNotifier(config.email, config.is_development)
