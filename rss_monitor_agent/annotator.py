"""Reply suggestions for new feed items."""

import json
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import List, Optional, Sequence

from .config import LLMConfig
from .llm_client import LLMClient, LLMError
from .models import Annotation, BatchEntry
from .openai_client import create_llm_client

logger = logging.getLogger(__name__)


class Annotator(ABC):
    """Strategy that may attach an Annotation to each batch entry."""

    enabled = False

    @abstractmethod
    def annotate(self, entry: BatchEntry) -> Optional[Annotation]:
        """Return an annotation, or None to surface the entry without one."""

    def annotate_all(self, entries: Sequence[BatchEntry], max_workers: int = 8) -> List[BatchEntry]:
        """Annotate every entry concurrently; a failure on one entry leaves it unannotated."""
        if not entries:
            return []

        logger.info(f"Analyzing {len(entries)} item(s) with AI...")
        with ThreadPoolExecutor(max_workers=min(max_workers, len(entries))) as executor:
            futures = [executor.submit(self.annotate, entry) for entry in entries]

        annotated = []
        for entry, future in zip(entries, futures):
            try:
                annotation = future.result()
            except Exception as e:
                logger.error(f"Unexpected annotation error for item {entry.item.id}: {e}", exc_info=True)
                annotation = None
            annotated.append(replace(entry, annotation=annotation))

        skipped = sum(1 for e in annotated if e.skipped)
        logger.info(f"AI analysis: {len(annotated) - skipped} to reply to, {skipped} to skip")
        return annotated


class NullAnnotator(Annotator):
    """Used when no LLM credentials are configured."""

    def annotate(self, entry: BatchEntry) -> Optional[Annotation]:
        return None

    def annotate_all(self, entries: Sequence[BatchEntry], max_workers: int = 8) -> List[BatchEntry]:
        return list(entries)


def format_entry_for_prompt(entry: BatchEntry) -> str:
    item = entry.item
    message = f"Source: {item.source}\n\n"
    message += f"Post Title: {item.title}\n\n"

    content = entry.content or item.snippet
    if content and content.strip():
        message += f"Post Content:\n{content}\n\n"
    else:
        message += "Post Content: [No text content - may be link/image/video post]\n\n"

    message += f"Post Link: {item.link}"
    return message


def parse_annotation(response_text: str) -> Annotation:
    """
    Parse the model's JSON reply.

    Raises:
        ValueError: If the text is not a JSON object.
    """
    data = json.loads(response_text)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")

    should_reply = data.get("should_reply") is True
    reply = data.get("reply") or None
    reason = data.get("reason") or None
    return Annotation(
        should_surface=should_reply,
        text=reply if should_reply else None,
        reason=None if should_reply else (reason or "Not relevant"),
    )


class LLMAnnotator(Annotator):
    """Asks an LLM whether an item is worth replying to and for a draft reply."""

    enabled = True

    def __init__(self, client: LLMClient, config: LLMConfig):
        self.client = client
        self.config = config

    def annotate(self, entry: BatchEntry) -> Optional[Annotation]:
        item = entry.item
        user_message = format_entry_for_prompt(entry)

        logger.debug(
            f"LLM prompt for item {item.id}:\nSYSTEM: {self.config.prompt}\nUSER:\n{user_message}"
        )

        try:
            response_text = self.client.complete(
                self.config.prompt,
                user_message,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
        except LLMError as e:
            logger.error(f"Failed to generate AI reply for item {item.id}: {e}")
            if e.status_code == 429:
                logger.error("LLM rate limit exceeded")
            elif e.status_code == 401:
                logger.error("LLM API key invalid")
            return None

        if not response_text:
            logger.error(f"No response from LLM for item {item.id}")
            return None

        try:
            annotation = parse_annotation(response_text)
        except ValueError as e:
            logger.error(f"Failed to parse JSON response for item {item.id}: {e}")
            logger.debug(f"Raw response: {response_text}")
            return None

        logger.info(f"AI decision for item {item.id}: {'REPLY' if annotation.should_surface else 'SKIP'}")
        return annotation


def create_annotator(config: LLMConfig) -> Annotator:
    """Pick the annotator once at startup based on whether an API key is set."""
    if not config.enabled:
        logger.info("AI annotation disabled (no API key provided)")
        return NullAnnotator()

    logger.info(f"AI annotation enabled (model: {config.model})")
    return LLMAnnotator(create_llm_client(config), config)
