"""OpenAI LLM client implementations."""

import logging

import openai
import requests
from openai import OpenAI

from .config import LLMConfig
from .llm_client import LLMClient, LLMError

logger = logging.getLogger(__name__)


def _messages(system_prompt: str, user_message: str) -> list:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_message},
    ]


class OpenAILLMClient(LLMClient):
    """OpenAI API client for LLM completion."""

    def __init__(self, config: LLMConfig):
        """
        Initialize the OpenAI client.

        Args:
            config: LLM configuration.
        """
        self.config = config
        self.client = OpenAI(
            api_key=config.api_key,
            base_url=config.base_url if config.base_url else None,
            timeout=config.timeout,
        )

    def complete(self, system_prompt: str, user_message: str, max_tokens: int, temperature: float) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.config.model,
                messages=_messages(system_prompt, user_message),
                response_format={"type": "json_object"},
                max_completion_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APIStatusError as e:
            raise LLMError(f"OpenAI API error: {e}", status_code=e.status_code) from e
        except openai.OpenAIError as e:
            raise LLMError(f"OpenAI API error: {e}") from e

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()


class GenericHTTPLLMClient(LLMClient):
    """Generic HTTP client for OpenAI-compatible LLM APIs."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self.base_url = (config.base_url or "https://api.openai.com/v1").rstrip("/")
        self.api_key = config.api_key
        self.model = config.model

    def complete(self, system_prompt: str, user_message: str, max_tokens: int, temperature: float) -> str:
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": _messages(system_prompt, user_message),
            "response_format": {"type": "json_object"},
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.config.timeout)
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"]["content"] or ""
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise LLMError(f"HTTP LLM API error: {e}", status_code=status) from e
        except (requests.RequestException, ValueError, KeyError, IndexError) as e:
            raise LLMError(f"HTTP LLM API error: {e}") from e

        return content.strip()


def create_llm_client(config: LLMConfig) -> LLMClient:
    """Use the OpenAI SDK unless a custom OpenAI-compatible endpoint is configured."""
    if config.base_url:
        logger.info(f"Using OpenAI-compatible endpoint at {config.base_url}")
        return GenericHTTPLLMClient(config)
    return OpenAILLMClient(config)
