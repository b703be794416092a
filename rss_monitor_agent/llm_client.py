"""Abstract LLM client interface."""

from abc import ABC, abstractmethod


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    def complete(self, system_prompt: str, user_message: str, max_tokens: int, temperature: float) -> str:
        """
        Complete a chat exchange and return a JSON object as text.

        Args:
            system_prompt: Instructions sent as the system message.
            user_message: The content to analyze.
            max_tokens: Maximum number of tokens in the response.
            temperature: Sampling temperature (0.0-1.0).

        Returns:
            The LLM's response text (trimmed, may be empty).
        """
        pass


class LLMError(Exception):
    """Raised by LLM clients when a completion request fails."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
