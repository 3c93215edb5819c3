"""LLMClient abstract base class.

Defines the interface every hosted-model client must implement. The
classifier and explainer depend only on this interface, never on a concrete
provider, so tests can substitute a stub that returns canned success, failure
or garbage responses.
"""

from abc import ABC, abstractmethod


class LLMEmptyResponseError(Exception):
    """Raised when the completion service returns no usable text content."""


class LLMClient(ABC):
    """Abstract base class for all LLM provider clients.

    Agents receive an LLMClient instance at construction time and call
    complete() to get a text response. Which model, temperature and timeout
    are used is decided by whoever constructs the client.

    To add a new provider, subclass LLMClient and implement complete().
    """

    @abstractmethod
    async def complete(self, system: str, user: str) -> str:
        """Send a prompt to the LLM and return the response as plain text.

        Args:
            system: The system prompt holding the agent's fixed instructions.
            user: The user-turn content, i.e. the incident data to analyze.

        Returns:
            The model's response as a plain, non-empty string.

        Raises:
            LLMEmptyResponseError: If the response carries no text content.
            Exception: Transport, timeout and API errors propagate as raised
                by the underlying SDK. Callers are expected to fall back.
        """
        ...
