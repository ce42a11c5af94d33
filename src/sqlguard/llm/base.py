"""
Base LLM Interface
==================

Abstract interface for the text generator used by both orchestrators.
"""

from abc import ABC, abstractmethod

from sqlguard.models import LLMResponse


class LLMInterface(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        stop: list[str] | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """
        Generate a response from the LLM.

        Implementations never retry internally; failures are raised as
        ``GenerationError`` and retried by the caller.

        Args:
            prompt: The user prompt/question
            system_prompt: Optional system prompt for context
            stop: Sequences at which generation must stop
            temperature: Sampling temperature override

        Returns:
            LLMResponse with generated content
        """
        pass

    def close(self) -> None:
        """Release any held resources. No-op by default."""
