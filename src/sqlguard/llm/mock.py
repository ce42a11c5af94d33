"""
Mock LLM
========

Scripted LLM implementation for testing and offline demonstration.
"""

from sqlguard.llm.base import LLMInterface
from sqlguard.models import LLMResponse


class MockLLM(LLMInterface):
    """
    Mock LLM for demonstration and testing purposes.

    In production, replace with ``OpenAIChatLLM`` or another provider.
    """

    DEFAULT_RESPONSE = "SELECT * FROM unknown_table"

    def __init__(
        self,
        responses: dict[str, list[str | Exception]] | None = None,
        script: list[str | Exception] | None = None,
    ) -> None:
        """
        Initialize with canned responses.

        Args:
            responses: Dict mapping prompt substrings to a list of outputs.
                       Each output is returned in sequence (for testing
                       correction); the last one repeats.
            script: Outputs returned in call order when no key matches.
                    Exception instances are raised instead of returned.
        """
        self.responses = responses or {}
        self.script = script or []
        self.call_counts: dict[str, int] = {}
        self.script_position = 0
        self.calls: list[dict] = []

    def _next(self, outputs: list[str | Exception], index: int) -> LLMResponse:
        output = outputs[min(index, len(outputs) - 1)]
        if isinstance(output, Exception):
            raise output
        return LLMResponse(content=output, model="mock-llm-v1")

    def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        stop: list[str] | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """
        Generate a mock response.

        Matches the prompt against configured responses first, then falls
        back to the sequential script.
        """
        self.calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "stop": stop,
                "temperature": temperature,
            }
        )

        for key, outputs in self.responses.items():
            if key.lower() in prompt.lower():
                count = self.call_counts.get(key, 0)
                self.call_counts[key] = count + 1
                return self._next(outputs, count)

        if self.script:
            position = self.script_position
            self.script_position += 1
            return self._next(self.script, position)

        return LLMResponse(content=self.DEFAULT_RESPONSE, model="mock-llm-v1")

    def reset(self) -> None:
        """Reset call counts for fresh test runs."""
        self.call_counts = {}
        self.script_position = 0
        self.calls = []
