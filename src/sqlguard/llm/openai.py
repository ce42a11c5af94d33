"""
OpenAI-compatible LLM
=====================

Generator backed by an OpenAI-compatible ``/chat/completions`` endpoint.
"""

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from sqlguard.exceptions import GenerationError
from sqlguard.llm.base import LLMInterface
from sqlguard.models import LLMResponse

logger = structlog.get_logger(__name__)


class _Message(BaseModel):
    role: str = "assistant"
    content: str


class _Choice(BaseModel):
    message: _Message


class _Usage(BaseModel):
    total_tokens: int = 0


class ChatCompletion(BaseModel):
    """The subset of the chat-completions response this client relies on."""

    model: str = ""
    choices: list[_Choice]
    usage: _Usage | None = None


class OpenAIChatLLM(LLMInterface):
    """Chat-completions client. One instance may be shared across requests."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
        max_tokens: int = 600,
        client: httpx.Client | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        stop: list[str] | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.1 if temperature is None else temperature,
            "max_tokens": self.max_tokens,
        }
        if stop:
            payload["stop"] = stop

        try:
            response = self.client.post("/chat/completions", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "LLM API error",
                status_code=e.response.status_code,
                response=e.response.text[:500],
            )
            raise GenerationError(f"LLM API error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error("LLM request error", error=str(e))
            raise GenerationError(f"LLM request failed: {e}") from e

        try:
            completion = ChatCompletion.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise GenerationError(f"Malformed LLM response: {e}") from e

        if not completion.choices:
            raise GenerationError("LLM response contained no choices")

        return LLMResponse(
            content=completion.choices[0].message.content,
            model=completion.model or self.model,
            tokens_used=completion.usage.total_tokens if completion.usage else 0,
        )

    def close(self) -> None:
        self.client.close()
