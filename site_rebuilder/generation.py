# File: site_rebuilder/generation.py
"""site_rebuilder.generation: the LLM call behind the prompt pipeline."""

from __future__ import annotations

from typing import Optional, Protocol

from openai import AsyncOpenAI, OpenAIError

from site_rebuilder.errors import InvalidInputError, RemoteCallFailedError
from site_rebuilder.logger import logger

__all__ = ("DEFAULT_MODEL", "TextGenerator", "OpenAIGenerator")

DEFAULT_MODEL = "gpt-5"


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


class OpenAIGenerator:
    """Single-turn chat completion via the OpenAI API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        *,
        client: Optional[AsyncOpenAI] = None,
        max_retries: int = 2,
    ) -> None:
        if client is None and not api_key:
            raise InvalidInputError("Missing OpenAI API key: set OPENAI_API_KEY")
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key, max_retries=max_retries)

    async def generate(self, prompt: str) -> str:
        logger.info("Sending prompt to model %s (%d chars)", self.model, len(prompt))
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except OpenAIError as exc:
            logger.error("Generation call failed: %s", exc)
            raise RemoteCallFailedError(
                f"Generation call failed: {exc}",
                attempts=1,
                status=getattr(exc, "status_code", None),
            ) from exc
        if response.model and response.model != self.model:
            logger.info("Model %s answered for %s", response.model, self.model)
        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()
