"""Async OpenAI API wrapper — model listing, embeddings and chat completions."""

from __future__ import annotations

import hashlib
import logging
import struct
from typing import Any, Callable

from openai import AsyncOpenAI
from pydantic import BaseModel

logger = logging.getLogger(__name__)

TokensCallback = Callable[[int, int], None]
"""Called with (input_tokens, output_tokens) when a completion finishes."""


class Completion(BaseModel):
    """Text produced by a chat/reasoning model plus bookkeeping."""

    text: str
    finish_reason: str | None = None
    usage: dict[str, Any] = {}


def _usage_dict(usage: Any) -> dict[str, Any]:
    if usage is None:
        return {}
    if hasattr(usage, "model_dump"):
        return usage.model_dump()
    return {
        "prompt_tokens": getattr(usage, "prompt_tokens", 0),
        "completion_tokens": getattr(usage, "completion_tokens", 0),
        "total_tokens": getattr(usage, "total_tokens", 0),
    }


class OpenAIClient:
    """Thin async wrapper around the OpenAI SDK.

    Provides three methods:
    - ``list_models`` — ids of every model the API key can see
    - ``embed`` — one embedding vector for one input text
    - ``complete`` — single user message in, assistant text out
    """

    provider = "openai"

    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = api_key
        self._client: AsyncOpenAI | None = None

    def _sdk(self) -> AsyncOpenAI:
        # Created on first use so offline commands never need OPENAI_API_KEY.
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def list_models(self) -> list[str]:
        page = await self._sdk().models.list()
        ids = [m.id for m in page.data]
        logger.info("Fetched %d models from OpenAI", len(ids))
        return ids

    async def embed(self, *, model: str, text: str) -> list[float]:
        response = await self._sdk().embeddings.create(model=model, input=text)
        if not response.data:
            logger.warning("Embedding response from %s contained no data", model)
            return []
        vector = list(response.data[0].embedding)
        logger.debug("Embedding from %s: %d dimensions", model, len(vector))
        return vector

    async def complete(
        self,
        *,
        model: str,
        text: str,
        on_tokens: TokensCallback | None = None,
    ) -> Completion:
        response = await self._sdk().chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": text}],
        )
        usage = _usage_dict(getattr(response, "usage", None))
        if on_tokens and usage:
            on_tokens(usage.get("prompt_tokens", 0), usage.get("completion_tokens", 0))

        if not response.choices:
            logger.warning("Completion response from %s contained no choices", model)
            return Completion(text="", usage=usage)

        choice = response.choices[0]
        return Completion(
            text=choice.message.content or "",
            finish_reason=choice.finish_reason,
            usage=usage,
        )


# ---------------------------------------------------------------------------
# Dry-run mode — deterministic canned responses, zero API calls
# ---------------------------------------------------------------------------

_DRY_RUN_MODELS = [
    "gpt-4o",
    "gpt-4o-mini",
    "o3-mini",
    "text-embedding-3-small",
    "text-embedding-3-large",
    "whisper-1",
]

_DRY_RUN_DIMENSIONS = 16


def _pseudo_embedding(model: str, text: str, dimensions: int = _DRY_RUN_DIMENSIONS) -> list[float]:
    """Derive a stable vector in [-1, 1] from a SHA-256 of model + text."""
    values: list[float] = []
    counter = 0
    while len(values) < dimensions:
        digest = hashlib.sha256(f"{model}:{counter}:{text}".encode("utf-8")).digest()
        for (word,) in struct.iter_unpack(">I", digest):
            values.append(word / 0xFFFFFFFF * 2.0 - 1.0)
        counter += 1
    return values[:dimensions]


class DryRunClient:
    """Drop-in replacement for OpenAIClient that makes zero API calls."""

    provider = "openai"

    async def list_models(self) -> list[str]:
        return list(_DRY_RUN_MODELS)

    async def embed(self, *, model: str, text: str) -> list[float]:
        logger.info("[dry-run] Embedding %d chars with %s", len(text), model)
        return _pseudo_embedding(model, text)

    async def complete(
        self,
        *,
        model: str,
        text: str,
        on_tokens: TokensCallback | None = None,
    ) -> Completion:
        logger.info("[dry-run] Completion for %d chars with %s", len(text), model)
        words = len(text.split())
        usage = {"prompt_tokens": words, "completion_tokens": 0, "total_tokens": words}
        if on_tokens:
            on_tokens(words, 0)
        return Completion(
            text=f"[dry-run] {model} received: {text}",
            finish_reason="stop",
            usage=usage,
        )
