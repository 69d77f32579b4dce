"""
Model registry: maps public model ids to language model adapters.

Every id resolves to an adapter exposing ``generate(prompt)`` and
``stream(prompt)``. The web and hosted families share the provider-backed
adapter; the echo model answers without touching any provider.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, AsyncIterator, Callable

from webgate.core.config import WEB_GEMINI_MODELS

if TYPE_CHECKING:
    from webgate.server.context import ApiContext

logger = logging.getLogger("webgate.gateway.models")

WEB_GEMINI_MODEL_IDS: tuple[str, ...] = WEB_GEMINI_MODELS
OPENAI_WEB_MODEL_IDS: tuple[str, ...] = ("gpt-4o", "gpt-4.1", "gpt-4.1-mini")
ONETEST_MODEL_ID = "onetest-model"
ONETEST_OUTPUT_TEXT = "onetest"

STREAM_CHUNK_SIZE = 48


@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass
class GenerationResult:
    text: str
    usage: Usage = field(default_factory=Usage)
    finish_reason: str = "stop"


def chunk_text(text: str, size: int = STREAM_CHUNK_SIZE) -> list[str]:
    """Fixed-size slices in order; empty text gives one empty slice."""
    if not text:
        return [""]
    return [text[i : i + size] for i in range(0, len(text), size)]


class LanguageModel(ABC):
    """Adapter bound to one model id."""

    def __init__(self, model_id: str):
        self.model_id = model_id

    @abstractmethod
    async def generate(self, prompt: str) -> GenerationResult:
        ...

    @abstractmethod
    def stream(self, prompt: str) -> AsyncIterator[str]:
        """Yield text deltas."""
        ...

    def ensure_available(self) -> None:
        """Raise before a stream opens if the model cannot answer."""


class OneTestLanguageModel(LanguageModel):
    """Echo model for smoke tests: always answers ``onetest``."""

    def __init__(self) -> None:
        super().__init__(ONETEST_MODEL_ID)

    async def generate(self, prompt: str) -> GenerationResult:
        return GenerationResult(
            text=ONETEST_OUTPUT_TEXT, usage=Usage(prompt_tokens=0, completion_tokens=1)
        )

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        yield ONETEST_OUTPUT_TEXT


class ProviderLanguageModel(LanguageModel):
    """Delegates to the context's primary provider; streaming is simulated."""

    def __init__(self, context: "ApiContext", model_id: str):
        super().__init__(model_id)
        self.context = context

    def ensure_available(self) -> None:
        self.context.get_provider()

    async def generate(self, prompt: str) -> GenerationResult:
        output = await self.context.get_provider().generate_content(prompt, self.model_id)
        return GenerationResult(
            text=output.text,
            usage=Usage(prompt_tokens=0, completion_tokens=len(output.text)),
        )

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        upstream = asyncio.ensure_future(
            self.context.get_provider().generate_content(
                prompt, self.model_id, (), [None, None, None]
            )
        )
        # A disconnecting client cancels the consumer, never the upstream call.
        try:
            output = await asyncio.shield(upstream)
        except asyncio.CancelledError:
            upstream.add_done_callback(_log_detached_failure)
            raise
        for delta in chunk_text(output.text):
            yield delta


def _log_detached_failure(task: asyncio.Future) -> None:
    """Collect the outcome of an upstream call whose client went away."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning(f"Upstream call failed after client disconnect: {exc}")


ModelFactory = Callable[["ApiContext"], LanguageModel]


def _provider_factory(model_id: str) -> ModelFactory:
    return lambda context: ProviderLanguageModel(context, model_id)


MODEL_FACTORIES: dict[str, ModelFactory] = {
    ONETEST_MODEL_ID: lambda context: OneTestLanguageModel(),
    **{model_id: _provider_factory(model_id) for model_id in WEB_GEMINI_MODEL_IDS},
    **{model_id: _provider_factory(model_id) for model_id in OPENAI_WEB_MODEL_IDS},
}


def is_supported_model_id(model_id: str | None) -> bool:
    return bool(model_id) and model_id in MODEL_FACTORIES


def list_supported_model_ids() -> list[str]:
    return list(MODEL_FACTORIES)


def resolve_language_model(context: "ApiContext", model_id: str | None = None) -> LanguageModel:
    """
    Pick the adapter for ``model_id``.

    Unknown or missing ids fall back to the context default model, then to
    the first web Gemini model.
    """
    requested = model_id or context.default_model
    if is_supported_model_id(requested):
        return MODEL_FACTORIES[requested](context)

    logger.debug(f"Unknown model '{requested}', falling back")
    if is_supported_model_id(context.default_model):
        return MODEL_FACTORIES[context.default_model](context)
    return MODEL_FACTORIES[WEB_GEMINI_MODEL_IDS[0]](context)


__all__ = [
    "WEB_GEMINI_MODEL_IDS",
    "OPENAI_WEB_MODEL_IDS",
    "ONETEST_MODEL_ID",
    "ONETEST_OUTPUT_TEXT",
    "STREAM_CHUNK_SIZE",
    "Usage",
    "GenerationResult",
    "LanguageModel",
    "OneTestLanguageModel",
    "ProviderLanguageModel",
    "MODEL_FACTORIES",
    "chunk_text",
    "is_supported_model_id",
    "list_supported_model_ids",
    "resolve_language_model",
]
