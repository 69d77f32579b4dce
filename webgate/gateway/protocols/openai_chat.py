"""
OpenAI chat completions dialect: ``POST /v1/chat/completions``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from webgate.gateway.models import LanguageModel, resolve_language_model
from webgate.gateway.schemas import ChatCompletionRequest, parse_or_raise
from webgate.gateway.streaming import Emit, SSE_DONE, create_sse_response, sse_data
from webgate.server.context import ApiContext

from .shared import get_context, normalize_prompt, read_json_body, unix_now

logger = logging.getLogger("webgate.gateway.openai")

router = APIRouter(tags=["openai"])


def _chunk(chunk_id: str, created: int, model_id: str, delta: dict[str, Any], finish: str | None):
    return {
        "id": chunk_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model_id,
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish}],
    }


def _stream_completion(model: LanguageModel, prompt: str, model_id: str) -> Response:
    created = unix_now()
    chunk_id = f"chatcmpl-{created}"

    async def writer(emit: Emit) -> None:
        async for delta in model.stream(prompt):
            await emit(sse_data(_chunk(chunk_id, created, model_id, {"content": delta}, None)))
        await emit(sse_data(_chunk(chunk_id, created, model_id, {}, "stop")))
        await emit(SSE_DONE)

    return create_sse_response(writer)


@router.post("/v1/chat/completions")
async def chat_completions(request: Request, context: ApiContext = Depends(get_context)) -> Response:
    body: ChatCompletionRequest = parse_or_raise(
        ChatCompletionRequest, await read_json_body(request)
    )

    model_id = body.model or context.default_model
    prompt = normalize_prompt((m.role, m.content) for m in body.messages)
    model = resolve_language_model(context, model_id)
    logger.debug(f"chat.completions model={model_id} stream={bool(body.stream)}")

    if body.stream:
        model.ensure_available()
        return _stream_completion(model, prompt, model_id)

    result = await model.generate(prompt)
    created = unix_now()
    return JSONResponse(
        {
            "id": f"chatcmpl-{created}",
            "object": "chat.completion",
            "created": created,
            "model": model_id,
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": result.text},
                    "finish_reason": "stop",
                }
            ],
            "usage": {
                "prompt_tokens": result.usage.prompt_tokens,
                "completion_tokens": result.usage.completion_tokens,
                "total_tokens": result.usage.total_tokens,
            },
        }
    )
