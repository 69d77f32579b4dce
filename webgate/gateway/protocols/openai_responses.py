"""
OpenAI responses dialect: ``POST /v1/responses``.

``messages`` take priority over ``input`` when both are present.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from webgate.core.exceptions import RequestValidationError
from webgate.gateway.models import LanguageModel, resolve_language_model
from webgate.gateway.schemas import ResponsesRequest, parse_or_raise
from webgate.gateway.streaming import Emit, SSE_DONE, create_sse_response, sse_event
from webgate.server.context import ApiContext

from .shared import collect_input_text, get_context, normalize_prompt, read_json_body, unix_now

logger = logging.getLogger("webgate.gateway.openai")

router = APIRouter(tags=["openai"])


def _prompt_from(body: ResponsesRequest) -> str:
    if body.messages:
        return normalize_prompt((m.role or "user", m.content or "") for m in body.messages)
    return collect_input_text(body.input)


def _response_object(
    response_id: str, message_id: str, created: int, model_id: str, text: str
) -> dict[str, Any]:
    return {
        "id": response_id,
        "object": "response",
        "created_at": created,
        "status": "completed",
        "model": model_id,
        "output": [
            {
                "id": message_id,
                "type": "message",
                "role": "assistant",
                "content": [{"type": "output_text", "text": text}],
            }
        ],
        "output_text": text,
    }


def _stream_response(
    model: LanguageModel, prompt: str, model_id: str, response_id: str, message_id: str, now: int
) -> Response:
    async def writer(emit: Emit) -> None:
        await emit(
            sse_event(
                "response.created",
                {
                    "type": "response.created",
                    "response": {
                        "id": response_id,
                        "object": "response",
                        "created_at": now,
                        "status": "in_progress",
                        "model": model_id,
                    },
                },
            )
        )

        full_text = ""
        async for delta in model.stream(prompt):
            full_text += delta
            await emit(
                sse_event(
                    "response.output_text.delta",
                    {
                        "type": "response.output_text.delta",
                        "response_id": response_id,
                        "output_index": 0,
                        "content_index": 0,
                        "delta": delta,
                    },
                )
            )

        await emit(
            sse_event(
                "response.completed",
                {
                    "type": "response.completed",
                    "response": _response_object(
                        response_id, message_id, now, model_id, full_text
                    ),
                },
            )
        )
        await emit(SSE_DONE)

    return create_sse_response(writer)


@router.post("/v1/responses")
async def create_response(request: Request, context: ApiContext = Depends(get_context)) -> Response:
    body: ResponsesRequest = parse_or_raise(ResponsesRequest, await read_json_body(request))

    model_id = body.model or context.default_model
    prompt = _prompt_from(body)
    if not prompt:
        raise RequestValidationError("No valid prompt found. Provide input or messages.")

    model = resolve_language_model(context, model_id)
    now = unix_now()
    response_id = f"resp-{now}"
    message_id = f"msg-{now}"

    if body.stream:
        model.ensure_available()
        return _stream_response(model, prompt, model_id, response_id, message_id, now)

    result = await model.generate(prompt)
    return JSONResponse(_response_object(response_id, message_id, now, model_id, result.text))
