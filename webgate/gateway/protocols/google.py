"""
Google generative dialect plus the native Gemini endpoints.

- ``POST /v1beta/models/{model}``: the segment may carry ``:action``
- ``POST /gemini``: stateless
- ``POST /gemini-chat`` and ``POST /translate``: one continuing session each
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from webgate.gateway.models import resolve_language_model
from webgate.gateway.schemas import GeminiRequest, GoogleGenerateRequest, parse_or_raise
from webgate.gateway.sessions import SessionManager
from webgate.server.context import ApiContext

from .shared import get_context, read_json_body

logger = logging.getLogger("webgate.gateway.google")

router = APIRouter(tags=["google"])

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


def _safety_ratings() -> list[dict[str, str]]:
    return [{"category": c, "probability": "NEGLIGIBLE"} for c in SAFETY_CATEGORIES]


@router.post("/v1beta/models/{model}")
async def generate_content(
    model: str, request: Request, context: ApiContext = Depends(get_context)
) -> dict[str, Any]:
    body: GoogleGenerateRequest = parse_or_raise(
        GoogleGenerateRequest, await read_json_body(request)
    )
    model_id = model.split(":", 1)[0] or context.default_model
    prompt = "".join(part.text for content in body.contents for part in content.parts)

    result = await resolve_language_model(context, model_id).generate(prompt)
    return {
        "candidates": [
            {
                "content": {"parts": [{"text": result.text}], "role": "model"},
                "finishReason": "STOP",
                "index": 0,
                "safetyRatings": _safety_ratings(),
            }
        ],
        "promptFeedback": {"safetyRatings": _safety_ratings()},
    }


@router.post("/gemini")
async def gemini(request: Request, context: ApiContext = Depends(get_context)) -> dict[str, str]:
    body: GeminiRequest = parse_or_raise(GeminiRequest, await read_json_body(request))
    model_id = body.model or context.default_model
    result = await resolve_language_model(context, model_id).generate(body.message)
    return {"response": result.text}


async def _session_reply(request: Request, context: ApiContext, slot: SessionManager) -> dict[str, str]:
    body: GeminiRequest = parse_or_raise(GeminiRequest, await read_json_body(request))
    model_id = body.model or context.default_model
    text = await slot.get_response(model_id, body.message, body.files or [])
    return {"response": text}


@router.post("/gemini-chat")
async def gemini_chat(
    request: Request, context: ApiContext = Depends(get_context)
) -> dict[str, str]:
    return await _session_reply(request, context, context.sessions.chat)


@router.post("/translate")
async def translate(request: Request, context: ApiContext = Depends(get_context)) -> dict[str, str]:
    return await _session_reply(request, context, context.sessions.translate)
