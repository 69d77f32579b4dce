"""
OpenAI model listing: ``GET /v1/models`` and ``GET /v1/models/{model}``.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from webgate.gateway.models import list_supported_model_ids
from webgate.server.context import ApiContext

from .shared import OWNED_BY, get_context, unix_now

router = APIRouter(tags=["openai"])


@router.get("/v1/models")
async def list_models() -> dict[str, Any]:
    now = unix_now()
    return {
        "object": "list",
        "data": [
            {"id": model_id, "object": "model", "created": now, "owned_by": OWNED_BY}
            for model_id in list_supported_model_ids()
        ],
    }


@router.get("/v1/models/{model}")
async def get_model(model: str, context: ApiContext = Depends(get_context)) -> JSONResponse:
    if model not in list_supported_model_ids():
        return JSONResponse(
            {
                "error": {
                    "message": f"Model '{model}' not found.",
                    "type": "invalid_request_error",
                    "param": "model",
                    "code": "model_not_found",
                }
            },
            status_code=404,
        )

    return JSONResponse(
        {
            "id": model,
            "object": "model",
            "created": unix_now(),
            "owned_by": OWNED_BY,
            "root": context.default_model,
        }
    )
