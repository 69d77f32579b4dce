"""
Helpers shared by the protocol routers: body reading, prompt flattening and
access to the API context.
"""

from __future__ import annotations

import json
import time
from typing import Any, Iterable

from fastapi import Request

from webgate.core.exceptions import RequestValidationError
from webgate.server.context import ApiContext

OWNED_BY = "web-model-api-gateway"

_ROLE_LABELS = {
    "system": "System",
    "developer": "Developer",
    "user": "User",
    "assistant": "Assistant",
    "tool": "Tool",
}


def get_context(request: Request) -> ApiContext:
    return request.app.state.context


def unix_now() -> int:
    return int(time.time())


async def read_json_body(request: Request) -> Any:
    """Parse the request body; empty, malformed or falsy scalar bodies are rejected."""
    raw = await request.body()
    try:
        body = json.loads(raw) if raw.strip() else None
    except ValueError:
        body = None
    if body is None or (isinstance(body, (bool, int, float, str)) and not body):
        raise RequestValidationError("Invalid JSON body")
    return body


def _part_text(part: Any) -> str:
    if isinstance(part, dict):
        text = part.get("text")
    else:
        text = getattr(part, "text", None)
    return text if isinstance(text, str) else ""


def content_to_text(content: Any) -> str:
    """String content as-is; part lists become their non-empty texts joined by newlines."""
    if not content:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(t for t in (_part_text(p) for p in content) if t)
    return ""


def to_prompt_line(role: str, text: str) -> str:
    return f"{_ROLE_LABELS.get(role, 'User')}: {text}"


def normalize_prompt(messages: Iterable[tuple[str, Any]]) -> str:
    """Flatten ``(role, content)`` pairs into one labelled prompt."""
    return "\n\n".join(to_prompt_line(role, content_to_text(content)) for role, content in messages)


def collect_input_text(input_value: Any) -> str:
    """Flatten a responses-style ``input`` (string or list of strings/objects)."""
    if isinstance(input_value, str):
        return input_value.strip()
    if not isinstance(input_value, list):
        return ""

    texts: list[str] = []
    for item in input_value:
        if isinstance(item, str):
            texts.append(item)
            continue
        if not isinstance(item, dict):
            continue
        normalized = content_to_text(item.get("content"))
        if normalized:
            texts.append(normalized)

    return "\n\n".join(texts).strip()


__all__ = [
    "OWNED_BY",
    "get_context",
    "unix_now",
    "read_json_body",
    "content_to_text",
    "to_prompt_line",
    "normalize_prompt",
    "collect_input_text",
]
