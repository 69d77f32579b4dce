"""
Server-Sent Events plumbing.

A producer task runs the route's writer and pushes frames into a bounded
queue; the response body drains it. When the client goes away the body
iterator is closed and the producer is cancelled at its next await.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable

from fastapi.responses import StreamingResponse

logger = logging.getLogger("webgate.gateway.streaming")

SSE_DONE = "data: [DONE]\n\n"
SSE_QUEUE_SIZE = 64

Emit = Callable[[str], Awaitable[None]]
Writer = Callable[[Emit], Awaitable[None]]

_END = object()


def sse_headers() -> dict[str, str]:
    return {
        "Cache-Control": "no-cache, no-transform",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }


def _dumps(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def sse_data(payload: Any) -> str:
    return f"data: {_dumps(payload)}\n\n"


def sse_event(event: str, payload: Any) -> str:
    return f"event: {event}\ndata: {_dumps(payload)}\n\n"


async def _drain(writer: Writer, max_queue: int) -> AsyncIterator[str]:
    queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=max_queue)

    async def emit(frame: str) -> None:
        await queue.put(frame)

    async def produce() -> None:
        try:
            await writer(emit)
        except Exception as e:
            logger.error(f"SSE stream aborted: {e}", exc_info=True)
        await queue.put(_END)

    producer = asyncio.create_task(produce())
    try:
        while True:
            item = await queue.get()
            if item is _END:
                break
            yield item
    finally:
        if not producer.done():
            logger.debug("SSE consumer closed early, cancelling producer")
            producer.cancel()


def create_sse_response(writer: Writer, max_queue: int = SSE_QUEUE_SIZE) -> StreamingResponse:
    """Wrap ``writer`` (which calls ``emit(frame)`` per frame) in an SSE response."""
    return StreamingResponse(
        _drain(writer, max_queue),
        media_type="text/event-stream; charset=utf-8",
        headers=sse_headers(),
    )


__all__ = [
    "SSE_DONE",
    "SSE_QUEUE_SIZE",
    "sse_headers",
    "sse_data",
    "sse_event",
    "create_sse_response",
]
