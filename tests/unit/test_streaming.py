"""
Tests for webgate/gateway/streaming.py
"""

from __future__ import annotations

import asyncio
import json

from webgate.gateway.streaming import (
    SSE_DONE,
    _drain,
    create_sse_response,
    sse_data,
    sse_event,
    sse_headers,
)


class TestFrames:
    """Test frame formatting"""

    def test_data_frame_is_compact(self):
        assert sse_data({"a": 1, "b": "ü"}) == 'data: {"a":1,"b":"ü"}\n\n'

    def test_named_event(self):
        frame = sse_event("response.created", {"type": "response.created"})
        assert frame.startswith("event: response.created\ndata: ")
        assert json.loads(frame.split("data: ", 1)[1]) == {"type": "response.created"}

    def test_done(self):
        assert SSE_DONE == "data: [DONE]\n\n"

    def test_headers_disable_buffering(self):
        headers = sse_headers()
        assert headers["Cache-Control"].startswith("no-cache")
        assert headers["X-Accel-Buffering"] == "no"

    def test_response_media_type(self):
        async def writer(emit):
            await emit(SSE_DONE)

        response = create_sse_response(writer)
        assert response.media_type == "text/event-stream; charset=utf-8"


class TestDrain:
    """Test the producer/consumer plumbing"""

    async def test_frames_in_order(self):
        async def writer(emit):
            for i in range(5):
                await emit(f"data: {i}\n\n")

        frames = [f async for f in _drain(writer, max_queue=2)]
        assert frames == [f"data: {i}\n\n" for i in range(5)]

    async def test_writer_error_closes_stream(self):
        async def writer(emit):
            await emit("data: first\n\n")
            raise RuntimeError("upstream died")

        frames = [f async for f in _drain(writer, max_queue=4)]
        assert frames == ["data: first\n\n"]

    async def test_consumer_close_cancels_producer(self):
        cancelled = asyncio.Event()

        async def writer(emit):
            try:
                for i in range(1000):
                    await emit(f"data: {i}\n\n")
            except asyncio.CancelledError:
                cancelled.set()
                raise

        frames = _drain(writer, max_queue=2)
        assert await frames.__anext__() == "data: 0\n\n"
        await frames.aclose()

        await asyncio.wait_for(cancelled.wait(), timeout=1)
