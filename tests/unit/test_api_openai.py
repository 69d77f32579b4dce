"""
Tests for the OpenAI-compatible routes:
/v1/chat/completions, /v1/responses and /v1/models
"""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock

from webgate.core.exceptions import ProviderUnavailableError
from webgate.gateway.protocols.shared import to_prompt_line


def sse_frames(text: str) -> list[str]:
    return [frame for frame in text.split("\n\n") if frame]


def data_of(frame: str) -> Any:
    return json.loads(frame.split("data: ", 1)[1])


class TestChatCompletions:
    """Test POST /v1/chat/completions"""

    def test_normalized_prompt_and_reply(self, client, provider):
        response = client.post(
            "/v1/chat/completions",
            json={
                "model": "gemini-2.5-flash",
                "messages": [
                    {"role": "system", "content": "be concise"},
                    {
                        "role": "user",
                        "content": [{"type": "text", "text": "hello"}, {"type": "text", "text": "world"}],
                    },
                ],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["object"] == "chat.completion"
        assert body["id"].startswith("chatcmpl-")
        assert body["model"] == "gemini-2.5-flash"
        assert body["choices"][0]["message"] == {"role": "assistant", "content": "assistant answer"}
        assert body["choices"][0]["finish_reason"] == "stop"
        assert provider.generate_calls[0]["prompt"] == "System: be concise\n\nUser: hello\nworld"

    def test_role_labels(self, client, provider):
        client.post(
            "/v1/chat/completions",
            json={
                "messages": [
                    {"role": "developer", "content": "answer in French"},
                    {"role": "user", "content": "hi"},
                    {"role": "assistant", "content": "bonjour"},
                    {"role": "tool", "content": "{\"weather\": \"sunny\"}"},
                ]
            },
        )
        assert provider.generate_calls[0]["prompt"] == (
            "Developer: answer in French\n\n"
            "User: hi\n\n"
            "Assistant: bonjour\n\n"
            "Tool: {\"weather\": \"sunny\"}"
        )

    def test_usage_counts(self, client):
        response = client.post(
            "/v1/chat/completions", json={"messages": [{"role": "user", "content": "hi"}]}
        )
        usage = response.json()["usage"]
        assert usage == {"prompt_tokens": 0, "completion_tokens": 16, "total_tokens": 16}

    def test_default_model_used(self, client, provider):
        response = client.post(
            "/v1/chat/completions", json={"messages": [{"role": "user", "content": "hi"}]}
        )
        assert response.json()["model"] == "gemini-2.5-flash"
        assert provider.generate_calls[0]["model"] == "gemini-2.5-flash"

    def test_onetest_model(self, client, provider):
        response = client.post(
            "/v1/chat/completions",
            json={"model": "onetest-model", "messages": [{"role": "user", "content": "hi"}]},
        )
        assert response.json()["choices"][0]["message"]["content"] == "onetest"
        assert provider.generate_calls == []

    def test_stream(self, client, provider):
        provider.reply = "x" * 100
        response = client.post(
            "/v1/chat/completions",
            json={"stream": True, "messages": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        frames = sse_frames(response.text)
        assert frames[-1] == "data: [DONE]"

        chunks = [data_of(f) for f in frames[:-1]]
        assert all(c["object"] == "chat.completion.chunk" for c in chunks)
        assert len({c["id"] for c in chunks}) == 1
        deltas = [c["choices"][0]["delta"].get("content") for c in chunks[:-1]]
        assert "".join(deltas) == "x" * 100
        assert chunks[-1]["choices"][0] == {"index": 0, "delta": {}, "finish_reason": "stop"}

    def test_stream_of_empty_reply_has_one_delta(self, client, provider):
        provider.reply = ""
        response = client.post(
            "/v1/chat/completions",
            json={"stream": True, "messages": [{"role": "user", "content": "hi"}]},
        )
        frames = sse_frames(response.text)
        assert len(frames) == 3
        assert data_of(frames[0])["choices"][0]["delta"] == {"content": ""}

    def test_stream_failure_closes_without_done(self, client, provider):
        provider.generate_content = AsyncMock(side_effect=RuntimeError("upstream broke"))
        response = client.post(
            "/v1/chat/completions",
            json={"stream": True, "messages": [{"role": "user", "content": "hi"}]},
        )
        assert response.status_code == 200
        assert "[DONE]" not in response.text

    def test_stream_with_unavailable_provider_is_503(self, client, api_context):
        def unavailable():
            raise ProviderUnavailableError("Gemini Web", "cookies expired")

        api_context.get_provider = unavailable
        response = client.post(
            "/v1/chat/completions",
            json={"stream": True, "messages": [{"role": "user", "content": "hi"}]},
        )
        assert response.status_code == 503
        assert response.json()["detail"].startswith("Active provider 'Gemini Web' is unavailable")

    def test_onetest_stream_ignores_provider_state(self, client, api_context):
        def unavailable():
            raise ProviderUnavailableError("Gemini Web", "cookies expired")

        api_context.get_provider = unavailable
        response = client.post(
            "/v1/chat/completions",
            json={
                "model": "onetest-model",
                "stream": True,
                "messages": [{"role": "user", "content": "hi"}],
            },
        )
        assert response.status_code == 200
        assert response.text.rstrip().endswith("data: [DONE]")

    def test_empty_messages_rejected(self, client):
        response = client.post("/v1/chat/completions", json={"messages": []})
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid request: messages")

    def test_bad_role_and_empty_content_rejected(self, client):
        response = client.post(
            "/v1/chat/completions",
            json={"messages": [{"role": "robot", "content": "hi"}, {"role": "user", "content": ""}]},
        )
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert "messages.0.role" in detail
        assert "messages.1.content" in detail

    def test_non_boolean_stream_rejected(self, client):
        response = client.post(
            "/v1/chat/completions",
            json={"stream": "yes", "messages": [{"role": "user", "content": "hi"}]},
        )
        assert response.status_code == 400

    def test_invalid_json_body(self, client):
        response = client.post(
            "/v1/chat/completions",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid JSON body"}

    def test_provider_unavailable_is_503(self, client, api_context):
        def unavailable():
            raise ProviderUnavailableError("Gemini Web", "cookies expired")

        api_context.get_provider = unavailable
        response = client.post(
            "/v1/chat/completions", json={"messages": [{"role": "user", "content": "hi"}]}
        )
        assert response.status_code == 503
        assert response.json() == {
            "detail": "Active provider 'Gemini Web' is unavailable. cookies expired"
        }

    def test_unexpected_error_is_generic_500(self, client, provider):
        provider.generate_content = AsyncMock(side_effect=RuntimeError("secret internals"))
        response = client.post(
            "/v1/chat/completions", json={"messages": [{"role": "user", "content": "hi"}]}
        )
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}


class TestResponses:
    """Test POST /v1/responses"""

    def test_string_input(self, client, provider):
        response = client.post("/v1/responses", json={"input": "  translate this  "})

        body = response.json()
        assert response.status_code == 200
        assert body["object"] == "response"
        assert body["status"] == "completed"
        assert body["output_text"] == "assistant answer"
        assert body["output"][0]["content"] == [{"type": "output_text", "text": "assistant answer"}]
        assert provider.generate_calls[0]["prompt"] == "translate this"

    def test_list_input(self, client, provider):
        client.post(
            "/v1/responses",
            json={"input": ["first", {"role": "user", "content": [{"type": "input_text", "text": "second"}]}]},
        )
        assert provider.generate_calls[0]["prompt"] == "first\n\nsecond"

    def test_messages_take_priority(self, client, provider):
        client.post(
            "/v1/responses",
            json={"input": "ignored", "messages": [{"role": "user", "content": "from messages"}]},
        )
        assert provider.generate_calls[0]["prompt"] == "User: from messages"

    def test_unknown_message_role_is_user(self, client, provider):
        client.post(
            "/v1/responses",
            json={
                "messages": [
                    {"role": "critic", "content": "too long"},
                    {"role": "assistant", "content": "shorter"},
                    {"content": "thanks"},
                ]
            },
        )
        assert provider.generate_calls[0]["prompt"] == (
            "User: too long\n\nAssistant: shorter\n\nUser: thanks"
        )

    def test_no_prompt(self, client):
        response = client.post("/v1/responses", json={"input": "   "})
        assert response.status_code == 400
        assert response.json() == {"detail": "No valid prompt found. Provide input or messages."}

    def test_empty_object_has_no_prompt(self, client):
        response = client.post("/v1/responses", json={})
        assert response.status_code == 400
        assert response.json()["detail"].startswith("No valid prompt found")

    def test_stream_events(self, client, provider):
        provider.reply = "y" * 60
        response = client.post("/v1/responses", json={"input": "hi", "stream": True})

        frames = sse_frames(response.text)
        assert frames[-1] == "data: [DONE]"
        events = [f.split("\n", 1)[0].removeprefix("event: ") for f in frames[:-1]]
        assert events == [
            "response.created",
            "response.output_text.delta",
            "response.output_text.delta",
            "response.completed",
        ]

        created = data_of(frames[0])["response"]
        completed = data_of(frames[-2])["response"]
        assert created["status"] == "in_progress"
        assert completed["id"] == created["id"]
        assert completed["output_text"] == "y" * 60
        assert data_of(frames[1])["response_id"] == created["id"]

    def test_stream_with_unavailable_provider_is_503(self, client, api_context):
        def unavailable():
            raise ProviderUnavailableError("Gemini Web", "cookies expired")

        api_context.get_provider = unavailable
        response = client.post("/v1/responses", json={"input": "hi", "stream": True})
        assert response.status_code == 503
        assert "detail" in response.json()


class TestModels:
    """Test GET /v1/models"""

    def test_list(self, client):
        body = client.get("/v1/models").json()
        ids = [m["id"] for m in body["data"]]
        assert body["object"] == "list"
        assert "onetest-model" in ids
        assert "gemini-2.5-flash" in ids
        assert all(m["owned_by"] == "web-model-api-gateway" for m in body["data"])

    def test_get_model(self, client):
        body = client.get("/v1/models/gemini-2.5-pro").json()
        assert body["id"] == "gemini-2.5-pro"
        assert body["root"] == "gemini-2.5-flash"

    def test_unknown_model(self, client):
        response = client.get("/v1/models/nope")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "model_not_found"
        assert response.json()["error"]["param"] == "model"


class TestPromptLines:
    """Test role labelling of flattened prompts"""

    def test_known_roles(self):
        assert to_prompt_line("system", "a") == "System: a"
        assert to_prompt_line("developer", "a") == "Developer: a"
        assert to_prompt_line("user", "a") == "User: a"
        assert to_prompt_line("assistant", "a") == "Assistant: a"
        assert to_prompt_line("tool", "a") == "Tool: a"

    def test_unknown_role_falls_back_to_user(self):
        assert to_prompt_line("critic", "a") == "User: a"
        assert to_prompt_line("", "a") == "User: a"
