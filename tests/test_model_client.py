"""Tests for the chat completions client (no network, MockTransport)."""

import json

import httpx
import pytest

from agentic_hammer.model_client import (
    ChatCompletionsClient,
    Message,
    ModelClientError,
    parse_sse_line,
)


def sse_body(*deltas: str) -> bytes:
    events = [
        "data: " + json.dumps({"choices": [{"delta": {"content": d}}]})
        for d in deltas
    ]
    events.append("data: [DONE]")
    return ("\n\n".join(events) + "\n\n").encode()


class TestParseSseLine:
    """Server-sent event lines."""

    def test_content_delta(self):
        line = 'data: {"choices": [{"delta": {"content": "hi"}}]}'
        assert parse_sse_line(line) == "hi"

    def test_ignored_lines(self):
        assert parse_sse_line("") is None
        assert parse_sse_line(": keep-alive") is None
        assert parse_sse_line("data: [DONE]") is None
        assert parse_sse_line('data: {"choices": [{"delta": {"role": "assistant"}}]}') is None

    def test_error_event(self):
        with pytest.raises(ModelClientError, match="overloaded"):
            parse_sse_line('data: {"error": {"message": "overloaded"}}')

    def test_string_error_event(self):
        with pytest.raises(ModelClientError, match="rate limited"):
            parse_sse_line('data: {"error": "rate limited"}')

    def test_null_delta(self):
        assert parse_sse_line('data: {"choices": [{"delta": null}]}') is None

    def test_malformed_event(self):
        with pytest.raises(ModelClientError):
            parse_sse_line("data: {not json")
        with pytest.raises(ModelClientError):
            parse_sse_line("data: [1, 2]")


class TestStream:
    """Streaming requests against a mock transport."""

    def test_yields_deltas_and_sends_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=sse_body("def ", "f(): ", "pass"))

        client = ChatCompletionsClient(
            base_url="http://lm.local/v1/",
            api_key="sk-test",
            transport=httpx.MockTransport(handler),
        )

        deltas = list(client.stream([Message(role="user", content="hi")], "small"))

        assert deltas == ["def ", "f(): ", "pass"]
        assert seen["url"] == "http://lm.local/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == "small"
        assert seen["body"]["stream"] is True
        assert seen["body"]["messages"] == [{"role": "user", "content": "hi"}]

    def test_no_auth_header_without_key(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, content=sse_body("ok"))

        client = ChatCompletionsClient(base_url="http://lm.local", transport=httpx.MockTransport(handler))
        list(client.stream([], "m"))

        assert seen["auth"] is None

    def test_http_error_message(self):
        def handler(request):
            return httpx.Response(401, json={"error": {"message": "Invalid API key"}})

        client = ChatCompletionsClient(base_url="http://lm.local", transport=httpx.MockTransport(handler))

        with pytest.raises(ModelClientError, match="Invalid API key"):
            list(client.stream([], "m"))

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = ChatCompletionsClient(base_url="http://lm.local", transport=httpx.MockTransport(handler))

        with pytest.raises(ModelClientError, match="Network error"):
            list(client.stream([], "m"))
