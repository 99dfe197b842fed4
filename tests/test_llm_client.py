"""Tests for the chat-completions gateway client."""

import json
from unittest.mock import Mock, patch

import httpx
import pytest
import requests

from support_chat.config import ChatLLMConfig
from support_chat.exceptions import (
    ChatGatewayError,
    CreditsExhaustedError,
    GatewayConnectionError,
    MissingBodyError,
    RateLimitError,
    UpstreamHTTPError,
)
from support_chat.llm_client import ChatLLMClient
from support_chat.prompts import FALLBACK_REPLY

MESSAGES = [{"role": "user", "content": "hi there"}]

SSE_BODY = (
    b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n\n'
    b'data: {"choices":[{"delta":{"content":"lo"}}]}\n\n'
    b'data: {"usage":{"total_tokens":12}}\n\n'
    b"data: [DONE]\n\n"
)


@pytest.fixture
def config():
    return ChatLLMConfig(endpoint="https://gateway.test/v1/chat/completions", model="test-model", api_key="secret")


def _client(config, handler):
    return ChatLLMClient(config, transport=httpx.MockTransport(handler))


def _requests_response(status_code=200, payload=None, text=None):
    body = text if text is not None else json.dumps(payload or {})
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.text = body
    response.content = body.encode("utf-8")
    response.json.side_effect = lambda: json.loads(body)
    return response


class TestComplete:
    """Buffered completions over requests."""

    def test_returns_reply_and_usage(self, config):
        payload = {"choices": [{"message": {"content": "Refunds take 3-5 days."}}], "usage": {"total_tokens": 42}}
        with patch("support_chat.llm_client.requests.post", return_value=_requests_response(payload=payload)) as post:
            result = ChatLLMClient(config).complete(MESSAGES, model_kwargs={"temperature": 0.1})

        assert result.reply == "Refunds take 3-5 days."
        assert result.tokens_used == 42
        kwargs = post.call_args.kwargs
        assert kwargs["json"]["model"] == "test-model"
        assert kwargs["json"]["stream"] is False
        assert kwargs["json"]["temperature"] == 0.1
        assert kwargs["headers"]["Authorization"] == "Bearer secret"

    def test_missing_content_uses_fallback(self, config):
        with patch("support_chat.llm_client.requests.post", return_value=_requests_response(payload={"choices": []})):
            result = ChatLLMClient(config).complete(MESSAGES)

        assert result.reply == FALLBACK_REPLY
        assert result.tokens_used == 0

    @pytest.mark.parametrize(
        "status_code, error_type",
        [(429, RateLimitError), (402, CreditsExhaustedError), (500, UpstreamHTTPError)],
    )
    def test_error_status_is_typed(self, config, status_code, error_type):
        response = _requests_response(status_code, payload={"error": "nope"})
        with patch("support_chat.llm_client.requests.post", return_value=response):
            with pytest.raises(error_type) as excinfo:
                ChatLLMClient(config).complete(MESSAGES)

        assert excinfo.value.status_code == status_code
        assert excinfo.value.message == "nope"

    def test_empty_body_is_fatal(self, config):
        with patch("support_chat.llm_client.requests.post", return_value=_requests_response(text="")):
            with pytest.raises(MissingBodyError):
                ChatLLMClient(config).complete(MESSAGES)

    def test_invalid_json_body(self, config):
        with patch("support_chat.llm_client.requests.post", return_value=_requests_response(text="<html>")):
            with pytest.raises(ChatGatewayError):
                ChatLLMClient(config).complete(MESSAGES)

    def test_connection_error(self, config):
        with patch("support_chat.llm_client.requests.post", side_effect=requests.ConnectionError("down")):
            with pytest.raises(GatewayConnectionError):
                ChatLLMClient(config).complete(MESSAGES)


class TestStreaming:
    """Streamed completions over httpx."""

    @pytest.mark.asyncio
    async def test_stream_completion_relays_deltas(self, config):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, content=SSE_BODY, headers={"content-type": "text/event-stream"})

        deltas = []
        result = await _client(config, handler).stream_completion(MESSAGES, on_delta=deltas.append)

        assert deltas == ["Hel", "lo"]
        assert result.reply == "Hello"
        assert result.tokens_used == 12
        assert seen["body"]["stream"] is True
        assert seen["body"]["messages"] == MESSAGES
        assert seen["auth"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_chunked_body(self, config):
        async def body():
            for index in range(0, len(SSE_BODY), 7):
                yield SSE_BODY[index : index + 7]

        def handler(request):
            return httpx.Response(200, content=body())

        deltas = []
        result = await _client(config, handler).stream_completion(MESSAGES, on_delta=deltas.append)

        assert deltas == ["Hel", "lo"]
        assert result.tokens_used == 12

    @pytest.mark.asyncio
    async def test_error_status_raises_before_streaming(self, config):
        def handler(request):
            return httpx.Response(429, json={"error": "Rate limit exceeded"})

        deltas = []
        with pytest.raises(RateLimitError) as excinfo:
            await _client(config, handler).stream_completion(MESSAGES, on_delta=deltas.append)

        assert deltas == []
        assert excinfo.value.status_code == 429
        assert "Rate limit exceeded" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_nested_error_message(self, config):
        def handler(request):
            return httpx.Response(500, json={"error": {"message": "upstream exploded"}})

        with pytest.raises(UpstreamHTTPError) as excinfo:
            await _client(config, handler).open_stream(MESSAGES)

        assert excinfo.value.message == "upstream exploded"

    @pytest.mark.asyncio
    async def test_plain_text_error_body(self, config):
        def handler(request):
            return httpx.Response(503, text="Service Unavailable")

        with pytest.raises(UpstreamHTTPError) as excinfo:
            await _client(config, handler).open_stream(MESSAGES)

        assert excinfo.value.status_code == 503
        assert excinfo.value.message == "Service Unavailable"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [httpx.Response(204), httpx.Response(200, headers={"content-length": "0"})],
    )
    async def test_missing_body(self, config, response):
        with pytest.raises(MissingBodyError):
            await _client(config, lambda request: response).open_stream(MESSAGES)

    @pytest.mark.asyncio
    async def test_connect_error(self, config):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(GatewayConnectionError):
            await _client(config, handler).open_stream(MESSAGES)

    @pytest.mark.asyncio
    async def test_no_authorization_without_key(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, content=SSE_BODY)

        config = ChatLLMConfig(endpoint="https://gateway.test/v1/chat/completions", api_key=None)
        await _client(config, handler).stream_completion(MESSAGES)

        assert seen["auth"] is None
