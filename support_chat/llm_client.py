"""Client wrapper for chat-completions requests, buffered and streamed."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx
import requests

from .config import ChatLLMConfig
from .exceptions import ChatGatewayError, GatewayConnectionError, MissingBodyError, upstream_error
from .prompts import FALLBACK_REPLY
from .relay import DeltaCallback, StreamRelay

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatReply:
    reply: str
    tokens_used: int


class GatewayStream:
    """Async byte iterator over an open streaming response.

    Closing it releases both the response and the underlying HTTP client.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    def __aiter__(self) -> AsyncGenerator[bytes, None]:
        return self._iter_bytes()

    async def _iter_bytes(self) -> AsyncGenerator[bytes, None]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            raise GatewayConnectionError(f"Stream interrupted: {exc}") from exc

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()
        await self._client.aclose()


class ChatLLMClient:
    """Thin wrapper around a chat-completions endpoint with streaming support."""

    def __init__(
        self,
        config: ChatLLMConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport

    def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        model_kwargs: Optional[Dict[str, object]] = None,
    ) -> ChatReply:
        """Return a full completion (no streaming)."""
        payload = self._payload(messages, stream=False, model_kwargs=model_kwargs)

        logger.debug("Requesting non-streaming completion for %d message(s)", len(messages))
        try:
            response = requests.post(
                self.config.endpoint,
                json=payload,
                headers=self._headers(),
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as exc:
            raise GatewayConnectionError(f"AI gateway unreachable: {exc}") from exc

        if not response.ok:
            logger.error("AI gateway error: %s %s", response.status_code, response.text[:500])
            raise upstream_error(response.status_code, _error_message(response.text))
        if not response.content:
            raise MissingBodyError("AI gateway returned an empty body")

        try:
            data = response.json()
        except ValueError as exc:
            raise ChatGatewayError("AI gateway returned invalid JSON") from exc

        reply = _extract_message(data) or FALLBACK_REPLY
        return ChatReply(reply=reply, tokens_used=_extract_total_tokens(data))

    async def open_stream(
        self,
        messages: List[Dict[str, str]],
        *,
        model_kwargs: Optional[Dict[str, object]] = None,
    ) -> GatewayStream:
        """Start a streaming completion and validate the response status.

        Raises before any byte is relayed when the gateway answers with an
        error status or without a body.
        """
        payload = self._payload(messages, stream=True, model_kwargs=model_kwargs)
        client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.request_timeout), transport=self._transport)
        request = client.build_request("POST", self.config.endpoint, json=payload, headers=self._headers())

        logger.info("Streaming chat completion to %s using model %s", self.config.endpoint, self.config.model)
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            raise GatewayConnectionError(f"AI gateway unreachable: {exc}") from exc

        if not response.is_success:
            body = await response.aread()
            await response.aclose()
            await client.aclose()
            text = body.decode("utf-8", errors="replace")
            logger.error("AI gateway error: %s %s", response.status_code, text[:500])
            raise upstream_error(response.status_code, _error_message(text))

        if response.status_code == 204 or response.headers.get("content-length") == "0":
            await response.aclose()
            await client.aclose()
            raise MissingBodyError("AI gateway returned no response body")

        return GatewayStream(client, response)

    async def stream_completion(
        self,
        messages: List[Dict[str, str]],
        *,
        on_delta: Optional[DeltaCallback] = None,
        model_kwargs: Optional[Dict[str, object]] = None,
    ) -> ChatReply:
        """Stream a completion, forwarding deltas to ``on_delta`` as they arrive."""
        stream = await self.open_stream(messages, model_kwargs=model_kwargs)
        result = await StreamRelay().relay(stream, on_delta or _ignore, _ignore)
        return ChatReply(reply=result.reply, tokens_used=result.tokens_used)

    def _payload(
        self,
        messages: List[Dict[str, str]],
        *,
        stream: bool,
        model_kwargs: Optional[Dict[str, object]],
    ) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "model": self.config.model,
            "messages": messages,
            "stream": stream,
        }
        if model_kwargs:
            payload.update(model_kwargs)
        return payload

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers


def _ignore(_: Any) -> None:
    return None


def _error_message(text: str) -> str:
    """Pull the ``error`` field out of a JSON error body, else return the text."""
    try:
        data = json.loads(text)
    except ValueError:
        return text.strip()[:500]
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, str):
            return error
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return text.strip()[:500]


def _extract_message(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


def _extract_total_tokens(data: Any) -> int:
    if not isinstance(data, dict):
        return 0
    usage = data.get("usage") or {}
    total = usage.get("total_tokens") if isinstance(usage, dict) else None
    return total if isinstance(total, int) and not isinstance(total, bool) else 0
