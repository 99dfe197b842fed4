"""Shared fixtures: a scripted gateway client and a chat service."""

import json

import pytest

from support_chat.config import ChatConfig
from support_chat.llm_client import ChatReply
from support_chat.service import ChatService
from support_chat.store import SessionStore


def sse_bytes(*deltas, total_tokens=None):
    frames = [
        "data: " + json.dumps({"choices": [{"delta": {"content": d}}]}, ensure_ascii=False) + "\n\n" for d in deltas
    ]
    if total_tokens is not None:
        frames.append("data: " + json.dumps({"usage": {"total_tokens": total_tokens}}) + "\n\n")
    frames.append("data: [DONE]\n\n")
    return "".join(frames).encode("utf-8")


class ScriptedStream:
    """Async byte source that records whether it was closed."""

    def __init__(self, chunks):
        self._chunks = list(chunks)
        self.closed = False

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for chunk in self._chunks:
            yield chunk

    async def aclose(self):
        self.closed = True


class FakeGateway:
    """Stands in for ChatLLMClient and records the prompts it receives."""

    def __init__(self):
        self.reply = ChatReply(reply="From the docs.", tokens_used=42)
        self.chunks = [sse_bytes("From ", "the docs.", total_tokens=42)]
        self.error = None
        self.calls = []
        self.streams = []

    def complete(self, messages, *, model_kwargs=None):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return self.reply

    async def open_stream(self, messages, *, model_kwargs=None):
        self.calls.append(messages)
        if self.error:
            raise self.error
        stream = ScriptedStream(self.chunks)
        self.streams.append(stream)
        return stream


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def chat_config():
    return ChatConfig()


@pytest.fixture
def service(chat_config, store, gateway):
    return ChatService(chat_config, store=store, client=gateway)


@pytest.fixture
def make_sse():
    return sse_bytes
