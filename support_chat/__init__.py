"""Support chat orchestration with keyword retrieval and streamed replies.

This package wires a chat-completions gateway with the static documentation
set from :mod:`docstore`, a bounded conversation history and a streaming
relay that turns the gateway's SSE byte stream into live deltas. The primary
entry points are ``support_chat.api.create_app`` for running the HTTP service
and ``support_chat.service.ChatService`` for embedding the chat engine
directly into Python code.
"""

from .config import AnswerPolicy, ChatConfig, ChatLLMConfig
from .relay import RelayResult, StreamRelay, relay
from .service import ChatService

__all__ = [
    "AnswerPolicy",
    "ChatConfig",
    "ChatLLMConfig",
    "ChatService",
    "RelayResult",
    "StreamRelay",
    "relay",
]
