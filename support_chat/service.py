"""High level orchestration for support chat with retrieval, memory and streaming."""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from threading import Lock
from typing import AsyncGenerator, Dict, Iterator, List, Optional, Set

from docstore.corpus import general_store, product_store
from docstore.loader import DocumentStore, load_documents
from docstore.scorer import RelevanceScorer, build_context

from .config import AnswerPolicy, ChatConfig
from .context import ContextAssembler
from .exceptions import SessionBusyError
from .llm_client import ChatLLMClient, ChatReply, GatewayStream
from .prompts import FALLBACK_REPLY, GREETING_REPLY, GREETING_TOKENS, build_system_prompt, is_greeting
from .relay import StreamRelay
from .store import Message, Session, SessionStore

logger = logging.getLogger(__name__)


def default_documents(config: ChatConfig) -> DocumentStore:
    if config.docs_path:
        return load_documents(config.docs_path)
    if config.policy is AnswerPolicy.GENERAL:
        return general_store()
    return product_store()


class ReplyStream:
    """Async iterator over the deltas of one streamed reply.

    The assistant message is persisted once the upstream stream has been
    fully relayed. Abandoning the iteration persists nothing.
    """

    def __init__(
        self,
        service: "ChatService",
        session_id: str,
        source: Optional[GatewayStream],
        canned: Optional[ChatReply] = None,
    ) -> None:
        self._service = service
        self.session_id = session_id
        self._source = source
        self._canned = canned
        self._released = False
        self.reply = ""
        self.tokens_used = 0
        self.completed = False

    def __aiter__(self) -> AsyncGenerator[str, None]:
        return self._run()

    async def _run(self) -> AsyncGenerator[str, None]:
        try:
            if self._canned is not None:
                self.reply = self._canned.reply
                self.tokens_used = self._canned.tokens_used
                yield self.reply
            else:
                relay = StreamRelay()
                deltas = relay.iter_deltas(self._source)  # type: ignore[arg-type]
                try:
                    async for delta in deltas:
                        yield delta
                finally:
                    await deltas.aclose()
                self.reply = relay.reply
                self.tokens_used = relay.tokens_used
                if not self.reply:
                    self.reply = FALLBACK_REPLY
                    yield self.reply

            self._service._persist_reply(self.session_id, self.reply)
            self.completed = True
            logger.info(
                "Streamed reply for session %s (%d chars, %d tokens)",
                self.session_id,
                len(self.reply),
                self.tokens_used,
            )
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._released:
            return
        self._released = True
        self._service._release(self.session_id)
        if self._source is not None:
            await self._source.aclose()


class ChatService:
    """Core chat engine used by both the API and direct Python consumers."""

    def __init__(
        self,
        config: Optional[ChatConfig] = None,
        *,
        store: Optional[SessionStore] = None,
        documents: Optional[DocumentStore] = None,
        client: Optional[ChatLLMClient] = None,
    ) -> None:
        self.config = config or ChatConfig()
        self.store = store or SessionStore()
        self.documents = documents if documents is not None else default_documents(self.config)
        self.scorer = RelevanceScorer(
            self.documents,
            top_k=self.config.effective_top_k,
            weights=self.config.weights,
        )
        self.context = ContextAssembler(self.store, pairs=self.config.history_pairs)
        self.client = client or ChatLLMClient(self.config.llm)
        self._inflight: Set[str] = set()
        self._inflight_lock = Lock()
        logger.info(
            "Chat service ready: policy=%s, %d document(s), top_k=%d, offline=%s",
            self.config.policy.value,
            len(self.documents),
            self.scorer.top_k,
            self.config.offline,
        )

    def reply(self, session_id: str, message: str) -> ChatReply:
        """Answer ``message`` and persist both sides of the exchange."""
        self._validate(session_id, message)
        with self._claim(session_id):
            self._record_user_message(session_id, message)
            result = self._local_reply(session_id, message)
            if result is None:
                prompt_messages = self._build_prompt(session_id, message)
                result = self.client.complete(prompt_messages, model_kwargs=self.config.model_kwargs)
            self._persist_reply(session_id, result.reply)
            return result

    async def stream_reply(self, session_id: str, message: str) -> ReplyStream:
        """Start a streamed reply.

        The upstream request is made before returning so gateway errors are
        raised here rather than in the middle of the stream.
        """
        self._validate(session_id, message)
        self._acquire(session_id)
        try:
            self._record_user_message(session_id, message)
            canned = self._local_reply(session_id, message)
            source = None
            if canned is None:
                prompt_messages = self._build_prompt(session_id, message)
                source = await self.client.open_stream(prompt_messages, model_kwargs=self.config.model_kwargs)
        except BaseException:
            self._release(session_id)
            raise
        return ReplyStream(self, session_id, source, canned)

    def list_sessions(self) -> List[Session]:
        return self.store.list_sessions()

    def create_session(self) -> Session:
        return self.store.create_session()

    def get_messages(self, session_id: str) -> List[Message]:
        return self.store.get_messages(session_id)

    def delete_session(self, session_id: str) -> bool:
        return self.store.delete_session(session_id)

    def _local_reply(self, session_id: str, message: str) -> Optional[ChatReply]:
        """Reply without the gateway for greetings and in offline mode."""
        if is_greeting(message):
            return ChatReply(reply=GREETING_REPLY, tokens_used=GREETING_TOKENS)
        if not self.config.offline:
            return None

        docs = self.scorer.score(message)
        if not docs:
            return ChatReply(reply=FALLBACK_REPLY, tokens_used=0)
        reply = build_context(docs)
        history = " ".join(m.content for m in self.context.assemble(session_id))
        tokens_used = math.ceil((len(reply) + len(message) + len(history)) / 4)
        return ChatReply(reply=reply, tokens_used=tokens_used)

    def _build_prompt(self, session_id: str, message: str) -> List[Dict[str, str]]:
        docs = self.scorer.score(message)
        logger.info("Matched %d document(s) for session %s", len(docs), session_id)
        prompt: List[Dict[str, str]] = [
            {"role": "system", "content": build_system_prompt(self.config.policy, docs)},
        ]
        prompt.extend(self.context.as_chat_messages(session_id))
        return prompt

    def _record_user_message(self, session_id: str, message: str) -> None:
        self.store.upsert_session(session_id)
        self.store.add_message(session_id, "user", message)

    def _persist_reply(self, session_id: str, reply: str) -> None:
        try:
            self.store.add_message(session_id, "assistant", reply)
        except KeyError:
            logger.warning("Session %s was deleted before its reply was stored", session_id)

    @staticmethod
    def _validate(session_id: str, message: str) -> None:
        if not session_id or not session_id.strip():
            raise ValueError("sessionId is required")
        if not message or not message.strip():
            raise ValueError("message is required")

    def _acquire(self, session_id: str) -> None:
        with self._inflight_lock:
            if session_id in self._inflight:
                raise SessionBusyError(session_id)
            self._inflight.add(session_id)

    def _release(self, session_id: str) -> None:
        with self._inflight_lock:
            self._inflight.discard(session_id)

    @contextmanager
    def _claim(self, session_id: str) -> Iterator[None]:
        self._acquire(session_id)
        try:
            yield
        finally:
            self._release(session_id)
