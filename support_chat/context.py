"""Bounded conversation history for prompt assembly."""

from __future__ import annotations

from typing import Dict, List

from .store import Message, SessionStore


class ContextAssembler:
    """Fetch the last ``pairs`` user/assistant exchanges of a session."""

    def __init__(self, store: SessionStore, pairs: int = 5) -> None:
        self.store = store
        self.pairs = pairs

    def assemble(self, session_id: str) -> List[Message]:
        """Return up to ``2 * pairs`` most recent messages, oldest first."""
        if self.pairs <= 0:
            return []
        return self.store.get_messages(session_id)[-(self.pairs * 2) :]

    def as_chat_messages(self, session_id: str) -> List[Dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.assemble(session_id)]
