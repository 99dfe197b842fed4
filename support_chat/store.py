"""Thread-safe in-memory session and message store."""

from __future__ import annotations

import itertools
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)

ROLES = ("user", "assistant")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Message:
    id: int
    session_id: str
    role: str
    content: str
    created_at: datetime

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "role": self.role,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Session:
    id: str
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class SessionStore:
    """Sessions own their messages; deleting a session deletes its messages."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: Dict[str, Session] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._ids = itertools.count(1)
        self._last_stamp: Optional[datetime] = None

    def _next_stamp(self) -> datetime:
        # Caller holds the lock. Timestamps never repeat within the store.
        stamp = _now()
        if self._last_stamp is not None and stamp <= self._last_stamp:
            stamp = self._last_stamp + _TICK
        self._last_stamp = stamp
        return stamp

    def create_session(self) -> Session:
        with self._lock:
            stamp = self._next_stamp()
            session = Session(id=new_session_id(), created_at=stamp, updated_at=stamp)
            self._sessions[session.id] = session
            self._messages[session.id] = []
        logger.info("Created session %s", session.id)
        return session

    def upsert_session(self, session_id: str) -> Session:
        """Return the session, creating it on first use."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                stamp = self._next_stamp()
                session = Session(id=session_id, created_at=stamp, updated_at=stamp)
                self._sessions[session_id] = session
                self._messages[session_id] = []
                logger.info("Created session %s", session_id)
            return session

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def list_sessions(self) -> List[Session]:
        """Return sessions, most recently updated first."""
        with self._lock:
            sessions = list(self._sessions.values())
        return sorted(sessions, key=lambda s: s.updated_at, reverse=True)

    def add_message(self, session_id: str, role: str, content: str) -> Message:
        if role not in ROLES:
            raise ValueError(f"role must be one of {ROLES}, got '{role}'")
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise KeyError(f"No session found for id '{session_id}'")
            messages = self._messages[session_id]
            created_at = self._next_stamp()
            message = Message(
                id=next(self._ids),
                session_id=session_id,
                role=role,
                content=content,
                created_at=created_at,
            )
            messages.append(message)
            session.updated_at = created_at
        return message

    def get_messages(self, session_id: str) -> List[Message]:
        """Return the session's messages ordered by creation time."""
        with self._lock:
            return list(self._messages.get(session_id, []))

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            existed = self._sessions.pop(session_id, None) is not None
            removed = self._messages.pop(session_id, [])
        if existed:
            logger.info("Deleted session %s with %d message(s)", session_id, len(removed))
        return existed

