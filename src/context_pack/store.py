"""
Session storage used by the interview orchestration boundary.

The in-memory store keeps sessions for the process lifetime. Anything durable
(SQLite, Redis, files) only has to implement the same get/put/delete trio.
"""

from __future__ import annotations

import threading
from typing import Protocol

from .session import InterviewSession


class SessionStore(Protocol):
    def get(self, session_id: str) -> InterviewSession | None: ...

    def put(self, session_id: str, session: InterviewSession) -> None: ...

    def delete(self, session_id: str) -> bool: ...


class InMemorySessionStore:
    def __init__(self) -> None:
        self._sessions: dict[str, InterviewSession] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> InterviewSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def put(self, session_id: str, session: InterviewSession) -> None:
        with self._lock:
            self._sessions[session_id] = session

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
