"""In-memory session repository."""

import threading
from dataclasses import dataclass, field
from uuid import UUID

from image_analyzer.domain.sessions import SessionRecord
from image_analyzer.services.sessions import SessionRepository


@dataclass
class InMemorySessionRepository(SessionRepository):
    """Process-local session store guarded by a lock."""

    sessions: dict[UUID, SessionRecord] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add_session(self, session: SessionRecord) -> None:
        with self._lock:
            self.sessions[session.id] = session

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        with self._lock:
            return self.sessions.get(session_id)

    def save_session(self, session: SessionRecord) -> None:
        with self._lock:
            if session.id in self.sessions:
                self.sessions[session.id] = session

    def delete_session(self, session_id: UUID) -> bool:
        with self._lock:
            return self.sessions.pop(session_id, None) is not None

    def list_sessions(self) -> list[SessionRecord]:
        with self._lock:
            return list(self.sessions.values())
