"""Session lifecycle and per-session rate budgets."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID, uuid4

from image_analyzer.domain.sessions import LimitKind, SessionRecord
from image_analyzer.errors import SessionNotFoundError
from image_analyzer.services import rate_limits
from image_analyzer.services.rate_limits import RateLimitDecision
from image_analyzer.timestamps import utcnow

logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for sessions."""

    def add_session(self, session: SessionRecord) -> None:
        """Store a new session."""

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""

    def save_session(self, session: SessionRecord) -> None:
        """Replace the stored copy of a session."""

    def delete_session(self, session_id: UUID) -> bool:
        """Delete a session and report whether it existed."""

    def list_sessions(self) -> list[SessionRecord]:
        """Return every stored session."""


@dataclass
class SessionService:
    """Creates sessions and spends their rate budgets atomically."""

    repository: SessionRepository
    requests_per_minute: int = 10
    tokens_per_minute: int = 250_000
    ttl: timedelta = timedelta(hours=1)
    clock: Callable[[], datetime] = utcnow
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def create(self) -> SessionRecord:
        """Create a session with full budgets."""
        now = self.clock()
        session = SessionRecord(
            id=uuid4(),
            created_at=now,
            requests_per_minute=rate_limits.initial_window(
                self.requests_per_minute, now
            ),
            tokens_per_minute=rate_limits.initial_window(self.tokens_per_minute, now),
        )
        self.repository.add_session(session)
        logger.info(
            "Session created",
            extra={
                "session_id": str(session.id),
                "requests_per_minute": self.requests_per_minute,
                "tokens_per_minute": self.tokens_per_minute,
            },
        )
        return session

    def get(self, session_id: UUID) -> SessionRecord | None:
        """Return a live session, if present."""
        session = self.repository.get_session(session_id)
        if session is None or self._is_expired(session, self.clock()):
            return None
        return session

    def touch_rate_limit(
        self, session_id: UUID, kind: LimitKind, amount: int = 1
    ) -> RateLimitDecision:
        """Spend amount from the session's budget if it allows it."""
        with self._lock:
            now = self.clock()
            session = self._require(session_id, now)
            decision = rate_limits.check_and_consume(session, kind, amount, now)
            self.repository.save_session(decision.session)
        if decision.allowed:
            logger.debug(
                "Rate limit check passed",
                extra={
                    "session_id": str(session_id),
                    "kind": kind.value,
                    "remaining": decision.window.remaining,
                },
            )
        else:
            logger.warning(
                "Rate limit exceeded",
                extra={
                    "session_id": str(session_id),
                    "kind": kind.value,
                    "amount": amount,
                    "remaining": decision.window.remaining,
                    "limit": decision.window.limit,
                },
            )
        return decision

    def charge_tokens(self, session_id: UUID, amount: int) -> SessionRecord | None:
        """Record tokens already spent; returns None if the session is gone."""
        with self._lock:
            now = self.clock()
            session = self.repository.get_session(session_id)
            if session is None or self._is_expired(session, now):
                return None
            updated = rate_limits.charge(session, LimitKind.TOKENS, amount, now)
            self.repository.save_session(updated)
        return updated

    def sweep_expired(self, now: datetime | None = None) -> list[UUID]:
        """Delete sessions older than the TTL and return their ids."""
        now = now or self.clock()
        with self._lock:
            expired = [
                session.id
                for session in self.repository.list_sessions()
                if self._is_expired(session, now)
            ]
            for session_id in expired:
                self.repository.delete_session(session_id)
        if expired:
            logger.info(
                "Cleaned up expired sessions",
                extra={"count": len(expired)},
            )
        return expired

    def _require(self, session_id: UUID, now: datetime) -> SessionRecord:
        session = self.repository.get_session(session_id)
        if session is None or self._is_expired(session, now):
            raise SessionNotFoundError(session_id)
        return session

    def _is_expired(self, session: SessionRecord, now: datetime) -> bool:
        return now - session.created_at > self.ttl
