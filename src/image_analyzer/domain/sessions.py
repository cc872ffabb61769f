"""Domain models for client sessions and their rate windows."""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import UUID


class LimitKind(StrEnum):
    """Budget tracked per session."""

    REQUESTS = "requests"
    TOKENS = "tokens"


@dataclass(frozen=True)
class RateLimitWindow:
    """One per-minute budget counter."""

    limit: int
    remaining: int
    reset_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Return True once the window's reset time has been reached."""
        return now >= self.reset_at

    def reset(self, reset_at: datetime) -> "RateLimitWindow":
        """Return a full window ending at the given boundary."""
        return RateLimitWindow(
            limit=self.limit, remaining=self.limit, reset_at=reset_at
        )


@dataclass(frozen=True)
class SessionRecord:
    """Represents a live client session."""

    id: UUID
    created_at: datetime
    requests_per_minute: RateLimitWindow
    tokens_per_minute: RateLimitWindow

    def window(self, kind: LimitKind) -> RateLimitWindow:
        """Return the window tracking the given budget."""
        if kind is LimitKind.REQUESTS:
            return self.requests_per_minute
        return self.tokens_per_minute

    def with_window(self, kind: LimitKind, window: RateLimitWindow) -> "SessionRecord":
        """Return a copy with one window replaced."""
        if kind is LimitKind.REQUESTS:
            return replace(self, requests_per_minute=window)
        return replace(self, tokens_per_minute=window)


def other_kind(kind: LimitKind) -> LimitKind:
    """Return the budget that is not the given one."""
    if kind is LimitKind.REQUESTS:
        return LimitKind.TOKENS
    return LimitKind.REQUESTS


def next_minute_boundary(now: datetime) -> datetime:
    """Return the first whole minute strictly after now."""
    return now.replace(second=0, microsecond=0) + timedelta(minutes=1)
