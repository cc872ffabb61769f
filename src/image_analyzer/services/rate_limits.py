"""Per-session rate windows that reset on minute boundaries."""

import math
from dataclasses import dataclass
from datetime import datetime

from image_analyzer.domain.sessions import (
    LimitKind,
    RateLimitWindow,
    SessionRecord,
    next_minute_boundary,
    other_kind,
)
from image_analyzer.timestamps import to_iso


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate-limit check and the session state after it."""

    allowed: bool
    session: SessionRecord
    kind: LimitKind = LimitKind.REQUESTS

    @property
    def window(self) -> RateLimitWindow:
        return self.session.window(self.kind)


def initial_window(limit: int, now: datetime) -> RateLimitWindow:
    """Return a full window ending at the next minute boundary."""
    return RateLimitWindow(
        limit=limit, remaining=limit, reset_at=next_minute_boundary(now)
    )


def check_and_consume(
    session: SessionRecord, kind: LimitKind, amount: int, now: datetime
) -> RateLimitDecision:
    """Spend amount from the kind's window if enough budget remains.

    A denied check leaves the remaining budget untouched; only the window
    reset (if due) is applied to the returned session.
    """
    session = _reset_expired(session, kind, now)
    window = session.window(kind)
    if window.remaining < amount:
        return RateLimitDecision(allowed=False, session=session, kind=kind)
    consumed = RateLimitWindow(
        limit=window.limit,
        remaining=window.remaining - amount,
        reset_at=window.reset_at,
    )
    return RateLimitDecision(
        allowed=True, session=session.with_window(kind, consumed), kind=kind
    )


def charge(
    session: SessionRecord, kind: LimitKind, amount: int, now: datetime
) -> SessionRecord:
    """Record usage that already happened, draining the window to zero at most."""
    session = _reset_expired(session, kind, now)
    window = session.window(kind)
    drained = RateLimitWindow(
        limit=window.limit,
        remaining=max(0, window.remaining - amount),
        reset_at=window.reset_at,
    )
    return session.with_window(kind, drained)


def retry_after_seconds(window: RateLimitWindow, now: datetime) -> int:
    """Return whole seconds until the window resets, never less than one."""
    return max(1, math.ceil((window.reset_at - now).total_seconds()))


def limits_snapshot(session: SessionRecord) -> dict[str, dict[str, object]]:
    """Return both windows in wire format."""
    return {
        "requestsPerMinute": window_payload(session.requests_per_minute),
        "tokensPerMinute": window_payload(session.tokens_per_minute),
    }


def window_payload(window: RateLimitWindow) -> dict[str, object]:
    """Return one window in wire format."""
    return {
        "limit": window.limit,
        "remaining": window.remaining,
        "resetAt": to_iso(window.reset_at),
    }


def _reset_expired(
    session: SessionRecord, kind: LimitKind, now: datetime
) -> SessionRecord:
    window = session.window(kind)
    if not window.is_expired(now):
        return session
    boundary = next_minute_boundary(now)
    session = session.with_window(kind, window.reset(boundary))
    other = other_kind(kind)
    other_window = session.window(other)
    if other_window.is_expired(now):
        session = session.with_window(other, other_window.reset(boundary))
    return session
