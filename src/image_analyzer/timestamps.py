"""Time helpers shared across services and the API."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def to_iso(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with milliseconds and a Z suffix."""
    return (
        value.astimezone(UTC)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )
