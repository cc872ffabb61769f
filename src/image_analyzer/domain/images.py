"""Domain models for uploaded images."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class UploadedFile:
    """A file received from a client, before validation."""

    filename: str
    mime_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StoredImage:
    """An accepted image owned by a session."""

    id: UUID
    session_id: UUID
    original_name: str
    mime_type: str
    size_bytes: int
    data: bytes
    created_at: datetime
