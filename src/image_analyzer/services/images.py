"""Upload validation and the image store interface."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID, uuid4

from image_analyzer.domain.images import StoredImage, UploadedFile
from image_analyzer.errors import ValidationError
from image_analyzer.services.sessions import SessionService
from image_analyzer.services.validation import require_session
from image_analyzer.timestamps import utcnow

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES: frozenset[str] = frozenset(
    {"image/jpeg", "image/png", "image/webp", "image/gif"}
)


class ImageRepository(Protocol):
    """Persistence interface for uploaded images."""

    def add_images(self, images: list[StoredImage]) -> None:
        """Store a batch of images in one step."""

    def get_image(self, image_id: UUID) -> StoredImage | None:
        """Return an image by id, if present."""

    def list_session_images(self, session_id: UUID) -> list[StoredImage]:
        """Return the images owned by a session."""

    def delete_session_images(self, session_id: UUID) -> int:
        """Delete every image owned by a session and return how many."""


@dataclass
class ImageService:
    """Validates uploads and stores accepted images."""

    repository: ImageRepository
    session_service: SessionService
    max_images: int = 5
    max_file_size_bytes: int = 5 * 1024 * 1024
    max_total_size_bytes: int = 20 * 1024 * 1024
    clock: Callable[[], datetime] = utcnow

    def upload(
        self, session_id: object, files: list[UploadedFile]
    ) -> list[StoredImage]:
        """Validate a batch of files and store all of them, or none."""
        session = require_session(self.session_service, session_id)
        self._validate(files)
        now = self.clock()
        images = [
            StoredImage(
                id=uuid4(),
                session_id=session.id,
                original_name=upload.filename,
                mime_type=upload.mime_type,
                size_bytes=upload.size_bytes,
                data=upload.data,
                created_at=now,
            )
            for upload in files
        ]
        self.repository.add_images(images)
        logger.info(
            "Images uploaded",
            extra={
                "session_id": str(session.id),
                "count": len(images),
                "total_size_bytes": sum(image.size_bytes for image in images),
            },
        )
        return images

    def get_owned_image(self, image_id: UUID, session_id: UUID) -> StoredImage | None:
        """Return an image only if the given session owns it."""
        image = self.repository.get_image(image_id)
        if image is None or image.session_id != session_id:
            return None
        return image

    def _validate(self, files: list[UploadedFile]) -> None:
        if not files:
            raise ValidationError("No files provided")
        if len(files) > self.max_images:
            raise ValidationError(
                f"Maximum {self.max_images} images allowed",
                [f"Received {len(files)} files, maximum is {self.max_images}"],
            )
        for upload in files:
            if upload.mime_type not in ALLOWED_MIME_TYPES:
                raise ValidationError(
                    f"Unsupported file format: {upload.mime_type}",
                    ["Only JPEG, PNG, WebP and GIF images are supported"],
                )
        total_size = sum(upload.size_bytes for upload in files)
        if total_size > self.max_total_size_bytes:
            raise ValidationError(
                "Total upload size exceeds maximum of "
                f"{_format_megabytes(self.max_total_size_bytes)}",
                [
                    f"Total size: {total_size} bytes, "
                    f"limit: {self.max_total_size_bytes} bytes"
                ],
            )
        for upload in files:
            if upload.size_bytes > self.max_file_size_bytes:
                raise ValidationError(
                    f"{upload.filename} exceeds maximum size limit of "
                    f"{_format_megabytes(self.max_file_size_bytes)}",
                    [
                        f"File size: {upload.size_bytes} bytes, "
                        f"limit: {self.max_file_size_bytes} bytes"
                    ],
                )


def _format_megabytes(size_bytes: int) -> str:
    megabytes = size_bytes / (1024 * 1024)
    if megabytes.is_integer():
        return f"{int(megabytes)}MB"
    return f"{megabytes:.1f}MB"
