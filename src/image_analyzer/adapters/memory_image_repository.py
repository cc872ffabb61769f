"""In-memory image repository."""

import threading
from dataclasses import dataclass, field
from uuid import UUID

from image_analyzer.domain.images import StoredImage
from image_analyzer.services.images import ImageRepository


@dataclass
class InMemoryImageRepository(ImageRepository):
    """Process-local image store indexed by owning session."""

    images: dict[UUID, StoredImage] = field(default_factory=dict)
    session_index: dict[UUID, list[UUID]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add_images(self, images: list[StoredImage]) -> None:
        with self._lock:
            for image in images:
                self.images[image.id] = image
                self.session_index.setdefault(image.session_id, []).append(image.id)

    def get_image(self, image_id: UUID) -> StoredImage | None:
        with self._lock:
            return self.images.get(image_id)

    def list_session_images(self, session_id: UUID) -> list[StoredImage]:
        with self._lock:
            return [
                self.images[image_id]
                for image_id in self.session_index.get(session_id, [])
                if image_id in self.images
            ]

    def delete_session_images(self, session_id: UUID) -> int:
        with self._lock:
            image_ids = self.session_index.pop(session_id, [])
            return sum(
                1 for image_id in image_ids if self.images.pop(image_id, None)
            )
