"""In-memory video job repository."""

import threading
from dataclasses import dataclass, field
from uuid import UUID

from image_analyzer.domain.video import VideoJob
from image_analyzer.services.video import VideoJobRepository


@dataclass
class InMemoryVideoJobRepository(VideoJobRepository):
    """Video jobs keyed by job id, with a per-session index."""

    jobs: dict[UUID, VideoJob] = field(default_factory=dict)
    session_index: dict[UUID, list[UUID]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add_job(self, job: VideoJob) -> None:
        with self._lock:
            self.jobs[job.id] = job
            self.session_index.setdefault(job.session_id, []).append(job.id)

    def get_job(self, job_id: UUID) -> VideoJob | None:
        with self._lock:
            return self.jobs.get(job_id)

    def save_job(self, job: VideoJob) -> None:
        with self._lock:
            if job.id in self.jobs:
                self.jobs[job.id] = job

    def delete_session_jobs(self, session_id: UUID) -> int:
        with self._lock:
            job_ids = self.session_index.pop(session_id, [])
            return sum(1 for job_id in job_ids if self.jobs.pop(job_id, None))
