"""In-memory analysis record repository."""

import threading
from dataclasses import dataclass, field
from uuid import UUID

from image_analyzer.domain.analysis import AnalysisRecord
from image_analyzer.services.analysis import AnalysisRepository


@dataclass
class InMemoryAnalysisRepository(AnalysisRepository):
    """Analysis records keyed by request id, with a per-session index."""

    records: dict[UUID, AnalysisRecord] = field(default_factory=dict)
    session_index: dict[UUID, list[UUID]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add_analysis(self, record: AnalysisRecord) -> None:
        with self._lock:
            self.records[record.request_id] = record
            self.session_index.setdefault(record.session_id, []).append(
                record.request_id
            )

    def get_by_request_id(self, request_id: UUID) -> AnalysisRecord | None:
        with self._lock:
            return self.records.get(request_id)

    def list_session_analyses(self, session_id: UUID) -> list[AnalysisRecord]:
        with self._lock:
            return [
                self.records[request_id]
                for request_id in self.session_index.get(session_id, [])
                if request_id in self.records
            ]

    def delete_session_analyses(self, session_id: UUID) -> int:
        with self._lock:
            request_ids = self.session_index.pop(session_id, [])
            return sum(
                1 for request_id in request_ids if self.records.pop(request_id, None)
            )
