"""Read-only projections over stored analysis records."""

from dataclasses import dataclass
from uuid import UUID

from image_analyzer.domain.analysis import AnalysisRecord, AnalysisStatus
from image_analyzer.errors import NotFoundError, ValidationError
from image_analyzer.services.analysis import AnalysisRepository
from image_analyzer.services.exports import ExportDocument, ExportFormat, render_export
from image_analyzer.services.sessions import SessionService
from image_analyzer.services.validation import parse_uuid

DEFAULT_HISTORY_LIMIT = 10
MAX_HISTORY_LIMIT = 50


@dataclass(frozen=True)
class HistoryPage:
    """A newest-first slice of a session's analyses."""

    session_id: UUID
    analyses: list[AnalysisRecord]
    total_count: int
    has_more: bool


@dataclass
class HistoryService:
    """Looks up single results, session history and exports."""

    repository: AnalysisRepository
    session_service: SessionService

    def get_result(self, request_id: object) -> AnalysisRecord:
        """Return the record for a request id."""
        parsed = parse_uuid(request_id, "requestId")
        record = self.repository.get_by_request_id(parsed)
        if record is None:
            raise NotFoundError(
                "Analysis request not found",
                [f"No analysis exists for request {parsed}"],
            )
        return record

    def history(self, session_id: object, limit: object = None) -> HistoryPage:
        """Return the newest analyses of a live session."""
        parsed_session = parse_uuid(session_id, "sessionId")
        page_size = parse_limit(limit)
        if self.session_service.get(parsed_session) is None:
            raise NotFoundError(
                "Session not found", [f"Session {parsed_session} does not exist"]
            )
        records = self.repository.list_session_analyses(parsed_session)
        # Ties on created_at keep the most recently stored record first.
        ordered = sorted(
            reversed(records), key=lambda record: record.created_at, reverse=True
        )
        return HistoryPage(
            session_id=parsed_session,
            analyses=ordered[:page_size],
            total_count=len(ordered),
            has_more=len(ordered) > page_size,
        )

    def export(
        self, request_id: object, export_format: object = None
    ) -> ExportDocument:
        """Render a completed analysis as a downloadable document."""
        parsed = parse_uuid(request_id, "requestId")
        resolved_format = parse_export_format(export_format)
        record = self.repository.get_by_request_id(parsed)
        if record is None or record.status is not AnalysisStatus.COMPLETED:
            raise NotFoundError(
                "Analysis result not found",
                [f"No completed analysis exists for request {parsed}"],
            )
        return render_export(record, resolved_format)


def parse_limit(value: object) -> int:
    """Parse a history page size within 1 and the maximum."""
    if value is None or value == "":
        return DEFAULT_HISTORY_LIMIT
    if isinstance(value, bool):
        raise ValidationError("Invalid limit: must be a number")
    if isinstance(value, int):
        limit = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdecimal():
        limit = int(value.strip())
    else:
        raise ValidationError(
            "Invalid limit: must be a number", [f"Received {value!r}"]
        )
    if not 1 <= limit <= MAX_HISTORY_LIMIT:
        raise ValidationError(
            f"Invalid limit: must be in range 1-{MAX_HISTORY_LIMIT}",
            [f"Received {limit}"],
        )
    return limit


def parse_export_format(value: object) -> ExportFormat:
    """Parse an export format name, ignoring case."""
    if value is None or value == "":
        return ExportFormat.JSON
    normalized = str(value).strip().lower()
    try:
        return ExportFormat(normalized)
    except ValueError as exc:
        supported = ", ".join(item.value for item in ExportFormat)
        raise ValidationError(
            f"Invalid format: {value}. Supported formats: {supported}",
            [f"format must be one of {supported}"],
        ) from exc
