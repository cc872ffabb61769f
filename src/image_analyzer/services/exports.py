"""Wire payloads and download renderings for analysis records."""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

from image_analyzer.domain.analysis import AnalysisRecord, AnalysisStatus
from image_analyzer.timestamps import to_iso

_PROGRESS_BY_STATUS = {AnalysisStatus.PENDING: 0, AnalysisStatus.PROCESSING: 50}


class ExportFormat(StrEnum):
    """Supported export renderings."""

    JSON = "json"
    MARKDOWN = "markdown"
    TXT = "txt"

    @property
    def media_type(self) -> str:
        return {
            ExportFormat.JSON: "application/json",
            ExportFormat.MARKDOWN: "text/markdown",
            ExportFormat.TXT: "text/plain",
        }[self]

    @property
    def extension(self) -> str:
        return {
            ExportFormat.JSON: "json",
            ExportFormat.MARKDOWN: "md",
            ExportFormat.TXT: "txt",
        }[self]


@dataclass(frozen=True)
class ExportDocument:
    """A rendered export ready to be sent as a download."""

    content: str
    media_type: str
    filename: str


def result_payload(record: AnalysisRecord) -> dict[str, object]:
    """Return a finished record in the analysis response shape."""
    payload: dict[str, object] = {
        "id": str(record.id),
        "requestId": str(record.request_id),
        "status": record.status.value,
        "content": record.result.content if record.result else "",
        "format": record.result.format if record.result else "markdown",
    }
    if record.result and record.result.generated_images:
        payload["generatedImages"] = [
            {"mimeType": image.mime_type, "data": image.data}
            for image in record.result.generated_images
        ]
    return payload


def status_payload(record: AnalysisRecord, now: datetime) -> dict[str, object]:
    """Return an unfinished record in the polling response shape."""
    return {
        "requestId": str(record.request_id),
        "status": record.status.value,
        "estimatedCompletionTime": to_iso(now + timedelta(seconds=30)),
        "progressPercent": _PROGRESS_BY_STATUS.get(record.status, 0),
    }


def render_export(
    record: AnalysisRecord, export_format: ExportFormat
) -> ExportDocument:
    """Render a completed record in the requested format."""
    if export_format is ExportFormat.JSON:
        content = json.dumps(result_payload(record), indent=2, ensure_ascii=False)
    elif export_format is ExportFormat.MARKDOWN:
        content = _render_markdown(record)
    else:
        content = _render_text(record)
    return ExportDocument(
        content=content,
        media_type=export_format.media_type,
        filename=f"analysis-{record.request_id}.{export_format.extension}",
    )


def _render_markdown(record: AnalysisRecord) -> str:
    body = record.result.content if record.result else ""
    lines = [
        "# Analysis Result",
        "",
        f"- **Request ID:** {record.request_id}",
        f"- **Created:** {to_iso(record.created_at)}",
        f"- **Images:** {len(record.image_ids)}",
        "",
        "## Prompt",
        "",
        record.prompt,
        "",
        "## Result",
        "",
        body,
        "",
    ]
    return "\n".join(lines)


def _render_text(record: AnalysisRecord) -> str:
    body = record.result.content if record.result else ""
    lines = [
        "Analysis Result",
        "===============",
        f"Request ID: {record.request_id}",
        f"Created: {to_iso(record.created_at)}",
        f"Images: {len(record.image_ids)}",
        "",
        "Prompt:",
        record.prompt,
        "",
        "Result:",
        body,
        "",
    ]
    return "\n".join(lines)
