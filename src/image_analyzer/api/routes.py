"""HTTP endpoints under /api/v1."""

from __future__ import annotations

import json
import mimetypes
from datetime import datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, File, Form, Query, Request, UploadFile, status
from fastapi.responses import JSONResponse, Response

from image_analyzer.domain.analysis import AnalysisStatus
from image_analyzer.domain.images import StoredImage, UploadedFile
from image_analyzer.domain.video import VideoStatus
from image_analyzer.errors import ValidationError
from image_analyzer.services import rate_limits
from image_analyzer.services.exports import result_payload, status_payload
from image_analyzer.services.video import video_payload
from image_analyzer.timestamps import to_iso, utcnow

if TYPE_CHECKING:
    from image_analyzer.containers import AppContainer

API_VERSION = "0.1.0"

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "healthy", "timestamp": to_iso(utcnow()), "version": API_VERSION}


@router.post("/session", status_code=status.HTTP_201_CREATED)
async def create_session(request: Request) -> dict[str, object]:
    """Open a session with fresh rate budgets."""
    container: AppContainer = request.app.state.container
    session = container.session_service.create()
    return {
        "sessionId": str(session.id),
        "createdAt": to_iso(session.created_at),
        "rateLimits": rate_limits.limits_snapshot(session),
    }


@router.post("/images", status_code=status.HTTP_201_CREATED)
async def upload_images(
    request: Request,
    session_id: str | None = Form(default=None, alias="sessionId"),
    images: list[UploadFile] | None = File(default=None),
) -> dict[str, object]:
    """Validate and store a batch of images for a session."""
    container: AppContainer = request.app.state.container
    files = [await _read_upload(upload) for upload in images or []]
    stored = container.image_service.upload(session_id, files)
    return {
        "images": [_image_payload(image) for image in stored],
        "totalSizeBytes": sum(image.size_bytes for image in stored),
        "sessionId": str(stored[0].session_id),
    }


@router.post("/analyze")
async def analyze(request: Request) -> JSONResponse:
    """Run a prompt and optional images through the analysis collaborator."""
    container: AppContainer = request.app.state.container
    payload = await _read_json(request)
    validated = container.analysis_validator.validate(payload)
    record = await container.analysis_service.run(validated)
    window = validated.session.requests_per_minute
    return JSONResponse(
        content=result_payload(record),
        headers=rate_limit_headers(window.limit, window.remaining, window.reset_at),
    )


@router.get("/analyze/{request_id}")
async def get_analysis(request_id: str, request: Request) -> JSONResponse:
    """Return a finished result, or its progress while it is still running."""
    container: AppContainer = request.app.state.container
    record = container.history_service.get_result(request_id)
    if record.status in {AnalysisStatus.PENDING, AnalysisStatus.PROCESSING}:
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=status_payload(record, utcnow()),
        )
    return JSONResponse(content=result_payload(record))


@router.get("/session/{session_id}/history")
async def session_history(
    session_id: str, request: Request, limit: str | None = None
) -> dict[str, object]:
    """Return a session's analyses, newest first."""
    container: AppContainer = request.app.state.container
    page = container.history_service.history(session_id, limit)
    return {
        "sessionId": str(page.session_id),
        "analyses": [result_payload(record) for record in page.analyses],
        "totalCount": page.total_count,
        "hasMore": page.has_more,
    }


@router.get("/export/{request_id}")
async def export_analysis(
    request_id: str,
    request: Request,
    export_format: str | None = Query(default=None, alias="format"),
) -> Response:
    """Download a completed analysis as JSON, Markdown or plain text."""
    container: AppContainer = request.app.state.container
    document = container.history_service.export(request_id, export_format)
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{document.filename}"'
        },
    )


@router.post("/video")
async def start_video(request: Request) -> JSONResponse:
    """Start a video generation job."""
    container: AppContainer = request.app.state.container
    payload = await _read_json(request)
    job = await container.video_service.start(payload)
    return JSONResponse(
        status_code=_video_status_code(job.status),
        content=video_payload(job, utcnow()),
    )


@router.get("/video/{operation_id}")
async def video_status(operation_id: str, request: Request) -> JSONResponse:
    """Poll a video generation job."""
    container: AppContainer = request.app.state.container
    job = await container.video_service.status(operation_id)
    return JSONResponse(
        status_code=_video_status_code(job.status),
        content=video_payload(job, utcnow()),
    )


@router.get("/video/{operation_id}/content")
async def video_content(operation_id: str, request: Request) -> Response:
    """Stream a finished video through the server."""
    container: AppContainer = request.app.state.container
    content = await container.video_service.content(operation_id)
    extension = mimetypes.guess_extension(content.mime_type) or ".mp4"
    filename = f"video-{operation_id}{extension}"
    return Response(
        content=content.data,
        media_type=content.mime_type,
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


def rate_limit_headers(
    limit: int, remaining: int, reset_at: datetime
) -> dict[str, str]:
    """Return the X-RateLimit headers for a window."""
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(int(reset_at.timestamp())),
    }


async def _read_json(request: Request) -> object:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError(
            "Invalid request body", ["Request body must be valid JSON"]
        ) from exc


async def _read_upload(upload: UploadFile) -> UploadedFile:
    filename = upload.filename or "upload"
    mime_type = upload.content_type or mimetypes.guess_type(filename)[0]
    return UploadedFile(
        filename=filename,
        mime_type=mime_type or "application/octet-stream",
        data=await upload.read(),
    )


def _image_payload(image: StoredImage) -> dict[str, object]:
    return {
        "id": str(image.id),
        "originalName": image.original_name,
        "mimeType": image.mime_type,
        "sizeBytes": image.size_bytes,
        "dimensions": {"width": None, "height": None},
    }


def _video_status_code(video_status: VideoStatus) -> int:
    if video_status is VideoStatus.PROCESSING:
        return status.HTTP_202_ACCEPTED
    return status.HTTP_200_OK
