"""File endpoints: upload, list, download and delete files owned by the caller."""

import structlog
from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import Response

from faceauth.api.dependencies import get_correlation_id, get_services, require_identity, to_http_error
from faceauth.models.api_models import (
    ERROR_RESPONSES,
    ErrorResponse,
    FileListResponse,
    FileResponse,
    MessageResponse,
)
from faceauth.models.internal_models import Identity
from faceauth.services import ServiceContainer
from faceauth.services.errors import ServiceError

logger = structlog.get_logger()
router = APIRouter(
    prefix="/api/files",
    tags=["files"],
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "File not found"}}
)


@router.get("", response_model=FileListResponse)
async def list_files(
    request: Request,
    identity: Identity = Depends(require_identity),
    services: ServiceContainer = Depends(get_services)
) -> FileListResponse:
    try:
        files = await services.files.list_files(identity)
    except ServiceError as e:
        raise to_http_error(e, get_correlation_id(request))

    return FileListResponse(files=[f.to_response() for f in files], total=len(files))


@router.post("", response_model=FileResponse, status_code=201)
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    identity: Identity = Depends(require_identity),
    services: ServiceContainer = Depends(get_services)
) -> FileResponse:
    data = await file.read()
    content_type = file.content_type or "application/octet-stream"

    logger.info("Upload received", filename=file.filename, content_type=content_type, size=len(data))

    try:
        stored = await services.files.upload(identity, file.filename or "", content_type, data)
    except ServiceError as e:
        logger.warning("Upload rejected", error=e.message)
        raise to_http_error(e, get_correlation_id(request))

    return FileResponse(**stored.to_response())


@router.get("/{file_id}")
async def download_file(
    file_id: str,
    request: Request,
    identity: Identity = Depends(require_identity),
    services: ServiceContainer = Depends(get_services)
) -> Response:
    try:
        stored, data = await services.files.download(identity, file_id)
    except ServiceError as e:
        raise to_http_error(e, get_correlation_id(request))

    return Response(
        content=data,
        media_type=stored.content_type,
        headers={
            "Content-Disposition": f'inline; filename="{stored.filename}"',
            "Cache-Control": "private, max-age=3600",
        }
    )


@router.delete("/{file_id}", response_model=MessageResponse)
async def delete_file(
    file_id: str,
    request: Request,
    identity: Identity = Depends(require_identity),
    services: ServiceContainer = Depends(get_services)
) -> MessageResponse:
    try:
        await services.files.delete(identity, file_id)
    except ServiceError as e:
        raise to_http_error(e, get_correlation_id(request))

    return MessageResponse(message="File deleted successfully")
