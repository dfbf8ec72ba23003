# src/social_desk/api/endpoints/files.py
"""Media file upload, download and removal endpoints."""

from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from social_desk.api.dependencies import CurrentSession, FileStoreDep, LifecycleDep
from social_desk.api.errors import DomainError, to_http_exception
from social_desk.schemas import FileDeleteResponse, FileUploadResponse
from social_desk.services.lifecycle import UploadSource

router = APIRouter(tags=["files"])


@router.post("/upload", response_model=FileUploadResponse)
def upload_file(
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
    file: Annotated[UploadFile | None, File()] = None,
    post_id: Annotated[str | None, Form(alias="postId")] = None,
    filename: Annotated[str | None, Form()] = None,
) -> FileUploadResponse:
    """Attach an uploaded file to an existing post."""
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    if not post_id or not post_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="postId is required")

    upload = UploadSource(stream=file.file, filename=file.filename, content_type=file.content_type)
    try:
        stored = lifecycle.attach_file(current_session, post_id.strip(), upload, filename)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    return FileUploadResponse(
        message="File uploaded successfully",
        filename=stored.filename,
        path=str(stored.path),
    )


@router.get("/files/{post_id}/{filename}", response_class=FileResponse)
def download_file(
    post_id: str,
    filename: str,
    current_session: CurrentSession,
    store: FileStoreDep,
) -> FileResponse:
    """Stream a stored file inline with its inferred content type."""
    try:
        stored = store.retrieve(post_id, filename)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    return FileResponse(
        stored.path,
        media_type=stored.content_type,
        filename=stored.filename,
        content_disposition_type="inline",
    )


@router.delete("/files/{post_id}/{filename}", response_model=FileDeleteResponse)
def delete_file(
    post_id: str,
    filename: str,
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
) -> FileDeleteResponse:
    """Remove a stored file and drop it from its post."""
    try:
        lifecycle.detach_file(current_session, post_id, filename)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return FileDeleteResponse(message="File deleted successfully")
