"""FastAPI router for the file library endpoints."""
import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse

from aailar.chat.manager import get_manager
from aailar.config import get_config

from .schemas import FileDeleteRequest, FileMetadata, FileUploadedEvent
from .service import (
    FileStorageService,
    FileTooLargeError,
    UnknownCategoryError,
    UnsupportedFileTypeError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


def get_file_service() -> FileStorageService:
    return FileStorageService.get_instance(get_config().files)


def _get_existing(service: FileStorageService, file_id: str) -> FileMetadata:
    metadata = service.get_file(file_id)
    if not metadata:
        raise HTTPException(status_code=404, detail="File not found")
    return metadata


@router.get("", response_model=List[FileMetadata])
async def list_files() -> List[FileMetadata]:
    """All files, newest first."""
    return get_file_service().list_files()


@router.get("/category/{category}", response_model=List[FileMetadata])
async def list_files_by_category(category: str) -> List[FileMetadata]:
    return get_file_service().files_by_category(category)


@router.get("/search", response_model=List[FileMetadata])
async def search_files(
    q: str = "",
    category: Optional[str] = None,
    type: Optional[str] = None,
) -> List[FileMetadata]:
    """Search files by name, optionally narrowed by category and type.

    Example:
        GET /api/files/search?q=algebra&category=academic&type=pdf
    """
    return get_file_service().search_files(q, category, type)


@router.post("/upload")
async def upload_files(
    files: List[UploadFile] = File(...),
    category: str = Form(""),
    password: str = Form(""),
    uploaderName: str = Form("Anonymous"),
):
    """Upload one or more files into a category.

    Nothing is stored unless every file in the request passes validation.
    Every stored file is announced in the chat room as ``file-uploaded``.

    Raises:
        HTTPException 403: If the upload password is wrong
        HTTPException 400: If no files or an unknown category is given
        HTTPException 413: If a file exceeds the size limit
        HTTPException 415: If a file type is not allowed
    """
    config = get_config()
    if not password or password != config.secrets.file_upload_password:
        raise HTTPException(
            status_code=403,
            detail="Access denied. Invalid password required for file upload.",
        )
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if not category:
        raise HTTPException(status_code=400, detail="Category is required")

    service = get_file_service()
    manager = get_manager()

    # Validate the whole batch before storing anything
    batch = []
    for upload in files:
        content = await upload.read()
        mime_type = upload.content_type or "application/octet-stream"
        try:
            service.validate_upload(mime_type, len(content), category)
        except UnknownCategoryError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except UnsupportedFileTypeError as e:
            raise HTTPException(status_code=415, detail=str(e))
        except FileTooLargeError as e:
            raise HTTPException(status_code=413, detail=str(e))
        batch.append((upload.filename or "unnamed", content, mime_type))

    uploaded: List[FileMetadata] = []
    for original_name, content, mime_type in batch:
        try:
            metadata = service.save_file(
                original_name=original_name,
                content=content,
                mime_type=mime_type,
                category=category,
                uploader_name=uploaderName,
            )
        except OSError as e:
            logger.error(f"File upload failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to upload files")

        uploaded.append(metadata)
        logger.info(
            f"File uploaded: {metadata.original_name} "
            f"({metadata.size} bytes) to {category} by {metadata.uploader_name}"
        )
        await manager.notify_file_uploaded(
            FileUploadedEvent.from_metadata(metadata).model_dump()
        )

    return {
        "message": "Files uploaded successfully",
        "files": [m.model_dump() for m in uploaded],
    }


@router.get("/{file_id}/download")
async def download_file(file_id: str):
    """Download a file as an attachment.

    Raises:
        HTTPException 404: If file not found
    """
    service = get_file_service()
    metadata = _get_existing(service, file_id)

    file_path = service.get_file_path(file_id)
    if not file_path:
        raise HTTPException(status_code=404, detail="File not found on disk")

    return FileResponse(
        path=file_path,
        filename=metadata.original_name,
        media_type=metadata.mime_type,
    )


@router.get("/{file_id}/preview")
async def preview_file(file_id: str):
    """Serve a file inline with its stored MIME type."""
    service = get_file_service()
    metadata = _get_existing(service, file_id)

    file_path = service.get_file_path(file_id)
    if not file_path:
        raise HTTPException(status_code=404, detail="File not found on disk")

    return FileResponse(
        path=file_path,
        filename=metadata.original_name,
        media_type=metadata.mime_type,
        content_disposition_type="inline",
    )


@router.delete("/{file_id}")
async def delete_file(file_id: str, request: FileDeleteRequest):
    """Delete a file. Requires the file delete password in the JSON body.

    Raises:
        HTTPException 403: If the password is wrong
        HTTPException 404: If file not found
    """
    if not request.password or request.password != get_config().secrets.file_delete_password:
        raise HTTPException(
            status_code=403,
            detail="Access denied. Invalid password required for file deletion.",
        )

    service = get_file_service()
    metadata = service.delete_file(file_id)
    if metadata is None:
        raise HTTPException(status_code=404, detail="File not found")

    await get_manager().notify_file_deleted(metadata.id, metadata.original_name)
    return {"message": "File deleted successfully"}
