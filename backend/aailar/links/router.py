"""FastAPI router for the shared links library.

Endpoints:
    GET    /api/links         - All links, newest first
    POST   /api/links/upload  - Share a link (password in JSON body)
    DELETE /api/links/{id}    - Remove a link (password in JSON body)
"""
import logging
from typing import List

from fastapi import APIRouter, HTTPException

from aailar.chat.manager import get_manager
from aailar.config import get_config

from .schemas import LinkDeleteRequest, LinkMetadata, LinkUploadRequest, LinkUploadedEvent
from .service import InvalidLinkError, LinkLibraryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/links", tags=["links"])


def get_link_service() -> LinkLibraryService:
    return LinkLibraryService.get_instance(get_config().links)


@router.get("", response_model=List[LinkMetadata])
async def list_links() -> List[LinkMetadata]:
    return get_link_service().list_links()


@router.post("/upload", response_model=LinkMetadata)
async def upload_link(request: LinkUploadRequest) -> LinkMetadata:
    """Share a link and announce it in the chat room as ``link-uploaded``.

    Raises:
        HTTPException 403: If the upload password is wrong
        HTTPException 400: If a field is missing, too long, or the URL is invalid
    """
    if not request.password or request.password != get_config().secrets.link_upload_password:
        raise HTTPException(
            status_code=403,
            detail="Access denied. Invalid password required for link upload.",
        )

    try:
        metadata = get_link_service().add_link(
            title=request.title or "",
            description=request.description or "",
            url=request.url or "",
            uploader_name=request.uploaderName or "Anonymous",
        )
    except InvalidLinkError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await get_manager().notify_link_uploaded(
        LinkUploadedEvent.from_metadata(metadata).model_dump()
    )
    return metadata


@router.delete("/{link_id}")
async def delete_link(link_id: str, request: LinkDeleteRequest):
    """Delete a link. Requires the link delete password in the JSON body.

    Raises:
        HTTPException 403: If the password is wrong
        HTTPException 404: If link not found
    """
    if not request.password or request.password != get_config().secrets.link_delete_password:
        raise HTTPException(
            status_code=403,
            detail="Access denied. Invalid password required for link deletion.",
        )

    metadata = get_link_service().delete_link(link_id)
    if metadata is None:
        raise HTTPException(status_code=404, detail="Link not found")

    await get_manager().notify_link_deleted(metadata.id, metadata.title)
    return {"message": "Link deleted successfully"}
