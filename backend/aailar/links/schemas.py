"""Pydantic schemas for the shared links library."""
import time
import uuid
from typing import Optional

from pydantic import BaseModel, Field


class LinkMetadata(BaseModel):
    """A shared link as stored in DuckDB."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique link ID")
    title: str = Field(..., description="Short title")
    description: str = Field(..., description="What the link points to")
    url: str = Field(..., description="Absolute URL")
    uploader_name: str = Field("Anonymous", description="Name given by the uploader")
    uploaded_at: float = Field(default_factory=time.time, description="Upload timestamp")


class LinkUploadRequest(BaseModel):
    """Body of POST /api/links/upload. Presence and format are checked by the router."""
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    password: Optional[str] = None
    uploaderName: Optional[str] = None


class LinkDeleteRequest(BaseModel):
    password: Optional[str] = None


class LinkUploadedEvent(BaseModel):
    """Chat notification for a newly shared link. Never carries the uploader's origin."""
    id: str
    title: str
    description: str
    url: str
    uploadedAt: float
    uploaderName: str

    @classmethod
    def from_metadata(cls, metadata: LinkMetadata) -> "LinkUploadedEvent":
        return cls(
            id=metadata.id,
            title=metadata.title,
            description=metadata.description,
            url=metadata.url,
            uploadedAt=metadata.uploaded_at,
            uploaderName=metadata.uploader_name,
        )
