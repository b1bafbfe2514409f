"""Pydantic schemas for the file library.

This module defines the data models for file sharing in AAILAR:
- FileMetadata: Complete file information stored in DuckDB
- FileUploadedEvent: Payload announced in the chat room after an upload
- FileDeleteRequest: Body of the password-gated delete endpoint
- FileKind: Coarse grouping derived from the MIME type (for display)

Files are stored flat in the upload directory under a timestamp-plus-random
name; the original filename is kept only in metadata.
"""
import time
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FileKind(str, Enum):
    """File type groups derived from MIME type.

    - IMAGE: JPEG, PNG, GIF
    - PDF: PDF documents
    - SPREADSHEET: Excel workbooks
    - OTHER: Anything else
    """
    IMAGE = "image"
    PDF = "pdf"
    SPREADSHEET = "spreadsheet"
    OTHER = "other"


class FileMetadata(BaseModel):
    """Metadata for an uploaded file."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique file ID")
    filename: str = Field(..., description="Filename on disk")
    original_name: str = Field(..., description="Original filename")
    mime_type: str = Field(..., description="MIME type of the file")
    size: int = Field(..., description="File size in bytes")
    category: str = Field(..., description="Library category")
    kind: FileKind = Field(FileKind.OTHER, description="File type group")
    uploader_name: str = Field("Anonymous", description="Name given by the uploader")
    uploaded_at: float = Field(default_factory=time.time, description="Upload timestamp")


class FileUploadedEvent(BaseModel):
    """Chat notification for a completed upload.

    Carries the fields a client needs to build an attachment reference.
    """
    id: str
    originalName: str
    mimeType: str
    size: int
    category: str
    uploadedAt: float
    uploaderName: str

    @classmethod
    def from_metadata(cls, metadata: FileMetadata) -> "FileUploadedEvent":
        return cls(
            id=metadata.id,
            originalName=metadata.original_name,
            mimeType=metadata.mime_type,
            size=metadata.size,
            category=metadata.category,
            uploadedAt=metadata.uploaded_at,
            uploaderName=metadata.uploader_name,
        )


class FileDeleteRequest(BaseModel):
    password: Optional[str] = None


_KIND_BY_MIME = {
    "image/jpeg": FileKind.IMAGE,
    "image/jpg": FileKind.IMAGE,
    "image/png": FileKind.IMAGE,
    "image/gif": FileKind.IMAGE,
    "application/pdf": FileKind.PDF,
    "application/vnd.ms-excel": FileKind.SPREADSHEET,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": FileKind.SPREADSHEET,
}


def get_file_kind(mime_type: str) -> FileKind:
    """Determine file type group from MIME type.

    Examples:
        >>> get_file_kind("image/png")
        <FileKind.IMAGE: 'image'>
        >>> get_file_kind("text/plain")
        <FileKind.OTHER: 'other'>
    """
    return _KIND_BY_MIME.get(mime_type, FileKind.OTHER)
