"""File storage service for AAILAR.

Handles file storage on disk and metadata tracking in DuckDB.
Files are stored in: {upload_dir}/{timestamp}-{random}.{ext}
"""
import logging
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import duckdb

from aailar.config import FileSettings

from .schemas import FileKind, FileMetadata, get_file_kind

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, filename, original_name, mime_type, size, category, kind, "
    "uploader_name, uploaded_at"
)


class FileStoreError(ValueError):
    """Base class for rejected uploads."""


class FileTooLargeError(FileStoreError):
    pass


class UnsupportedFileTypeError(FileStoreError):
    pass


class UnknownCategoryError(FileStoreError):
    pass


class FileStorageService:
    """Service for managing the file library."""

    _instance: Optional["FileStorageService"] = None

    def __init__(self, settings: Optional[FileSettings] = None) -> None:
        """Initialize the file storage service."""
        self.settings = settings or FileSettings()
        self._upload_dir = Path(self.settings.upload_dir)
        self._db_path = self.settings.db_path

        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._ensure_upload_dir()
        self._initialize_db()

    @classmethod
    def get_instance(cls, settings: Optional[FileSettings] = None) -> "FileStorageService":
        """Get or create the singleton instance."""
        if cls._instance is None:
            cls._instance = cls(settings)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        if cls._instance:
            cls._instance.close()
        cls._instance = None

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _ensure_upload_dir(self) -> None:
        """Ensure the upload directory exists."""
        self._upload_dir.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Initialize the database schema."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS file_metadata (
                id VARCHAR PRIMARY KEY,
                filename VARCHAR NOT NULL,
                original_name VARCHAR NOT NULL,
                mime_type VARCHAR NOT NULL,
                size BIGINT NOT NULL,
                category VARCHAR NOT NULL,
                kind VARCHAR NOT NULL,
                uploader_name VARCHAR NOT NULL,
                uploaded_at TIMESTAMP NOT NULL
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_file_category ON file_metadata(category)
        """)

    @staticmethod
    def _to_metadata(row) -> FileMetadata:
        return FileMetadata(
            id=row[0],
            filename=row[1],
            original_name=row[2],
            mime_type=row[3],
            size=row[4],
            category=row[5],
            kind=FileKind(row[6]),
            uploader_name=row[7],
            uploaded_at=row[8].timestamp() if row[8] else 0,
        )

    def validate_upload(self, mime_type: str, size: int, category: str) -> None:
        """Check an upload against the configured limits.

        Raises:
            UnknownCategoryError: If the category is not configured.
            UnsupportedFileTypeError: If the MIME type is not allowed.
            FileTooLargeError: If the file exceeds the size limit.
        """
        if category not in self.settings.categories:
            raise UnknownCategoryError(f"Unknown category: {category}")
        if mime_type not in self.settings.allowed_mime_types:
            raise UnsupportedFileTypeError(f"File type not supported: {mime_type}")
        if size > self.settings.max_file_size_bytes:
            raise FileTooLargeError(
                f"File size ({size} bytes) exceeds limit "
                f"({self.settings.max_file_size_bytes} bytes)"
            )

    def save_file(
        self,
        original_name: str,
        content: bytes,
        mime_type: str,
        category: str,
        uploader_name: str = "Anonymous",
    ) -> FileMetadata:
        """Save an uploaded file to disk and record metadata.

        Args:
            original_name: Original filename
            content: File content as bytes
            mime_type: MIME type of the file
            category: Library category
            uploader_name: Name the uploader gave, if any

        Returns:
            FileMetadata object with file information

        Raises:
            FileStoreError: If the upload fails validation
        """
        self.validate_upload(mime_type, len(content), category)

        ext = Path(original_name).suffix.lower()
        stored_name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}{ext}"
        file_path = self._upload_dir / stored_name
        file_path.write_bytes(content)
        logger.info(f"Saved file: {file_path} ({len(content)} bytes)")

        metadata = FileMetadata(
            filename=stored_name,
            original_name=original_name,
            mime_type=mime_type,
            size=len(content),
            category=category,
            kind=get_file_kind(mime_type),
            uploader_name=uploader_name or "Anonymous",
        )

        conn = self._get_connection()
        conn.execute(
            f"""
            INSERT INTO file_metadata ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                metadata.id,
                metadata.filename,
                metadata.original_name,
                metadata.mime_type,
                metadata.size,
                metadata.category,
                metadata.kind.value,
                metadata.uploader_name,
                datetime.fromtimestamp(metadata.uploaded_at),
            ]
        )
        return metadata

    def get_file(self, file_id: str) -> Optional[FileMetadata]:
        """Get file metadata by ID."""
        conn = self._get_connection()
        result = conn.execute(
            f"SELECT {_COLUMNS} FROM file_metadata WHERE id = ?",
            [file_id]
        ).fetchone()
        return self._to_metadata(result) if result else None

    def get_file_path(self, file_id: str) -> Optional[Path]:
        """Get the file path on disk for a file ID."""
        metadata = self.get_file(file_id)
        if not metadata:
            return None

        file_path = self._upload_dir / metadata.filename
        if not file_path.exists():
            return None
        return file_path

    def list_files(self) -> List[FileMetadata]:
        """All files, newest first."""
        return self.search_files()

    def files_by_category(self, category: str) -> List[FileMetadata]:
        return self.search_files(category=category)

    def search_files(
        self,
        query: str = "",
        category: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> List[FileMetadata]:
        """Search the library.

        Args:
            query: Case-insensitive substring of the original filename.
            category: Exact category, or None / "all" for any.
            file_type: A FileKind value ("image", "pdf", ...), a full MIME
                type, or a MIME major type ("image"); None / "all" for any.

        Returns:
            Matching files, newest first.
        """
        clauses = []
        params: list = []

        if query:
            clauses.append("lower(original_name) LIKE ? ESCAPE '\\'")
            escaped = query.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            params.append(f"%{escaped}%")
        if category and category != "all":
            clauses.append("category = ?")
            params.append(category)
        if file_type and file_type != "all":
            clauses.append("(kind = ? OR mime_type = ? OR mime_type LIKE ?)")
            params.extend([file_type, file_type, f"{file_type}/%"])

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        conn = self._get_connection()
        results = conn.execute(
            f"SELECT {_COLUMNS} FROM file_metadata {where} ORDER BY uploaded_at DESC",
            params
        ).fetchall()
        return [self._to_metadata(r) for r in results]

    def delete_file(self, file_id: str) -> Optional[FileMetadata]:
        """Delete a file's bytes and metadata.

        Returns:
            The deleted file's metadata, or None if it did not exist.
        """
        metadata = self.get_file(file_id)
        if metadata is None:
            return None

        file_path = self._upload_dir / metadata.filename
        if file_path.exists():
            file_path.unlink()

        conn = self._get_connection()
        conn.execute("DELETE FROM file_metadata WHERE id = ?", [file_id])
        logger.info(f"Deleted file {metadata.original_name} ({file_id})")
        return metadata
