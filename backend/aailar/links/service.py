"""Link library service for AAILAR.

Stores shared links in a DuckDB table. Links are listed newest first.
"""
import logging
from datetime import datetime
from typing import List, Optional

import duckdb
from pydantic import HttpUrl, TypeAdapter, ValidationError

from aailar.config import LinkSettings

from .schemas import LinkMetadata

logger = logging.getLogger(__name__)

_COLUMNS = "id, title, description, url, uploader_name, uploaded_at"

_HTTP_URL = TypeAdapter(HttpUrl)


class InvalidLinkError(ValueError):
    """Raised when a link is missing fields, too long, or not an absolute http(s) URL."""


class LinkLibraryService:
    """Service for managing the shared links library."""

    _instance: Optional["LinkLibraryService"] = None

    def __init__(self, settings: Optional[LinkSettings] = None) -> None:
        self.settings = settings or LinkSettings()
        self._db_path = self.settings.db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialize_db()

    @classmethod
    def get_instance(cls, settings: Optional[LinkSettings] = None) -> "LinkLibraryService":
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

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS shared_links (
                id VARCHAR PRIMARY KEY,
                title VARCHAR NOT NULL,
                description VARCHAR NOT NULL,
                url VARCHAR NOT NULL,
                uploader_name VARCHAR NOT NULL,
                uploaded_at TIMESTAMP NOT NULL
            )
        """)

    @staticmethod
    def _to_metadata(row) -> LinkMetadata:
        return LinkMetadata(
            id=row[0],
            title=row[1],
            description=row[2],
            url=row[3],
            uploader_name=row[4],
            uploaded_at=row[5].timestamp() if row[5] else 0,
        )

    def validate_link(self, title: str, description: str, url: str) -> None:
        """Check trimmed link fields.

        Raises:
            InvalidLinkError: If a field is empty or too long, or the URL is
                not an absolute http(s) URL.
        """
        if not title or not description or not url:
            raise InvalidLinkError("Title, description, and URL are required")

        try:
            _HTTP_URL.validate_python(url)
        except ValidationError:
            raise InvalidLinkError("Invalid URL format") from None

        if (
            len(title) > self.settings.max_title_length
            or len(description) > self.settings.max_description_length
            or len(url) > self.settings.max_url_length
        ):
            raise InvalidLinkError("Invalid input format or length")

    def add_link(
        self,
        title: str,
        description: str,
        url: str,
        uploader_name: str = "Anonymous",
    ) -> LinkMetadata:
        """Validate and store a link.

        Raises:
            InvalidLinkError: If the link fails validation
        """
        title, description, url = title.strip(), description.strip(), url.strip()
        self.validate_link(title, description, url)

        metadata = LinkMetadata(
            title=title,
            description=description,
            url=url,
            uploader_name=uploader_name or "Anonymous",
        )
        conn = self._get_connection()
        conn.execute(
            f"INSERT INTO shared_links ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            [
                metadata.id,
                metadata.title,
                metadata.description,
                metadata.url,
                metadata.uploader_name,
                datetime.fromtimestamp(metadata.uploaded_at),
            ]
        )
        logger.info(f"Link added: {metadata.title} ({metadata.url}) by {metadata.uploader_name}")
        return metadata

    def get_link(self, link_id: str) -> Optional[LinkMetadata]:
        conn = self._get_connection()
        result = conn.execute(
            f"SELECT {_COLUMNS} FROM shared_links WHERE id = ?",
            [link_id]
        ).fetchone()
        return self._to_metadata(result) if result else None

    def list_links(self) -> List[LinkMetadata]:
        """All links, newest first."""
        conn = self._get_connection()
        results = conn.execute(
            f"SELECT {_COLUMNS} FROM shared_links ORDER BY uploaded_at DESC, rowid DESC"
        ).fetchall()
        return [self._to_metadata(r) for r in results]

    def delete_link(self, link_id: str) -> Optional[LinkMetadata]:
        """Delete a link.

        Returns:
            The deleted link, or None if it did not exist.
        """
        metadata = self.get_link(link_id)
        if metadata is None:
            return None

        conn = self._get_connection()
        conn.execute("DELETE FROM shared_links WHERE id = ?", [link_id])
        logger.info(f"Deleted link {metadata.title} ({link_id})")
        return metadata
