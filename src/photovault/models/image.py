"""
Image record model for photovault.

An ImageRecord is the persistent description of one ingested photo: where
its two renditions live in object storage and what they look like.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


@dataclass
class ImageRecord:
    """
    Metadata for a stored photo.

    ``filename`` is the generated storage name shared by both renditions;
    ``original_filename`` is whatever the uploader called the file and is
    only ever displayed. ``width``/``height`` describe the full rendition.
    """

    id: str
    user_id: str
    filename: str
    original_filename: str | None
    preview_path: str
    full_path: str
    file_size_preview: int | None
    file_size_full: int | None
    mime_type: str | None
    width: int | None
    height: int | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create_new(
        cls,
        user_id: str,
        filename: str,
        preview_path: str,
        full_path: str,
        file_size_preview: int,
        file_size_full: int,
        mime_type: str,
        width: int | None,
        height: int | None,
        original_filename: str | None = None,
        created_at: datetime | None = None,
    ) -> "ImageRecord":
        """
        Create a new ImageRecord with a generated ID and current timestamps.

        Args:
            user_id: Owner of the photo
            filename: Generated storage filename
            preview_path: Object-store path of the preview rendition
            full_path: Object-store path of the full rendition
            file_size_preview: Preview rendition size in bytes
            file_size_full: Full rendition size in bytes
            mime_type: MIME type of the stored renditions
            width: Full rendition width
            height: Full rendition height
            original_filename: Display name supplied by the uploader
            created_at: Creation time (defaults to now)

        Returns:
            New ImageRecord instance
        """
        now = created_at or datetime.now(UTC)
        return cls(
            id=str(uuid.uuid4()),
            user_id=user_id,
            filename=filename,
            original_filename=original_filename,
            preview_path=preview_path,
            full_path=full_path,
            file_size_preview=file_size_preview,
            file_size_full=file_size_full,
            mime_type=mime_type,
            width=width,
            height=height,
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "filename": self.filename,
            "original_filename": self.original_filename,
            "preview_path": self.preview_path,
            "full_path": self.full_path,
            "file_size_preview": self.file_size_preview,
            "file_size_full": self.file_size_full,
            "mime_type": self.mime_type,
            "width": self.width,
            "height": self.height,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImageRecord":
        """Create an ImageRecord from a dictionary (e.g. a database row)."""
        created_at = data["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)

        updated_at = data.get("updated_at") or created_at
        if isinstance(updated_at, str):
            updated_at = datetime.fromisoformat(updated_at)

        return cls(
            id=data["id"],
            user_id=data["user_id"],
            filename=data["filename"],
            original_filename=data.get("original_filename"),
            preview_path=data["preview_path"],
            full_path=data["full_path"],
            file_size_preview=data.get("file_size_preview"),
            file_size_full=data.get("file_size_full"),
            mime_type=data.get("mime_type"),
            width=data.get("width"),
            height=data.get("height"),
            created_at=_as_utc(created_at),
            updated_at=_as_utc(updated_at),
        )

    def validate(self) -> bool:
        """
        Validate the record.

        Returns:
            True if valid, False otherwise
        """
        if not self.id or not self.user_id or not self.filename:
            return False

        if not self.preview_path or not self.full_path:
            return False

        if self.preview_path == self.full_path:
            return False

        for size in (self.file_size_preview, self.file_size_full):
            if size is not None and size <= 0:
                return False

        if self.mime_type is not None and not self.mime_type.startswith("image/"):
            return False

        return True

    @property
    def display_name(self) -> str:
        """Name to show in listings."""
        return self.original_filename or self.filename


def _as_utc(value: datetime) -> datetime:
    # DuckDB returns naive timestamps for TIMESTAMP columns; rows are always written in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
