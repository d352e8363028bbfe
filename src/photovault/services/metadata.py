"""
Image metadata repository backed by DuckDB.

Every query is scoped by owner: a user can only ever read or delete rows
whose ``user_id`` matches.
"""

from datetime import UTC, datetime
from typing import Protocol

import duckdb

from ..error_handling import MetadataError
from ..logging_config import get_logger, log_error, log_user_action
from ..models.database import DatabaseManager
from ..models.image import ImageRecord
from ..models.schema import IMAGE_COLUMNS
from ..utils.storage_paths import StoragePaths

logger = get_logger(__name__)

_SELECT_COLUMNS = ", ".join(IMAGE_COLUMNS)


class ImageRepository(Protocol):
    """Relational store for ImageRecords. Every method raises MetadataError on failure."""

    def insert(self, record: ImageRecord) -> ImageRecord:
        ...

    def get_by_id(self, image_id: str, user_id: str) -> ImageRecord | None:
        ...

    def list_by_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[ImageRecord]:
        ...

    def count_by_user(self, user_id: str) -> int:
        ...

    def delete(self, image_id: str, user_id: str) -> StoragePaths | None:
        ...


def _to_db_timestamp(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def _row_to_record(row: tuple) -> ImageRecord:
    return ImageRecord.from_dict(dict(zip(IMAGE_COLUMNS, row)))


class DuckDBImageRepository:
    """ImageRepository implementation over a DatabaseManager."""

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db_manager = db_manager

    def insert(self, record: ImageRecord) -> ImageRecord:
        """
        Insert a new record.

        Returns:
            The stored record

        Raises:
            MetadataError: If the record is invalid or the insert fails
        """
        if not record.validate():
            raise MetadataError(
                "Invalid image record",
                code="invalid_record",
                details={"image_id": record.id, "user_id": record.user_id},
            )

        try:
            self.db_manager.execute_query(
                f"INSERT INTO images ({_SELECT_COLUMNS}) VALUES ({', '.join('?' for _ in IMAGE_COLUMNS)})",
                (
                    record.id,
                    record.user_id,
                    record.filename,
                    record.original_filename,
                    record.preview_path,
                    record.full_path,
                    record.file_size_preview,
                    record.file_size_full,
                    record.mime_type,
                    record.width,
                    record.height,
                    _to_db_timestamp(record.created_at),
                    _to_db_timestamp(record.updated_at),
                ),
            )
        except duckdb.Error as e:
            log_error(e, {"operation": "insert_image", "image_id": record.id, "user_id": record.user_id})
            raise MetadataError(
                f"Failed to save image metadata: {e}",
                code="insert_failed",
                details={"image_id": record.id},
                original_exception=e,
            ) from e

        log_user_action(
            record.user_id,
            "image_metadata_saved",
            image_id=record.id,
            filename=record.filename,
            file_size_full=record.file_size_full,
        )
        return record

    def get_by_id(self, image_id: str, user_id: str) -> ImageRecord | None:
        """
        Get one of the user's images by ID.

        Returns:
            ImageRecord or None if not found (or owned by someone else)

        Raises:
            MetadataError: If the query fails
        """
        try:
            rows = self.db_manager.execute_query(
                f"SELECT {_SELECT_COLUMNS} FROM images WHERE id = ? AND user_id = ?",
                (image_id, user_id),
            )
        except duckdb.Error as e:
            raise MetadataError(
                f"Failed to get image by ID: {e}",
                code="query_failed",
                details={"image_id": image_id},
                original_exception=e,
            ) from e

        return _row_to_record(rows[0]) if rows else None

    def list_by_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[ImageRecord]:
        """
        Get the user's images, newest first.

        Raises:
            MetadataError: If the query fails
        """
        try:
            rows = self.db_manager.execute_query(
                f"""SELECT {_SELECT_COLUMNS} FROM images
                    WHERE user_id = ?
                    ORDER BY created_at DESC, id
                    LIMIT ? OFFSET ?""",
                (user_id, limit, offset),
            )
        except duckdb.Error as e:
            raise MetadataError(
                f"Failed to list images: {e}",
                code="query_failed",
                details={"user_id": user_id, "limit": limit, "offset": offset},
                original_exception=e,
            ) from e

        logger.debug("images_listed", user_id=user_id, count=len(rows), limit=limit, offset=offset)
        return [_row_to_record(row) for row in rows]

    def count_by_user(self, user_id: str) -> int:
        """
        Count the user's images.

        Raises:
            MetadataError: If the query fails
        """
        try:
            rows = self.db_manager.execute_query("SELECT COUNT(*) FROM images WHERE user_id = ?", (user_id,))
        except duckdb.Error as e:
            raise MetadataError(
                f"Failed to count images: {e}",
                code="query_failed",
                details={"user_id": user_id},
                original_exception=e,
            ) from e
        return int(rows[0][0]) if rows else 0

    def delete(self, image_id: str, user_id: str) -> StoragePaths | None:
        """
        Delete one of the user's images.

        Returns:
            The storage paths of the deleted record, or None if not found

        Raises:
            MetadataError: If deletion fails
        """
        try:
            rows = self.db_manager.execute_query(
                "DELETE FROM images WHERE id = ? AND user_id = ? RETURNING preview_path, full_path",
                (image_id, user_id),
            )
        except duckdb.Error as e:
            raise MetadataError(
                f"Failed to delete image metadata: {e}",
                code="delete_failed",
                details={"image_id": image_id},
                original_exception=e,
            ) from e

        if not rows:
            logger.warning("image_not_found_for_deletion", image_id=image_id, user_id=user_id)
            return None

        log_user_action(user_id, "image_metadata_deleted", image_id=image_id)
        return StoragePaths(preview_path=rows[0][0], full_path=rows[0][1])
