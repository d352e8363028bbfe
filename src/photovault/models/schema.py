"""
Database schema definitions for photovault.

Timestamps are stored as naive UTC TIMESTAMP values.
"""

IMAGES_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS images (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    filename TEXT NOT NULL,
    original_filename TEXT,
    preview_path TEXT NOT NULL,
    full_path TEXT NOT NULL,
    file_size_preview INTEGER,
    file_size_full INTEGER,
    mime_type TEXT,
    width INTEGER,
    height INTEGER,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CHECK (preview_path <> full_path)
);
"""

IMAGES_TABLE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_images_user_id ON images(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_images_created_at ON images(created_at);",
]

IMAGE_COLUMNS = (
    "id",
    "user_id",
    "filename",
    "original_filename",
    "preview_path",
    "full_path",
    "file_size_preview",
    "file_size_full",
    "mime_type",
    "width",
    "height",
    "created_at",
    "updated_at",
)


def get_schema_statements() -> list[str]:
    """
    Get all database schema creation statements.

    Returns:
        List of SQL statements to create tables and indexes
    """
    return [IMAGES_TABLE_SCHEMA, *IMAGES_TABLE_INDEXES]


def validate_schema_compatibility() -> bool:
    """Check that every ImageRecord column appears in the table definition."""
    schema_lower = IMAGES_TABLE_SCHEMA.lower()
    return all(column in schema_lower for column in IMAGE_COLUMNS)
