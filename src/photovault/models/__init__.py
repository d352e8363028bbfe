"""
Models module for photovault.

- ImageRecord: persistent metadata for an ingested photo
- UploadedBlob: raw upload bytes with their declared MIME type
- Database schema definitions
- DatabaseManager: DuckDB connection and schema management
"""

from .database import DatabaseManager, create_database
from .image import ImageRecord
from .schema import get_schema_statements, validate_schema_compatibility
from .upload import UploadedBlob

__all__ = [
    "ImageRecord",
    "UploadedBlob",
    "DatabaseManager",
    "create_database",
    "get_schema_statements",
    "validate_schema_compatibility",
]
