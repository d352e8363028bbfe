"""Upload handlers: adapt caller-supplied file dicts to the ingestion service."""

from typing import Any

from photovault.error_handling import DEFAULT_USER_MESSAGES, AuthenticationError, ErrorCategory, PhotoVaultError
from photovault.logging_config import get_logger, log_error
from photovault.models.upload import UploadedBlob
from photovault.services.auth import ActorResolver
from photovault.services.ingestion import IngestionService

logger = get_logger(__name__)


def _failure(filename: str | None, error: PhotoVaultError) -> dict[str, Any]:
    info = error.get_error_info()
    return {
        "success": False,
        "filename": filename,
        "error_code": info.code,
        "category": info.category.value,
        "message": info.user_message,
    }


def process_upload(auth_service: ActorResolver, service: IngestionService, file_info: dict[str, Any]) -> dict[str, Any]:
    """
    Ingest one file on behalf of the current user.

    Args:
        auth_service: Resolves the current actor
        service: Ingestion service
        file_info: ``{"filename": str, "data": bytes, "mime_type": str}``

    Returns:
        dict: ``success`` plus either ``image`` (record and signed URLs) or
        ``error_code``/``category``/``message``. Messages never contain
        internal details.
    """
    filename = file_info.get("filename")

    try:
        user = auth_service.ensure_authenticated()
    except AuthenticationError as e:
        logger.warning("upload_rejected_unauthenticated", filename=filename)
        return _failure(filename, e)

    blob = UploadedBlob(data=file_info.get("data") or b"", mime_type=file_info.get("mime_type") or "")
    logger.info("upload_processing_started", filename=filename, size=blob.size, user_id=user.user_id)

    try:
        ingested = service.ingest(user.user_id, blob, filename)
    except PhotoVaultError as e:
        logger.info("upload_processing_failed", filename=filename, error_code=e.code, category=e.category.value)
        return _failure(filename, e)
    except Exception as e:
        log_error(e, {"operation": "process_upload", "filename": filename, "user_id": user.user_id})
        return {
            "success": False,
            "filename": filename,
            "error_code": "internal_error",
            "category": ErrorCategory.UNKNOWN.value,
            "message": DEFAULT_USER_MESSAGES[ErrorCategory.UNKNOWN],
        }

    logger.info("upload_processing_completed", filename=filename, image_id=ingested.record.id)
    return {
        "success": True,
        "filename": filename,
        "image": ingested.to_dict(),
        "message": "Upload complete.",
    }


def process_batch_upload(
    auth_service: ActorResolver, service: IngestionService, files: list[dict[str, Any]]
) -> dict[str, Any]:
    """
    Ingest several files one after another.

    Returns:
        dict: Per-file results and success/failure counts
    """
    if not files:
        return {
            "success": True,
            "total_files": 0,
            "successful_uploads": 0,
            "failed_uploads": 0,
            "results": [],
            "message": "No files to process",
        }

    logger.info("batch_upload_started", total_files=len(files))
    results = [process_upload(auth_service, service, file_info) for file_info in files]
    successful = sum(1 for result in results if result["success"])
    failed = len(results) - successful

    logger.info("batch_upload_completed", total_files=len(files), successful=successful, failed=failed)
    return {
        "success": failed == 0,
        "total_files": len(files),
        "successful_uploads": successful,
        "failed_uploads": failed,
        "results": results,
        "message": f"Processed {len(files)} files: {successful} successful, {failed} failed",
    }
