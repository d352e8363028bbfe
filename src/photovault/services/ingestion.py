"""
Image ingestion: turn one upload into two stored renditions and a metadata row.

Steps, in order:

1. Validate the declared MIME type and the size. Nothing else has happened yet.
2. Generate the preview and full WebP renditions (metadata stripped).
3. Plan both object-store paths under the owner's prefix.
4. Upload both renditions concurrently and wait for both.
5. Insert the ImageRecord.
6. Sign short-lived read URLs for both renditions.

Steps 4 and 5 touch two systems that share no transaction. Each object that
is successfully stored registers a compensating delete, so a failure at
step 4 or 5 leaves neither stray objects nor a dangling record behind.
Signing failures at step 6 are not fatal.
"""

import threading
import time
from concurrent.futures import ALL_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from functools import partial
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any

from ..config import Config, IngestionSettings, get_config, get_database_path, get_gcs_bucket, get_project_id
from ..error_handling import MetadataError, StorageError, ValidationError
from ..logging_config import get_logger, log_performance, log_user_action
from ..models.database import create_database
from ..models.image import ImageRecord
from ..models.upload import UploadedBlob
from ..utils.storage_paths import StoragePaths, check_path_segment, plan_storage_paths
from .compensation import CompensationPlan
from .derivatives import DerivativeGenerator, DerivativeSet
from .image_processor import ImageProcessor
from .metadata import DuckDBImageRepository, ImageRepository
from .signed_urls import SignedUrlIssuer
from .storage import GCSObjectStore, ObjectStore

logger = get_logger(__name__)

MAX_ORIGINAL_FILENAME_LENGTH = 1000


@dataclass
class IngestedImage:
    """A stored image together with its signed read URLs (``None`` when unavailable)."""

    record: ImageRecord
    preview_url: str | None
    full_url: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.record.to_dict(),
            "display_name": self.record.display_name,
            "preview_url": self.preview_url,
            "full_url": self.full_url,
        }


def sanitize_original_filename(name: str | None) -> str | None:
    """
    Reduce an uploader-supplied filename to something safe to display.

    Directory components are dropped, angle brackets removed and the result
    capped at 1000 characters. Returns None when nothing usable remains.
    """
    if not name:
        return None
    base = PureWindowsPath(PurePosixPath(name).name).name
    cleaned = base.replace("<", "").replace(">", "").strip()[:MAX_ORIGINAL_FILENAME_LENGTH]
    return cleaned or None


class IngestionService:
    """
    Runs the ingestion pipeline against injected collaborators.

    The service owns a small thread pool used for the concurrent uploads;
    call ``close()`` (or use it as a context manager) to release it.
    """

    def __init__(
        self,
        generator: DerivativeGenerator,
        object_store: ObjectStore,
        repository: ImageRepository,
        signer: SignedUrlIssuer,
        settings: IngestionSettings | None = None,
    ) -> None:
        self.generator = generator
        self.object_store = object_store
        self.repository = repository
        self.signer = signer
        self.settings = settings or IngestionSettings()

        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.settings.upload_concurrency, thread_name_prefix="photovault-upload"
                )
            return self._executor

    def close(self) -> None:
        """Shut down the upload thread pool."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def __enter__(self) -> "IngestionService":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def validate(self, owner_id: str, blob: UploadedBlob) -> None:
        """
        Reject uploads that must not be processed.

        Raises:
            ValidationError: On an unusable owner, a disallowed MIME type or an oversized file
        """
        try:
            check_path_segment("owner id", owner_id)
        except ValueError as e:
            raise ValidationError(
                "Owner id is missing or malformed",
                code="invalid_owner",
                details={"owner_id": owner_id},
                original_exception=e,
            ) from e

        mime_type = blob.normalized_mime_type
        if mime_type not in self.settings.allowed_mime_types:
            raise ValidationError(
                f"Unsupported file type: {mime_type or 'unknown'}",
                code="unsupported_type",
                user_message="Only JPEG, PNG, WebP, GIF and HEIC images can be uploaded.",
                details={"mime_type": mime_type, "allowed": sorted(self.settings.allowed_mime_types)},
            )

        if blob.size > self.settings.max_upload_bytes:
            raise ValidationError(
                f"File too large: {blob.size} bytes (max {self.settings.max_upload_bytes})",
                code="file_too_large",
                user_message=f"Files may be at most {self.settings.max_upload_mib:g} MB.",
                details={"file_size": blob.size, "max_upload_bytes": self.settings.max_upload_bytes},
            )

    def ingest(self, owner_id: str, blob: UploadedBlob, declared_filename: str | None = None) -> IngestedImage:
        """
        Ingest one upload.

        Args:
            owner_id: Authenticated owner of the upload
            blob: Upload bytes and declared MIME type
            declared_filename: Filename supplied by the client, kept for display only

        Returns:
            IngestedImage: The stored record and its signed URLs

        Raises:
            ValidationError: Upload rejected; no I/O performed
            ImageProcessingError: Bytes could not be decoded or encoded; nothing stored
            StorageError: An upload failed; already-stored objects were deleted
            MetadataError: The record could not be saved; both objects were deleted
        """
        start = time.perf_counter()
        self.validate(owner_id, blob)

        derivatives = self.generator.generate(blob.data)
        paths = plan_storage_paths(owner_id, derivatives.filename)

        plan = CompensationPlan(operation="ingest")
        self._store_renditions(paths, derivatives, plan)
        record = self._save_record(owner_id, derivatives, paths, declared_filename, plan)

        urls = self.signer.sign_many([paths.preview_path, paths.full_path], self.settings.signed_url_ttl_seconds)
        ingested = IngestedImage(record=record, preview_url=urls[paths.preview_path], full_url=urls[paths.full_path])

        log_user_action(
            owner_id,
            "image_ingested",
            image_id=record.id,
            filename=record.filename,
            source_format=derivatives.source_format,
            file_size_preview=record.file_size_preview,
            file_size_full=record.file_size_full,
        )
        log_performance("ingest_image", time.perf_counter() - start, image_id=record.id, source_size=blob.size)
        return ingested

    def _store_renditions(self, paths: StoragePaths, derivatives: DerivativeSet, plan: CompensationPlan) -> None:
        executor = self._get_executor()
        uploads: dict[Future, str] = {
            executor.submit(self.object_store.put, paths.preview_path, derivatives.preview.data, derivatives.mime_type): (
                paths.preview_path
            ),
            executor.submit(self.object_store.put, paths.full_path, derivatives.full.data, derivatives.mime_type): (
                paths.full_path
            ),
        }
        wait(uploads, return_when=ALL_COMPLETED)

        failures: dict[str, BaseException] = {}
        for future, path in uploads.items():
            error = future.exception()
            if error is None:
                plan.register(f"delete {path}", partial(self.object_store.delete, [path]))
            else:
                failures[path] = error

        if not failures:
            return

        logger.warning("rendition_upload_failed", failed_paths=sorted(failures), stored=len(plan))
        plan.run()

        first_error = next(iter(failures.values()))
        if isinstance(first_error, StorageError) and len(failures) == 1:
            raise first_error
        raise StorageError(
            f"Failed to store {len(failures)} of {len(uploads)} renditions",
            code="upload_failed",
            details={"failed_paths": sorted(failures)},
            original_exception=first_error if isinstance(first_error, Exception) else None,
        ) from first_error

    def _save_record(
        self,
        owner_id: str,
        derivatives: DerivativeSet,
        paths: StoragePaths,
        declared_filename: str | None,
        plan: CompensationPlan,
    ) -> ImageRecord:
        record = ImageRecord.create_new(
            user_id=owner_id,
            filename=derivatives.filename,
            preview_path=paths.preview_path,
            full_path=paths.full_path,
            file_size_preview=derivatives.preview.size,
            file_size_full=derivatives.full.size,
            mime_type=derivatives.mime_type,
            width=derivatives.full.width,
            height=derivatives.full.height,
            original_filename=sanitize_original_filename(declared_filename),
        )

        try:
            return self.repository.insert(record)
        except MetadataError:
            plan.run()
            raise
        except Exception as e:
            plan.run()
            raise MetadataError(
                f"Unexpected error saving image metadata: {e}",
                code="insert_failed",
                details={"image_id": record.id},
                original_exception=e,
            ) from e


def create_ingestion_service(config: Config | None = None) -> IngestionService:
    """
    Build the production service: GCS object store and a DuckDB repository.

    Raises:
        ValueError: If required configuration is missing or invalid
        StorageError: If the storage client cannot be created
        RuntimeError: If the database cannot be opened
    """
    config = config or get_config()
    settings = IngestionSettings.from_config(config)

    object_store = GCSObjectStore(get_gcs_bucket(config), get_project_id(config))
    repository = DuckDBImageRepository(create_database(get_database_path(config)))
    generator = DerivativeGenerator.from_settings(ImageProcessor(), settings)
    signer = SignedUrlIssuer(object_store, settings.signed_url_ttl_seconds)

    logger.info(
        "ingestion_service_created",
        max_upload_bytes=settings.max_upload_bytes,
        preview_width=settings.preview_width,
        full_width=settings.full_width,
    )
    return IngestionService(generator, object_store, repository, signer, settings)
