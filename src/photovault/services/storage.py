"""Object storage for photovault: the ObjectStore interface and its Google Cloud Storage implementation."""

from datetime import timedelta
from typing import Protocol

import google.auth
import google.auth.transport.requests
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.cloud import storage  # type: ignore[attr-defined]
from google.cloud.exceptions import GoogleCloudError, NotFound, PreconditionFailed

from ..error_handling import StorageError
from ..logging_config import get_logger

logger = get_logger(__name__)


class ObjectStore(Protocol):
    """Blob storage addressed by path. Every method raises StorageError on failure."""

    def put(self, path: str, data: bytes, content_type: str) -> None:
        ...

    def sign(self, path: str, ttl_seconds: int) -> str:
        ...

    def delete(self, paths: list[str]) -> None:
        ...


class GCSObjectStore:
    """ObjectStore backed by a single private Google Cloud Storage bucket."""

    def __init__(self, bucket_name: str, project_id: str, client: storage.Client | None = None) -> None:
        """
        Initialize the store.

        Args:
            bucket_name: Bucket holding every rendition
            project_id: GCP project ID
            client: Pre-built storage client (a new one is created when omitted)

        Raises:
            StorageError: If the client cannot be created
        """
        if not bucket_name:
            raise StorageError("GCS bucket name is required", code="storage_misconfigured")
        if not project_id:
            raise StorageError("GCP project ID is required", code="storage_misconfigured")

        self.bucket_name = bucket_name
        self.project_id = project_id

        try:
            self.client = client or storage.Client(project=project_id)
            self.bucket = self.client.bucket(bucket_name)
        except (GoogleCloudError, GoogleAuthError) as e:
            raise StorageError(
                f"Failed to initialize GCS client: {e}",
                code="storage_unavailable",
                details={"bucket": bucket_name},
                original_exception=e,
            ) from e

        self._credentials = None
        logger.info("object_store_initialized", bucket=bucket_name, project_id=project_id)

    def put(self, path: str, data: bytes, content_type: str) -> None:
        """
        Upload bytes to ``path``. Existing objects are never overwritten.

        Raises:
            StorageError: If the upload fails or the path is already taken
        """
        blob = self.bucket.blob(path)
        try:
            blob.upload_from_string(data, content_type=content_type, if_generation_match=0)
        except PreconditionFailed as e:
            raise StorageError(
                f"Object already exists: {path}",
                code="object_exists",
                details={"path": path},
                original_exception=e,
            ) from e
        except GoogleCloudError as e:
            raise StorageError(
                f"Failed to upload '{path}': {e}",
                code="upload_failed",
                details={"path": path, "file_size": len(data)},
                original_exception=e,
            ) from e
        except Exception as e:
            raise StorageError(
                f"Unexpected error uploading '{path}': {e}",
                code="upload_failed",
                details={"path": path, "file_size": len(data)},
                original_exception=e,
            ) from e

        logger.debug("object_uploaded", path=path, file_size=len(data), content_type=content_type)

    def sign(self, path: str, ttl_seconds: int) -> str:
        """
        Generate a V4 signed GET URL for ``path``.

        Raises:
            StorageError: If URL generation fails
        """
        try:
            credentials = self._signing_credentials()
            blob = self.bucket.blob(path)
            signed_url: str = blob.generate_signed_url(
                expiration=timedelta(seconds=ttl_seconds),
                method="GET",
                version="v4",
                service_account_email=getattr(credentials, "service_account_email", None),
                access_token=getattr(credentials, "token", None),
            )
        except (GoogleCloudError, GoogleAuthError, ValueError, AttributeError) as e:
            raise StorageError(
                f"Failed to generate signed URL for '{path}': {e}",
                code="signing_failed",
                details={"path": path, "ttl_seconds": ttl_seconds},
                original_exception=e,
            ) from e
        except Exception as e:
            raise StorageError(
                f"Unexpected error signing '{path}': {e}",
                code="signing_failed",
                details={"path": path, "ttl_seconds": ttl_seconds},
                original_exception=e,
            ) from e

        logger.debug("signed_url_generated", path=path, ttl_seconds=ttl_seconds)
        return signed_url

    def delete(self, paths: list[str]) -> None:
        """
        Delete every object in ``paths``. Missing objects count as deleted.

        All paths are attempted even when some fail.

        Raises:
            StorageError: If any deletion failed
        """
        failed: dict[str, str] = {}
        for path in paths:
            try:
                self.bucket.blob(path).delete()
                logger.info("object_deleted", path=path)
            except NotFound:
                logger.warning("object_not_found_for_deletion", path=path)
            except GoogleCloudError as e:
                failed[path] = str(e)
            except Exception as e:
                logger.error("object_delete_unexpected_error", path=path, error=str(e), error_type=type(e).__name__)
                failed[path] = str(e)

        if failed:
            raise StorageError(
                f"Failed to delete {len(failed)} of {len(paths)} objects",
                code="delete_failed",
                details={"failed_paths": sorted(failed)},
            )

    def _signing_credentials(self):
        # Workload credentials on Cloud Run carry no private key; signing goes
        # through the IAM signBlob API using a fresh access token instead.
        if self._credentials is None:
            self._credentials, _ = google.auth.default()
        if not getattr(self._credentials, "valid", False):
            try:
                self._credentials.refresh(google.auth.transport.requests.Request())
            except RefreshError as e:
                logger.warning("credentials_refresh_failed", error=str(e))
        return self._credentials
