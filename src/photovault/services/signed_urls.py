"""Short-lived read URLs for stored renditions."""

from ..error_handling import SigningError, StorageError
from ..logging_config import get_logger
from .storage import ObjectStore

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600


class SignedUrlIssuer:
    """
    Requests signed read URLs from the object store.

    Signing never fails the caller: a backend error is recorded as a
    SigningError and the URL is reported as ``None`` ("display unavailable").
    """

    def __init__(self, object_store: ObjectStore, default_ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self.object_store = object_store
        self.default_ttl_seconds = default_ttl_seconds

    def sign(self, path: str, ttl_seconds: int | None = None) -> str | None:
        try:
            return self._request(path, ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds)
        except SigningError:
            return None

    def _request(self, path: str, ttl: int) -> str:
        try:
            return self.object_store.sign(path, ttl)
        except StorageError as e:
            raise SigningError(
                f"Signed URL unavailable for '{path}'",
                details={"path": path, "ttl_seconds": ttl, "storage_code": e.code},
                original_exception=e,
            ) from e
        except Exception as e:
            raise SigningError(
                f"Unexpected error signing '{path}': {e}",
                details={"path": path, "ttl_seconds": ttl},
                original_exception=e,
            ) from e

    def sign_many(self, paths: list[str], ttl_seconds: int | None = None) -> dict[str, str | None]:
        """Sign several paths; each failure only affects its own entry."""
        urls = {path: self.sign(path, ttl_seconds) for path in paths}
        missing = [path for path, url in urls.items() if url is None]
        if missing:
            logger.warning("signed_urls_partially_unavailable", requested=len(paths), unavailable=len(missing))
        return urls
