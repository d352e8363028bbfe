"""Read and delete paths over ingested images."""

from dataclasses import dataclass, field

from ..error_handling import StorageError, ValidationError
from ..logging_config import get_logger, log_user_action, timed_operation
from ..models.image import ImageRecord
from .ingestion import IngestedImage
from .metadata import ImageRepository
from .signed_urls import SignedUrlIssuer
from .storage import ObjectStore

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class ImagePage:
    """One page of a user's images, newest first."""

    images: list[IngestedImage] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    total: int = 0

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


class PhotoLibrary:
    """Owner-scoped listing, lookup and deletion of stored images."""

    def __init__(self, repository: ImageRepository, object_store: ObjectStore, signer: SignedUrlIssuer) -> None:
        self.repository = repository
        self.object_store = object_store
        self.signer = signer

    def _with_urls(self, record: ImageRecord) -> IngestedImage:
        urls = self.signer.sign_many([record.preview_path, record.full_path])
        return IngestedImage(record=record, preview_url=urls[record.preview_path], full_url=urls[record.full_path])

    def list_images(self, user_id: str, page: int = 1, limit: int = 20) -> ImagePage:
        """
        List a page of the user's images with signed URLs.

        Raises:
            ValidationError: If page or limit is out of range
            MetadataError: If the query fails
        """
        if page < 1:
            raise ValidationError(f"Invalid page: {page}", code="invalid_page", details={"page": page})
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"Invalid limit: {limit}",
                code="invalid_limit",
                details={"limit": limit, "max": MAX_PAGE_SIZE},
            )

        with timed_operation("list_images", user_id=user_id, page=page, limit=limit) as extra:
            records = self.repository.list_by_user(user_id, limit=limit, offset=(page - 1) * limit)
            total = self.repository.count_by_user(user_id)
            images = [self._with_urls(record) for record in records]
            extra.update(returned=len(images), total=total)
        return ImagePage(images=images, page=page, limit=limit, total=total)

    def get_image(self, image_id: str, user_id: str) -> IngestedImage | None:
        record = self.repository.get_by_id(image_id, user_id)
        if record is None:
            return None
        return self._with_urls(record)

    def delete_image(self, image_id: str, user_id: str) -> bool:
        """
        Delete one of the user's images.

        The record goes first so the image disappears from every listing even
        if the object store is unavailable; objects that cannot be deleted are
        logged and left behind.

        Returns:
            True if the image existed and was deleted, False if not found

        Raises:
            MetadataError: If the record could not be deleted
        """
        paths = self.repository.delete(image_id, user_id)
        if paths is None:
            return False

        try:
            self.object_store.delete([paths.preview_path, paths.full_path])
        except StorageError as e:
            logger.error(
                "orphaned_objects_after_delete",
                image_id=image_id,
                user_id=user_id,
                paths=[paths.preview_path, paths.full_path],
                error=str(e),
            )

        log_user_action(user_id, "image_deleted", image_id=image_id)
        return True
