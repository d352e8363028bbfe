"""Object-store path planning for image renditions."""

from typing import NamedTuple

PREVIEW_PREFIX = "previews"
FULL_PREFIX = "full"


class StoragePaths(NamedTuple):
    preview_path: str
    full_path: str


def check_path_segment(kind: str, value: str) -> None:
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        raise ValueError(f"Invalid {kind} for storage path: {value!r}")


def plan_storage_paths(owner_id: str, filename: str) -> StoragePaths:
    """
    Map an owner and a generated filename to the two rendition paths.

    The owner is always the first path segment, so two users can never
    produce the same path. Same inputs always give the same paths.

    Raises:
        ValueError: If either part is empty or not a single path segment
    """
    check_path_segment("owner id", owner_id)
    check_path_segment("filename", filename)
    return StoragePaths(
        preview_path=f"{owner_id}/{PREVIEW_PREFIX}/{filename}",
        full_path=f"{owner_id}/{FULL_PREFIX}/{filename}",
    )
