"""In-memory upload types."""

from dataclasses import dataclass


@dataclass(frozen=True)
class UploadedBlob:
    """Raw bytes of one uploaded file and the MIME type the client declared."""

    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def normalized_mime_type(self) -> str:
        """Lower-cased MIME type without parameters (``image/JPEG; q=1`` -> ``image/jpeg``)."""
        return self.mime_type.split(";", 1)[0].strip().lower()
