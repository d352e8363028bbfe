"""
Derivative generation: one upload in, a preview and a full rendition out.

Both renditions are re-encoded from upright pixels, so no EXIF, GPS, XMP or
ICC block from the upload survives into either of them. That stripping is a
privacy requirement of the product, not a size optimisation.
"""

import time
import uuid
from dataclasses import dataclass

from ..config import IngestionSettings
from ..error_handling import ImageProcessingError
from ..logging_config import get_logger, log_performance
from .image_processor import OUTPUT_EXTENSION, OUTPUT_MIME_TYPE, DecodedImage, Derivative, ImageProcessor

logger = get_logger(__name__)


@dataclass(frozen=True)
class DerivativeProfile:
    """Encoding policy for one rendition class."""

    name: str
    max_width: int
    quality: int
    effort: int


@dataclass
class DerivativeSet:
    """The two renditions of one upload and their shared logical filename."""

    preview: Derivative
    full: Derivative
    filename: str
    mime_type: str
    source_width: int
    source_height: int
    source_format: str


def generate_filename() -> str:
    """Random, collision-resistant storage filename in the output format."""
    return f"{uuid.uuid4()}{OUTPUT_EXTENSION}"


class DerivativeGenerator:
    """Turns raw upload bytes into preview and full WebP renditions."""

    def __init__(self, processor: ImageProcessor, preview: DerivativeProfile, full: DerivativeProfile) -> None:
        self.processor = processor
        self.preview_profile = preview
        self.full_profile = full

    @classmethod
    def from_settings(cls, processor: ImageProcessor, settings: IngestionSettings) -> "DerivativeGenerator":
        return cls(
            processor,
            preview=DerivativeProfile(
                name="preview",
                max_width=settings.preview_width,
                quality=settings.preview_quality,
                effort=settings.preview_effort,
            ),
            full=DerivativeProfile(
                name="full",
                max_width=settings.full_width,
                quality=settings.full_quality,
                effort=settings.full_effort,
            ),
        )

    def generate(self, data: bytes) -> DerivativeSet:
        """
        Decode once, normalize orientation and colour once, encode both profiles.

        Args:
            data: Raw upload bytes

        Returns:
            DerivativeSet: Preview and full renditions plus a fresh filename

        Raises:
            DecodeError: If the data cannot be decoded (UnsupportedFormatError or CorruptImageError)
            ImageProcessingError: If encoding fails
        """
        start = time.perf_counter()
        logger.debug("derivative_generation_started", source_size=len(data))

        decoded = self.processor.decode(data)
        source_format = decoded.format
        oriented = self.processor.normalize_orientation(decoded)
        upright = self.processor.convert_to_srgb(oriented)

        try:
            preview = self._encode(upright, self.preview_profile)
            full = self._encode(upright, self.full_profile)
        finally:
            for image in (upright.image, oriented.image, decoded.image):
                image.close()

        derivatives = DerivativeSet(
            preview=preview,
            full=full,
            filename=generate_filename(),
            mime_type=OUTPUT_MIME_TYPE,
            source_width=upright.width,
            source_height=upright.height,
            source_format=source_format,
        )

        log_performance(
            "generate_derivatives",
            time.perf_counter() - start,
            source_format=source_format,
            source_size=len(data),
            source_dimensions=f"{upright.width}x{upright.height}",
            preview_dimensions=f"{preview.width}x{preview.height}",
            preview_size=preview.size,
            full_dimensions=f"{full.width}x{full.height}",
            full_size=full.size,
        )
        return derivatives

    def _encode(self, upright: DecodedImage, profile: DerivativeProfile) -> Derivative:
        try:
            return self.processor.encode(upright, profile.max_width, profile.quality, profile.effort)
        except (OSError, ValueError) as e:
            raise ImageProcessingError(
                f"Failed to encode {profile.name} rendition: {e}",
                code="encode_failed",
                details={
                    "profile": profile.name,
                    "max_width": profile.max_width,
                    "quality": profile.quality,
                    "effort": profile.effort,
                },
                original_exception=e,
            ) from e
