"""Image decoding and WebP encoding for photovault."""

import io
import math
from dataclasses import dataclass
from typing import Any

from PIL import Image, ImageCms, ImageOps, UnidentifiedImageError

from ..error_handling import CorruptImageError, ImageProcessingError, UnsupportedFormatError
from ..logging_config import get_logger

try:
    from pillow_heif import register_heif_opener  # type: ignore[import-untyped]

    register_heif_opener()
    HEIF_AVAILABLE = True
except ImportError:
    HEIF_AVAILABLE = False

logger = get_logger(__name__)

OUTPUT_FORMAT = "WEBP"
OUTPUT_MIME_TYPE = "image/webp"
OUTPUT_EXTENSION = ".webp"

EXIF_ORIENTATION_TAG = 0x0112
EXIF_GPS_IFD = 0x8825

# ISO-BMFF brands used by HEIC/HEIF files (bytes 8-12, after the "ftyp" box type)
HEIF_BRANDS = {b"heic", b"heix", b"hevc", b"hevx", b"heim", b"heis", b"hevm", b"hevs", b"mif1", b"msf1"}

# Orientations whose transform swaps width and height
TRANSPOSING_ORIENTATIONS = {5, 6, 7, 8}


@dataclass
class DecodedImage:
    """An uploaded image decoded in memory."""

    image: Image.Image
    width: int
    height: int
    format: str
    orientation: int = 1


@dataclass
class Derivative:
    """A re-encoded rendition of an uploaded image."""

    data: bytes
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.data)


def looks_like_heif(data: bytes) -> bool:
    """Check for an ISO-BMFF ``ftyp`` box carrying a HEIF brand."""
    return len(data) >= 12 and data[4:8] == b"ftyp" and data[8:12] in HEIF_BRANDS


class ImageProcessor:
    """Wraps Pillow: decodes arbitrary uploads and re-encodes them as WebP."""

    def __init__(self) -> None:
        if not HEIF_AVAILABLE:
            logger.warning(
                "heif_support_unavailable",
                message="Install pillow-heif for HEIC support",
            )

    def decode(self, data: bytes) -> DecodedImage:
        """
        Decode raw bytes into an image.

        Args:
            data: Raw bytes claimed to be an image

        Returns:
            DecodedImage: Pixel data with natural size, format and orientation

        Raises:
            UnsupportedFormatError: If the bytes are a known container Pillow cannot decode here
            CorruptImageError: If the bytes are empty, not an image, or damaged
        """
        if not data:
            raise CorruptImageError("Image data is empty", details={"file_size": 0})

        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except Image.DecompressionBombError as e:
            raise CorruptImageError(
                f"Image exceeds the pixel limit: {e}",
                details={"file_size": len(data), "reason": "decompression_bomb"},
                original_exception=e,
            ) from e
        except UnidentifiedImageError as e:
            if looks_like_heif(data) and not HEIF_AVAILABLE:
                raise UnsupportedFormatError(
                    "HEIF image received but HEIF decoding is not available",
                    details={"file_size": len(data), "detected_container": "heif"},
                    original_exception=e,
                ) from e
            raise CorruptImageError(
                "Data is not a recognised image",
                details={"file_size": len(data)},
                original_exception=e,
            ) from e
        except (OSError, ValueError, SyntaxError, EOFError) as e:
            raise CorruptImageError(
                f"Image data could not be decoded: {e}",
                details={"file_size": len(data)},
                original_exception=e,
            ) from e

        orientation = image.getexif().get(EXIF_ORIENTATION_TAG, 1)
        if not isinstance(orientation, int) or not 1 <= orientation <= 8:
            orientation = 1

        decoded = DecodedImage(
            image=image,
            width=image.width,
            height=image.height,
            format=image.format or "UNKNOWN",
            orientation=orientation,
        )
        logger.debug(
            "image_decoded",
            format=decoded.format,
            width=decoded.width,
            height=decoded.height,
            mode=image.mode,
            orientation=orientation,
        )
        return decoded

    def normalize_orientation(self, decoded: DecodedImage) -> DecodedImage:
        """
        Apply the EXIF orientation to the pixels and drop the tag.

        The returned image is upright; its width and height are swapped
        relative to the stored ones for the 90/270 degree orientations.
        """
        upright = ImageOps.exif_transpose(decoded.image)
        if upright is None:
            upright = decoded.image

        if decoded.orientation in TRANSPOSING_ORIENTATIONS:
            logger.debug("orientation_normalized", orientation=decoded.orientation, size=upright.size)

        return DecodedImage(
            image=upright,
            width=upright.width,
            height=upright.height,
            format=decoded.format,
            orientation=1,
        )

    def convert_to_srgb(self, decoded: DecodedImage) -> DecodedImage:
        """
        Convert pixels tagged with an embedded ICC profile to sRGB.

        The output carries no profile, so pixels must already be sRGB before
        it is stripped. Images without a profile are returned unchanged. A
        profile LittleCMS cannot apply is logged and the pixels are kept.
        """
        icc = decoded.image.info.get("icc_profile")
        if not icc:
            return decoded

        image = decoded.image
        if image.mode not in ("RGB", "RGBA", "L", "CMYK"):
            image = image.convert("RGBA" if _has_alpha(image) else "RGB")
        output_mode = "RGBA" if image.mode == "RGBA" else "RGB"

        try:
            converted = ImageCms.profileToProfile(
                image,
                ImageCms.ImageCmsProfile(io.BytesIO(icc)),
                ImageCms.createProfile("sRGB"),
                outputMode=output_mode,
            )
        except (ImageCms.PyCMSError, OSError, ValueError, TypeError) as e:
            logger.warning("icc_conversion_failed", mode=image.mode, profile_size=len(icc), error=str(e))
            converted = image.copy()
        else:
            logger.debug("converted_to_srgb", mode=image.mode, profile_size=len(icc))

        converted.info.pop("icc_profile", None)
        return DecodedImage(
            image=converted,
            width=converted.width,
            height=converted.height,
            format=decoded.format,
            orientation=decoded.orientation,
        )

    def calculate_target_size(self, width: int, height: int, max_width: int) -> tuple[int, int]:
        """
        Fit ``width`` inside ``max_width`` keeping aspect ratio; never enlarge.

        Args:
            width: Source width
            height: Source height
            max_width: Largest allowed output width

        Returns:
            tuple: (target_width, target_height)
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid source size {width}x{height}")
        if max_width <= 0:
            raise ValueError(f"max_width must be positive, got {max_width}")

        target_width = min(max_width, width)
        target_height = max(1, math.floor(target_width / width * height + 0.5))
        return target_width, target_height

    def encode(self, decoded: DecodedImage, max_width: int, quality: int, effort: int) -> Derivative:
        """
        Encode an image as WebP with no metadata blocks.

        Args:
            decoded: Upright decoded image
            max_width: Largest allowed output width
            quality: WebP quality, 0-100
            effort: WebP encoder method, 0 (fast) to 6 (smallest output)

        Returns:
            Derivative: Encoded bytes with final dimensions

        Raises:
            ValueError: If quality or effort is out of range
        """
        if not 0 <= quality <= 100:
            raise ValueError(f"quality must be between 0 and 100, got {quality}")
        if not 0 <= effort <= 6:
            raise ValueError(f"effort must be between 0 and 6, got {effort}")

        decoded = self.convert_to_srgb(decoded)
        target_size = self.calculate_target_size(decoded.width, decoded.height, max_width)

        image = decoded.image
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA" if _has_alpha(image) else "RGB")

        if image.size != target_size:
            image = image.resize(target_size, Image.Resampling.LANCZOS)
        elif image is decoded.image:
            image = image.copy()

        # Nothing from the source (EXIF, XMP, ICC, comments) may reach the output
        image.info.clear()

        buffer = io.BytesIO()
        image.save(buffer, format=OUTPUT_FORMAT, quality=quality, method=effort, exif=b"")

        return Derivative(data=buffer.getvalue(), width=image.width, height=image.height)

    def read_metadata(self, data: bytes) -> dict[str, Any]:
        """
        Report which metadata blocks an encoded image carries.

        Raises:
            ImageProcessingError: If the data cannot be opened
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                exif = image.getexif()
                return {
                    "format": image.format,
                    "width": image.width,
                    "height": image.height,
                    "has_exif": bool(exif) or bool(image.info.get("exif")),
                    "has_gps": bool(exif.get_ifd(EXIF_GPS_IFD)),
                    "has_xmp": bool(image.info.get("xmp") or image.info.get("XML:com.adobe.xmp")),
                    "has_icc_profile": bool(image.info.get("icc_profile")),
                }
        except (OSError, ValueError) as e:
            raise ImageProcessingError(
                f"Failed to read image metadata: {e}",
                code="metadata_read_failed",
                details={"file_size": len(data)},
                original_exception=e,
            ) from e


def _has_alpha(image: Image.Image) -> bool:
    if image.mode in ("RGBA", "LA", "PA", "RGBa", "La"):
        return True
    return image.mode == "P" and "transparency" in image.info
