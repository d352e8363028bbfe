"""
Pytest configuration and fixtures for photovault tests.
"""

import base64
import io
import json
import struct
import threading
from collections.abc import Generator

import pytest
from PIL import Image

from photovault.config import IngestionSettings
from photovault.error_handling import StorageError
from photovault.models.database import DatabaseManager, create_database
from photovault.services.derivatives import DerivativeGenerator
from photovault.services.image_processor import EXIF_GPS_IFD, EXIF_ORIENTATION_TAG, ImageProcessor
from photovault.services.ingestion import IngestionService
from photovault.services.metadata import DuckDBImageRepository
from photovault.services.signed_urls import SignedUrlIssuer

GPS_LATITUDE_REF = 0x0001
GPS_LONGITUDE_REF = 0x0003

# sRGB primaries adapted to the D50 profile connection space
SRGB_RED_XYZ = (0.4361, 0.2225, 0.0139)
SRGB_GREEN_XYZ = (0.3851, 0.7169, 0.0971)
SRGB_BLUE_XYZ = (0.1431, 0.0606, 0.7141)
D50_WHITE_XYZ = (0.9642, 1.0, 0.8249)


def _matches(path: str, fragments: set[str]) -> bool:
    return any(fragment in path for fragment in fragments)


class FakeObjectStore:
    """
    In-memory ObjectStore that records every call.

    ``fail_put``, ``fail_delete`` and ``fail_sign`` hold path fragments; any
    path containing one of them fails the corresponding operation.
    """

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.put_calls: list[str] = []
        self.delete_calls: list[list[str]] = []
        self.sign_calls: list[tuple[str, int]] = []
        self.fail_put: set[str] = set()
        self.fail_delete: set[str] = set()
        self.fail_sign: set[str] = set()
        self._lock = threading.Lock()

    def put(self, path: str, data: bytes, content_type: str) -> None:
        with self._lock:
            self.put_calls.append(path)
        if _matches(path, self.fail_put):
            raise StorageError(f"Simulated upload failure for {path}", code="upload_failed")
        with self._lock:
            if path in self.objects:
                raise StorageError(f"Object already exists: {path}", code="object_exists")
            self.objects[path] = (data, content_type)

    def sign(self, path: str, ttl_seconds: int) -> str:
        self.sign_calls.append((path, ttl_seconds))
        if _matches(path, self.fail_sign):
            raise StorageError(f"Simulated signing failure for {path}", code="signing_failed")
        return f"https://storage.example/{path}?ttl={ttl_seconds}"

    def delete(self, paths: list[str]) -> None:
        self.delete_calls.append(list(paths))
        failed = [path for path in paths if _matches(path, self.fail_delete)]
        for path in paths:
            if path not in failed:
                self.objects.pop(path, None)
        if failed:
            raise StorageError("Simulated delete failure", code="delete_failed", details={"failed_paths": failed})

    @property
    def total_calls(self) -> int:
        return len(self.put_calls) + len(self.delete_calls) + len(self.sign_calls)


def make_image(
    size: tuple[int, int] = (100, 80),
    format_type: str = "JPEG",
    mode: str = "RGB",
    color: str | tuple = "red",
    orientation: int | None = None,
    with_gps: bool = False,
    icc_profile: bytes | None = None,
) -> bytes:
    """Create an encoded test image, optionally carrying EXIF orientation, GPS and an ICC profile."""
    image = Image.new(mode, size, color=color)
    save_kwargs: dict = {}

    if orientation is not None or with_gps:
        exif = Image.Exif()
        if orientation is not None:
            exif[EXIF_ORIENTATION_TAG] = orientation
        if with_gps:
            exif[EXIF_GPS_IFD] = {GPS_LATITUDE_REF: "N", GPS_LONGITUDE_REF: "E"}
        save_kwargs["exif"] = exif.tobytes()
    if icc_profile is not None:
        save_kwargs["icc_profile"] = icc_profile

    buffer = io.BytesIO()
    image.save(buffer, format=format_type, **save_kwargs)
    return buffer.getvalue()


def make_rgb_icc_profile(
    red: tuple[float, float, float],
    green: tuple[float, float, float],
    blue: tuple[float, float, float],
    gamma: float = 2.2,
) -> bytes:
    """Build a minimal ICC v2 matrix/TRC display profile with the given colorants."""

    def s15_fixed16(*values: float) -> bytes:
        return b"".join(struct.pack(">i", round(value * 65536)) for value in values)

    def xyz(values: tuple[float, float, float]) -> bytes:
        return b"XYZ " + bytes(4) + s15_fixed16(*values)

    curve = b"curv" + bytes(4) + struct.pack(">IH", 1, round(gamma * 256)) + bytes(2)
    tags = [
        (b"wtpt", xyz(D50_WHITE_XYZ)),
        (b"rXYZ", xyz(red)),
        (b"gXYZ", xyz(green)),
        (b"bXYZ", xyz(blue)),
        (b"rTRC", curve),
        (b"gTRC", curve),
        (b"bTRC", curve),
    ]

    data_start = 128 + 4 + 12 * len(tags)
    table = struct.pack(">I", len(tags))
    body = b""
    for signature, payload in tags:
        table += struct.pack(">4sII", signature, data_start + len(body), len(payload))
        body += payload

    header = bytearray(128)
    header[0:4] = struct.pack(">I", data_start + len(body))
    header[8:12] = struct.pack(">I", 0x02100000)
    header[12:16] = b"mntr"
    header[16:20] = b"RGB "
    header[20:24] = b"XYZ "
    header[36:40] = b"acsp"
    header[68:80] = s15_fixed16(*D50_WHITE_XYZ)
    return bytes(header) + table + body


def make_jwt(payload: dict) -> str:
    """Unsigned JWT carrying ``payload``; the proxy has already verified real ones."""

    def encode(part: dict) -> str:
        return base64.urlsafe_b64encode(json.dumps(part).encode()).decode().rstrip("=")

    return f"{encode({'alg': 'ES256', 'typ': 'JWT'})}.{encode(payload)}.signature"


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("GCS_PHOTOS_BUCKET", "test-photos-bucket")
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "test-project")


@pytest.fixture
def user_id() -> str:
    return "user-123"


@pytest.fixture
def settings() -> IngestionSettings:
    return IngestionSettings()


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def db_manager() -> Generator[DatabaseManager, None, None]:
    manager = create_database()
    yield manager
    manager.close()


@pytest.fixture
def repository(db_manager: DatabaseManager) -> DuckDBImageRepository:
    return DuckDBImageRepository(db_manager)


@pytest.fixture
def signer(object_store: FakeObjectStore, settings: IngestionSettings) -> SignedUrlIssuer:
    return SignedUrlIssuer(object_store, settings.signed_url_ttl_seconds)


@pytest.fixture
def ingestion_service(
    object_store: FakeObjectStore,
    repository: DuckDBImageRepository,
    signer: SignedUrlIssuer,
    settings: IngestionSettings,
) -> Generator[IngestionService, None, None]:
    generator = DerivativeGenerator.from_settings(ImageProcessor(), settings)
    with IngestionService(generator, object_store, repository, signer, settings) as service:
        yield service
