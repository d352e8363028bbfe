"""
Error classification for photovault.

Every error raised by the ingestion pipeline and its collaborators derives
from PhotoVaultError. Each instance carries a category, a severity, a stable
machine-readable code and a generic user-facing message. Internal detail
lives in ``details`` and in the log record written when the error is
created; it is never part of ``user_message``.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .logging_config import get_logger, log_error, log_security_event

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    IMAGE_PROCESSING = "image_processing"
    STORAGE = "storage"
    METADATA = "metadata"
    SIGNING = "signing"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorInfo:
    """Structured error information."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any]
    timestamp: datetime
    recoverable: bool = True
    retry_suggested: bool = False

    def to_dict(self, include_internal: bool = False) -> dict[str, Any]:
        """
        Convert error info to a dictionary.

        Args:
            include_internal: Include the internal message and details.
                Leave False for anything returned to an end user.
        """
        result: dict[str, Any] = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "user_message": self.user_message,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
        }
        if include_internal:
            result["message"] = self.message
            result["details"] = self.details
        return result


DEFAULT_USER_MESSAGES = {
    ErrorCategory.AUTHENTICATION: "Please sign in to continue.",
    ErrorCategory.AUTHORIZATION: "You do not have permission to perform this action.",
    ErrorCategory.VALIDATION: "The uploaded file was rejected.",
    ErrorCategory.IMAGE_PROCESSING: "The image could not be processed.",
    ErrorCategory.STORAGE: "The image could not be stored. Please try again later.",
    ErrorCategory.METADATA: "The image could not be saved. Please try again later.",
    ErrorCategory.SIGNING: "The image is temporarily unavailable.",
    ErrorCategory.UNKNOWN: "An unexpected error occurred.",
}


class PhotoVaultError(Exception):
    """Base exception class for photovault."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
        retry_suggested: bool = False,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.code = code or f"{category.value}_error"
        self.user_message = user_message or DEFAULT_USER_MESSAGES[category]
        self.details = details or {}
        self.recoverable = recoverable
        self.retry_suggested = retry_suggested
        self.original_exception = original_exception
        self.timestamp = datetime.now(UTC)

        self._log_error()

    def _log_error(self) -> None:
        """Log the error at a level matching its severity."""
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
            **self.details,
        }
        if self.original_exception is not None:
            error_context["original_exception"] = repr(self.original_exception)

        if self.severity is ErrorSeverity.LOW:
            logger.warning("error_occurred", error_type=type(self).__name__, error_message=str(self), **error_context)
        else:
            log_error(self, error_context)

        if self.category in (ErrorCategory.AUTHENTICATION, ErrorCategory.AUTHORIZATION):
            log_security_event(self.category.value, code=self.code)

    def get_error_info(self) -> ErrorInfo:
        """Get structured error information."""
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            recoverable=self.recoverable,
            retry_suggested=self.retry_suggested,
        )


class AuthenticationError(PhotoVaultError):
    """No authenticated actor is available for the request."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.HIGH,
            code=code or "auth_failed",
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class ValidationError(PhotoVaultError):
    """Upload rejected before any processing. The caller's fault; no I/O was performed."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            code=code or "validation_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class ImageProcessingError(PhotoVaultError):
    """The image could not be turned into derivatives. No storage side effects."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.IMAGE_PROCESSING,
            severity=ErrorSeverity.MEDIUM,
            code=code or "image_processing_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


ProcessingError = ImageProcessingError


class DecodeError(ImageProcessingError):
    """The uploaded bytes could not be decoded into an image."""


class UnsupportedFormatError(DecodeError):
    """The bytes are a recognised image container this installation cannot decode."""

    def __init__(self, message: str, details: dict[str, Any] | None = None, original_exception: Exception | None = None):
        super().__init__(
            message,
            code="unsupported_format",
            user_message="This image format is not supported.",
            details=details,
            original_exception=original_exception,
        )


class CorruptImageError(DecodeError):
    """The bytes are empty, not an image, or damaged."""

    def __init__(self, message: str, details: dict[str, Any] | None = None, original_exception: Exception | None = None):
        super().__init__(
            message,
            code="corrupt_image",
            user_message="The file is not a valid image.",
            details=details,
            original_exception=original_exception,
        )


class StorageError(PhotoVaultError):
    """Object store unavailable or an operation on it failed."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            code=code or "storage_error",
            details=details,
            recoverable=True,
            retry_suggested=True,
            original_exception=original_exception,
        )


class DatabaseError(PhotoVaultError):
    """The metadata repository failed."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.METADATA,
            severity=ErrorSeverity.HIGH,
            code=code or "metadata_error",
            details=details,
            recoverable=True,
            retry_suggested=True,
            original_exception=original_exception,
        )


MetadataError = DatabaseError


class SigningError(PhotoVaultError):
    """A signed URL could not be issued. Never fatal; the URL is reported as absent."""

    def __init__(self, message: str, details: dict[str, Any] | None = None, original_exception: Exception | None = None):
        super().__init__(
            message=message,
            category=ErrorCategory.SIGNING,
            severity=ErrorSeverity.LOW,
            code="signing_failed",
            details=details,
            recoverable=True,
            retry_suggested=True,
            original_exception=original_exception,
        )
