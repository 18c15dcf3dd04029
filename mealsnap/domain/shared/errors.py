"""
Domain exceptions.

Typed exceptions for the photo intake pipeline.
Image rejections carry a machine-readable ``code`` so callers can map
them to category-specific guidance without parsing messages.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


# ═══════════════════════════════════════════════════════════
# IMAGE INTAKE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ImageIntakeError(DomainError):
    """Base exception for raw upload rejection and derivation failures."""

    code = "IMAGE_INTAKE_ERROR"


class InvalidImageError(ImageIntakeError):
    """
    Image cannot be decoded or has no usable dimensions.

    Raised when:
    - Decoder fails to read the header
    - Width or height is zero
    - Integrity check (full decode) fails

    Example:
        >>> raise InvalidImageError("Invalid image dimensions: 0x0")
    """

    code = "INVALID_IMAGE"


class UnsupportedFormatError(ImageIntakeError):
    """
    Magic bytes do not match any allowed format.

    The declared MIME type is never consulted.

    Example:
        >>> raise UnsupportedFormatError(
        ...     "Unsupported image format", allowed_formats=["jpeg", "png"]
        ... )
    """

    code = "UNSUPPORTED_FORMAT"

    def __init__(self, message: str, allowed_formats: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.allowed_formats = list(allowed_formats or [])


class FileTooLargeError(ImageIntakeError):
    """
    Upload exceeds the byte limit.

    Checked before any decode attempt.

    Example:
        >>> raise FileTooLargeError(size_bytes=15_728_640, max_bytes=10_485_760)
    """

    code = "FILE_TOO_LARGE"

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        max_mb = max_bytes / (1024 * 1024)
        super().__init__(f"File size {size_bytes} bytes exceeds maximum limit of {max_mb:g}MB")
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes


class ProcessingFailedError(ImageIntakeError):
    """
    Codec failure while producing a derivative.

    Wraps the original exception (available as ``original_error``
    and as ``__cause__``).
    """

    code = "PROCESSING_FAILED"

    def __init__(self, message: str, original_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.original_error = original_error


# ═══════════════════════════════════════════════════════════
# ANALYSIS EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class AnalysisParseError(DomainError):
    """
    AI service text could not be turned into a JSON object.

    Example:
        >>> raise AnalysisParseError("NO_JSON_OBJECT")
    """

    code = "ANALYSIS_PARSE_ERROR"


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class InfrastructureError(DomainError):
    """
    Infrastructure layer error.

    Base class for storage and cache errors raised by collaborators.
    """

    code = "INFRASTRUCTURE_ERROR"


class DatabaseError(InfrastructureError):
    """
    Storage round-trip failed.

    Raised when:
    - Connection lost
    - Query failed or timed out

    Example:
        >>> raise DatabaseError("meals lookup timed out")
    """

    code = "DATABASE_ERROR"
