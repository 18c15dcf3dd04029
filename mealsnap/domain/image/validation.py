"""Fast-fail checks on raw upload bytes.

Order used by the derivation engine: size → magic bytes → header decode.
The size check never touches the decoder; the magic-byte check ignores
whatever MIME type the client declared.
"""

from __future__ import annotations

import io
from typing import Iterable, Optional

import structlog
from PIL import Image

from mealsnap.domain.image.models import ImageMetadata
from mealsnap.domain.shared.errors import (
    FileTooLargeError,
    InvalidImageError,
    UnsupportedFormatError,
)

logger = structlog.get_logger(__name__)

# (offset, signature) pairs; every pair must match
FORMAT_SIGNATURES: dict[str, tuple[tuple[int, bytes], ...]] = {
    "jpeg": ((0, b"\xff\xd8\xff"),),
    "png": ((0, b"\x89PNG"),),
    "webp": ((0, b"RIFF"), (8, b"WEBP")),
}
FORMAT_ALIASES = {"jpg": "jpeg"}

DEFAULT_ALLOWED_FORMATS = ("jpeg", "png", "webp")


def detect_format(data: bytes, allowed_formats: Iterable[str] = DEFAULT_ALLOWED_FORMATS) -> Optional[str]:
    """Return the first allowed format whose signature matches, else None."""
    for name in allowed_formats:
        name = FORMAT_ALIASES.get(name.lower(), name.lower())
        signature = FORMAT_SIGNATURES.get(name)
        if not signature:
            continue
        if all(data[offset : offset + len(magic)] == magic for offset, magic in signature):
            return name
    return None


def validate_format(data: bytes, allowed_formats: Iterable[str] = DEFAULT_ALLOWED_FORMATS) -> str:
    """Check magic bytes against the allow-list.

    Returns:
        Canonical format name (jpeg|png|webp)

    Raises:
        UnsupportedFormatError: No allowed signature matches
    """
    allowed = list(allowed_formats)
    detected = detect_format(data, allowed)
    if detected is None:
        raise UnsupportedFormatError(
            f"Unsupported image format. Allowed formats: {', '.join(allowed)}",
            allowed_formats=allowed,
        )
    return detected


def validate_size(data: bytes, max_bytes: int) -> None:
    """Raise FileTooLargeError when ``data`` exceeds ``max_bytes``."""
    if len(data) > max_bytes:
        raise FileTooLargeError(size_bytes=len(data), max_bytes=max_bytes)


def extract_metadata(data: bytes) -> ImageMetadata:
    """Read format and dimensions from the image header.

    Raises:
        InvalidImageError: Decoder failure or zero width/height
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            mode = img.mode
            has_alpha = mode in ("RGBA", "LA", "PA") or (
                mode == "P" and "transparency" in img.info
            )
            n_frames = getattr(img, "n_frames", 1)
            dpi = img.info.get("dpi")
            metadata = ImageMetadata(
                format=(img.format or "unknown").lower(),
                width=width,
                height=height,
                channels=len(img.getbands()),
                has_alpha=has_alpha,
                is_animated=bool(getattr(img, "is_animated", False)) and n_frames > 1,
                size=len(data),
                density=int(round(float(dpi[0]))) if dpi else 72,
            )
    except Exception as exc:
        raise InvalidImageError(f"Failed to extract image metadata: {exc}") from exc

    if metadata.width == 0 or metadata.height == 0:
        raise InvalidImageError(
            f"Invalid image dimensions: {metadata.width}x{metadata.height}"
        )
    return metadata


def validate_integrity(data: bytes) -> None:
    """Full structural check: Pillow ``verify`` plus a full decode.

    Raises:
        InvalidImageError: Corrupted or truncated image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
        # verify() does not read JPEG scan data; decoding catches truncation
        with Image.open(io.BytesIO(data)) as img:
            img.load()
    except Exception as exc:
        logger.debug("Integrity check failed", error=str(exc))
        raise InvalidImageError("Corrupted or invalid image file") from exc


def calculate_compression_ratio(original_size: int, compressed_size: int) -> float:
    """Percentage of bytes saved by re-encoding (negative when it grew)."""
    if original_size <= 0:
        return 0.0
    return (original_size - compressed_size) / original_size * 100


__all__ = [
    "FORMAT_SIGNATURES",
    "detect_format",
    "validate_format",
    "validate_size",
    "extract_metadata",
    "validate_integrity",
    "calculate_compression_ratio",
]
