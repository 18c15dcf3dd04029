"""Image intake models.

Plain slotted dataclasses: buffers are large and request-scoped, so they
stay out of pydantic validation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from mealsnap.domain.shared.value_objects import ContentHash


@dataclass(frozen=True, slots=True)
class RawImage:
    """Uploaded bytes plus the MIME type the client declared.

    The declared type is informational only; format checks read magic bytes.
    """

    data: bytes
    declared_mime_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class ImageMetadata:
    format: str
    width: int
    height: int
    channels: int
    has_alpha: bool
    is_animated: bool
    size: int
    density: int = 72


@dataclass(frozen=True, slots=True)
class ProcessedImage:
    """One encoded derivative."""

    buffer: bytes
    format: str  # jpeg|webp|png
    width: int
    height: int
    size: int
    base64: Optional[str] = None

    @property
    def mime_type(self) -> str:
        return f"image/{self.format}"


@dataclass(frozen=True, slots=True)
class DerivedImageSet:
    """Analysis, thumbnail and archive derivatives of one upload."""

    analysis: ProcessedImage
    thumbnail: ProcessedImage
    archive: ProcessedImage
    content_hash: ContentHash
    processing_time_ms: int

    def sizes(self) -> dict[str, int]:
        return {
            "analysis": self.analysis.size,
            "thumbnail": self.thumbnail.size,
            "archive": self.archive.size,
        }


__all__ = [
    "RawImage",
    "ImageMetadata",
    "ProcessedImage",
    "DerivedImageSet",
]
