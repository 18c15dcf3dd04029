"""Image validation and derivation."""

from mealsnap.domain.image.derivation import ImageDerivationEngine
from mealsnap.domain.image.models import (
    DerivedImageSet,
    ImageMetadata,
    ProcessedImage,
    RawImage,
)

__all__ = [
    "ImageDerivationEngine",
    "DerivedImageSet",
    "ImageMetadata",
    "ProcessedImage",
    "RawImage",
]
