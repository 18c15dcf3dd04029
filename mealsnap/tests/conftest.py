"""
Shared fixtures for mealsnap tests.

Images are generated in memory with Pillow so tests need no binary
fixtures on disk.
"""

import io
from typing import Callable

import pytest
from PIL import Image

from mealsnap.config import CorrectionConfig, ImageProcessingConfig, TimeSlotConfig
from mealsnap.domain.admission.controller import AdmissionController
from mealsnap.domain.analysis.corrector import AnalysisResponseCorrector
from mealsnap.domain.image.derivation import ImageDerivationEngine
from mealsnap.infrastructure.cache.derived_image_cache import InMemoryDerivedImageCache
from mealsnap.infrastructure.persistence.in_memory_meal_records import (
    InMemoryMealRecordLookup,
)
from mealsnap.metrics import intake as intake_metrics


# ═══════════════════════════════════════════════════════════
# IMAGE FIXTURES
# ═══════════════════════════════════════════════════════════


def make_image_bytes(
    width: int = 640,
    height: int = 480,
    fmt: str = "JPEG",
    mode: str = "RGB",
    color: tuple = (200, 80, 40),
) -> bytes:
    """Encode a gradient image so derivatives are not trivially flat."""
    img = Image.new(mode, (width, height), color)
    if mode in ("RGB", "RGBA"):
        for x in range(0, width, max(1, width // 16)):
            for y in range(0, height, max(1, height // 16)):
                shade = (x * 255 // max(1, width), y * 255 // max(1, height), 120)
                if mode == "RGBA":
                    shade = shade + (255 if (x + y) % 2 == 0 else 0,)
                img.putpixel((x, y), shade)
    output = io.BytesIO()
    img.save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    """Factory for encoded test images."""
    return make_image_bytes


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes(1600, 1200, "JPEG")


@pytest.fixture
def png_rgba_bytes() -> bytes:
    return make_image_bytes(400, 300, "PNG", mode="RGBA", color=(10, 200, 10, 128))


@pytest.fixture
def webp_bytes() -> bytes:
    return make_image_bytes(320, 240, "WEBP")


# ═══════════════════════════════════════════════════════════
# COMPONENT FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def image_cache() -> InMemoryDerivedImageCache:
    return InMemoryDerivedImageCache(max_entries=50, ttl_seconds=3600)


@pytest.fixture
def engine(image_cache: InMemoryDerivedImageCache) -> ImageDerivationEngine:
    return ImageDerivationEngine(cache=image_cache, config=ImageProcessingConfig())


@pytest.fixture
def corrector() -> AnalysisResponseCorrector:
    return AnalysisResponseCorrector(CorrectionConfig())


@pytest.fixture
def meal_records() -> InMemoryMealRecordLookup:
    return InMemoryMealRecordLookup()


@pytest.fixture
def admission(meal_records: InMemoryMealRecordLookup) -> AdmissionController:
    return AdmissionController(TimeSlotConfig(), meal_records)


# ═══════════════════════════════════════════════════════════
# METRICS ISOLATION
# ═══════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Each test starts from an empty metrics registry."""
    intake_metrics.reset_all()
