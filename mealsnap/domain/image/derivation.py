"""Image derivation engine.

Turns one validated upload into three derivatives. The analysis image is
fitted inside its bounds without upscaling, sharpened, contrast-stretched and
lightly denoised, then encoded as high-quality JPEG with a base64 copy for
the AI service. The thumbnail is a centred square cover crop in WebP, and
the archive copy is fitted inside larger bounds and kept as binary WebP.

The three renders run as one joined batch on worker threads. Results are
cached by content hash; a hit returns the cached set untouched. The cache
write happens only after all three renders complete, so a cancelled request
never leaves a partial entry behind.
"""

from __future__ import annotations

import asyncio
import base64
import io
import time
from typing import Optional

import structlog
from PIL import Image, ImageFilter, ImageOps

from mealsnap.config import DerivativeSpec, ImageProcessingConfig
from mealsnap.domain.image.models import DerivedImageSet, ImageMetadata, ProcessedImage
from mealsnap.domain.image.validation import (
    calculate_compression_ratio,
    extract_metadata,
    validate_format,
    validate_integrity,
    validate_size,
)
from mealsnap.domain.shared.errors import ImageIntakeError, ProcessingFailedError
from mealsnap.domain.shared.ports.derived_image_cache import IDerivedImageCache
from mealsnap.domain.shared.value_objects import ContentHash
from mealsnap.metrics import intake as intake_metrics

logger = structlog.get_logger(__name__)

PIL_FORMATS = {"jpeg": "JPEG", "webp": "WEBP", "png": "PNG"}
WHITE = (255, 255, 255)


# ---- Pixel operations ----


def _open(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()  # first frame only for animated inputs
    return img


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)


def _flatten_to_rgb(img: Image.Image) -> Image.Image:
    """Composite transparent pixels onto white and drop alpha."""
    if _has_alpha(img):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _prepare_mode(img: Image.Image, target_format: str) -> Image.Image:
    if target_format == "jpeg":
        return _flatten_to_rgb(img)
    if _has_alpha(img):
        return img if img.mode == "RGBA" else img.convert("RGBA")
    return img if img.mode == "RGB" else img.convert("RGB")


def fit_inside(img: Image.Image, width: int, height: int) -> Image.Image:
    """Scale down to fit the bounding box, keeping aspect ratio. Never upscales."""
    if img.width <= width and img.height <= height:
        return img
    return ImageOps.contain(img, (width, height), method=Image.Resampling.LANCZOS)


def cover_crop(img: Image.Image, width: int, height: int) -> Image.Image:
    """Fill the box exactly, cropping the overflow around the centre."""
    return ImageOps.fit(
        img,
        (width, height),
        method=Image.Resampling.LANCZOS,
        centering=(0.5, 0.5),
    )


def enhance_for_analysis(img: Image.Image) -> Image.Image:
    """Sharpen, stretch contrast and remove speckle noise."""
    img = img.filter(ImageFilter.UnsharpMask(radius=1, percent=80, threshold=2))
    img = ImageOps.autocontrast(img, cutoff=1, preserve_tone=True)
    return img.filter(ImageFilter.MedianFilter(size=3))


def encode(img: Image.Image, spec: DerivativeSpec, *, effort: int = 6) -> bytes:
    output = io.BytesIO()
    if spec.format == "jpeg":
        img.save(output, format="JPEG", quality=spec.quality, progressive=True, optimize=True)
    elif spec.format == "webp":
        img.save(output, format="WEBP", quality=spec.quality, method=effort)
    else:
        img.save(output, format=PIL_FORMATS[spec.format], optimize=True)
    return output.getvalue()


def _processed(
    img: Image.Image, buffer: bytes, spec: DerivativeSpec, *, with_base64: bool
) -> ProcessedImage:
    width, height = img.size
    return ProcessedImage(
        buffer=buffer,
        format=spec.format,
        width=width,
        height=height,
        size=len(buffer),
        base64=base64.b64encode(buffer).decode("ascii") if with_base64 else None,
    )


# ---- Derivatives ----


def render_analysis(data: bytes, spec: DerivativeSpec) -> ProcessedImage:
    img = _flatten_to_rgb(_open(data))
    img = fit_inside(img, spec.width, spec.height)
    img = enhance_for_analysis(img)
    return _processed(img, encode(img, spec), spec, with_base64=True)


def render_thumbnail(data: bytes, spec: DerivativeSpec) -> ProcessedImage:
    img = _prepare_mode(_open(data), spec.format)
    img = cover_crop(img, spec.width, spec.height)
    return _processed(img, encode(img, spec, effort=4), spec, with_base64=False)


def render_archive(data: bytes, spec: DerivativeSpec) -> ProcessedImage:
    img = _prepare_mode(_open(data), spec.format)
    img = fit_inside(img, spec.width, spec.height)
    return _processed(img, encode(img, spec), spec, with_base64=False)


# ---- Engine ----


class ImageDerivationEngine:
    """
    Validates raw uploads and produces cached derivative sets.

    Example:
        >>> engine = ImageDerivationEngine(cache=InMemoryDerivedImageCache())
        >>> derived = await engine.derive_all(upload_bytes)
        >>> payload = derived.analysis.base64
    """

    def __init__(
        self,
        cache: IDerivedImageCache,
        config: Optional[ImageProcessingConfig] = None,
    ) -> None:
        """
        Initialize engine.

        Args:
            cache: Derived image cache (keyed by content hash)
            config: Default derivation settings
        """
        self.cache = cache
        self.config = config or ImageProcessingConfig()

    def validate_upload(
        self, data: bytes, config: Optional[ImageProcessingConfig] = None
    ) -> ImageMetadata:
        """
        Local rejection before any rendering work.

        Raises:
            FileTooLargeError: Upload over the byte limit (no decode attempted)
            UnsupportedFormatError: Magic bytes not in the allow-list
            InvalidImageError: Header unreadable, zero dimensions, or
                pixel data corrupted or truncated
        """
        cfg = config or self.config
        try:
            validate_size(data, cfg.max_upload_bytes)
            validate_format(data, cfg.allowed_formats)
            metadata = extract_metadata(data)
            validate_integrity(data)
            return metadata
        except ImageIntakeError as exc:
            intake_metrics.record_intake_rejection(exc.code)
            logger.info("Upload rejected", code=exc.code, size=len(data), reason=exc.message)
            raise

    def _cache_key(self, content_hash: ContentHash, cfg: ImageProcessingConfig) -> str:
        if cfg == self.config:
            return content_hash.value
        # per-call settings must not collide with default-config entries
        settings_digest = ContentHash.of(cfg.model_dump_json().encode("utf-8")).value[:8]
        return f"{content_hash.value}:{settings_digest}"

    async def derive_all(
        self, data: bytes, config: Optional[ImageProcessingConfig] = None
    ) -> DerivedImageSet:
        """
        Produce analysis/thumbnail/archive derivatives.

        Identical bytes always yield the same set: the first call renders
        and caches it, later calls return the cached instance.

        Args:
            data: Raw upload bytes
            config: Optional per-call settings (defaults to engine config)

        Returns:
            DerivedImageSet with content hash and total latency

        Raises:
            FileTooLargeError, UnsupportedFormatError, InvalidImageError:
                Fast-fail validation
            ProcessingFailedError: Any codec failure while rendering
        """
        cfg = config or self.config
        start = time.perf_counter()

        metadata = self.validate_upload(data, cfg)
        content_hash = ContentHash.of(data)

        cache_key = self._cache_key(content_hash, cfg)
        cached = await self.cache.get(cache_key)
        intake_metrics.record_cache_lookup(hit=cached is not None)
        if cached is not None:
            logger.info("Derived images loaded from cache", content_hash=content_hash.value)
            return cached

        try:
            analysis, thumbnail, archive = await asyncio.gather(
                asyncio.to_thread(render_analysis, data, cfg.analysis),
                asyncio.to_thread(render_thumbnail, data, cfg.thumbnail),
                asyncio.to_thread(render_archive, data, cfg.archive),
            )
        except Exception as exc:
            intake_metrics.record_intake_rejection(ProcessingFailedError.code)
            logger.error(
                "Image derivation failed",
                content_hash=content_hash.value,
                error=str(exc),
            )
            raise ProcessingFailedError(f"Image processing failed: {exc}", original_error=exc) from exc

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        result = DerivedImageSet(
            analysis=analysis,
            thumbnail=thumbnail,
            archive=archive,
            content_hash=content_hash,
            processing_time_ms=elapsed_ms,
        )
        await self.cache.set(cache_key, result)
        intake_metrics.record_derivation_latency_ms(elapsed_ms)

        logger.info(
            "Image derivation completed",
            content_hash=content_hash.value,
            processing_time_ms=elapsed_ms,
            source_format=metadata.format,
            source_size=metadata.size,
            analysis_size=analysis.size,
            thumbnail_size=thumbnail.size,
            archive_size=archive.size,
            archive_saved_pct=round(calculate_compression_ratio(metadata.size, archive.size), 1),
        )
        return result


__all__ = [
    "ImageDerivationEngine",
    "render_analysis",
    "render_thumbnail",
    "render_archive",
    "fit_inside",
    "cover_crop",
]
