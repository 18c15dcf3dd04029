"""Configuration surface for the photo intake pipeline.

All settings are immutable pydantic models built once at startup and
passed explicitly to the components that need them. ``IntakeSettings.from_env``
reads ``MEALSNAP_*`` variables (optionally from a ``.env`` file).

Example .env:
    MEALSNAP_MAX_UPLOAD_BYTES=10485760
    MEALSNAP_CACHE_MAX_ENTRIES=50
    MEALSNAP_BREAKFAST_HOURS=5-11
    MEALSNAP_TIMEZONE=Asia/Seoul
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

from mealsnap.domain.shared.value_objects import MealType

ImageFormatName = Literal["jpeg", "png", "webp"]

MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10MB


# ---- Image derivation ----


class DerivativeSpec(BaseModel):
    """Target bounds, encoder and quality for one derivative."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    quality: int = Field(..., ge=1, le=100)
    format: ImageFormatName


class ImageProcessingConfig(BaseModel):
    """Derivation settings (analysis / thumbnail / archive)."""

    model_config = ConfigDict(frozen=True)

    # high quality JPEG for the AI service
    analysis: DerivativeSpec = DerivativeSpec(width=1024, height=1024, quality=95, format="jpeg")
    # square crop for feed/calendar tiles
    thumbnail: DerivativeSpec = DerivativeSpec(width=300, height=300, quality=80, format="webp")
    # storage copy
    archive: DerivativeSpec = DerivativeSpec(width=2048, height=2048, quality=85, format="webp")

    max_upload_bytes: int = Field(MAX_UPLOAD_BYTES, gt=0)
    allowed_formats: Tuple[ImageFormatName, ...] = ("jpeg", "png", "webp")


# ---- Content cache ----


class CacheConfig(BaseModel):
    """Bounds for the derived image cache."""

    model_config = ConfigDict(frozen=True)

    max_entries: int = Field(50, gt=0)
    ttl_seconds: float = Field(3600.0, gt=0)


# ---- Admission ----


class MealTimeWindow(BaseModel):
    """Half-open hour range ``[start, end)`` in local time."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0, le=23)
    end: int = Field(..., ge=1, le=24)

    @model_validator(mode="after")
    def start_before_end(self) -> "MealTimeWindow":
        if self.start >= self.end:
            raise ValueError(f"Window start ({self.start}) must be before end ({self.end})")
        return self

    def contains(self, hour: int) -> bool:
        return self.start <= hour < self.end

    def label(self) -> str:
        return f"{self.start}:00-{self.end}:00"

    @classmethod
    def parse(cls, raw: str) -> "MealTimeWindow":
        """Parse ``"5-11"`` into a window."""
        start, _, end = raw.partition("-")
        return cls(start=int(start.strip()), end=int(end.strip()))


class TimeSlotConfig(BaseModel):
    """Per-category upload windows. Snack has no window."""

    model_config = ConfigDict(frozen=True)

    breakfast: MealTimeWindow = MealTimeWindow(start=5, end=11)
    lunch: MealTimeWindow = MealTimeWindow(start=11, end=17)
    dinner: MealTimeWindow = MealTimeWindow(start=17, end=23)
    snack_allowed: bool = True

    def window_for(self, meal_type: MealType) -> Optional[MealTimeWindow]:
        """Configured window, or None for the unrestricted category."""
        if meal_type is MealType.SNACK:
            return None
        return getattr(self, meal_type.value)

    def restricted(self) -> list[tuple[MealType, MealTimeWindow]]:
        return [
            (MealType.BREAKFAST, self.breakfast),
            (MealType.LUNCH, self.lunch),
            (MealType.DINNER, self.dinner),
        ]


# ---- Analysis correction ----

HANGUL_PATTERN = r"[\u3131-\u3163\uac00-\ud7af]"


class CorrectionConfig(BaseModel):
    """Constants used to sanitize and correct AI analysis payloads."""

    model_config = ConfigDict(frozen=True)

    correction_version: str = "kr-food-corrector/1.0"

    confidence_threshold: float = Field(0.4, ge=0.0, le=1.0)
    default_confidence: float = Field(0.5, ge=0.0, le=1.0)
    fallback_confidence: float = Field(0.75, ge=0.0, le=1.0)

    calorie_ceiling: int = Field(2000, gt=0)
    calorie_fallback: int = Field(500, ge=0)
    calorie_tolerance: int = Field(50, ge=0)

    max_items: int = Field(10, gt=0)
    name_max_length: int = Field(50, gt=0)
    amount_max_length: int = Field(100, gt=0)
    default_amount: str = "적당량"
    required_script_pattern: str = HANGUL_PATTERN

    # meal type inference
    breakfast_keywords: Tuple[str, ...] = ("토스트", "시리얼", "우유", "커피")
    snack_keywords: Tuple[str, ...] = ("과자", "음료", "케이크", "아이스크림")
    breakfast_calorie_below: int = 400
    dinner_calorie_above: int = 600

    # analysis confidence
    few_items_below: int = 2
    few_items_weight: float = 0.9
    many_items_above: int = 7
    many_items_weight: float = 0.95
    conservatism_factor: float = 0.9

    @model_validator(mode="after")
    def fallback_within_ceiling(self) -> "CorrectionConfig":
        if self.calorie_fallback > self.calorie_ceiling:
            raise ValueError("calorie_fallback must not exceed calorie_ceiling")
        return self


# ---- Root settings ----


class IntakeSettings(BaseModel):
    """Aggregate configuration for the intake pipeline."""

    model_config = ConfigDict(frozen=True)

    image: ImageProcessingConfig = ImageProcessingConfig()
    cache: CacheConfig = CacheConfig()
    time_slots: TimeSlotConfig = TimeSlotConfig()
    correction: CorrectionConfig = CorrectionConfig()
    # IANA zone used to derive hour/date for admission; None keeps datetimes as given
    timezone: Optional[str] = "Asia/Seoul"

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "IntakeSettings":
        """
        Build settings from ``MEALSNAP_*`` environment variables.

        Unset variables keep their defaults.

        Args:
            env_file: Optional .env path; when omitted a .env in the
                working directory tree is loaded if present.

        Returns:
            IntakeSettings instance
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        defaults = cls()

        image = ImageProcessingConfig(
            analysis=_derivative_from_env("ANALYSIS", defaults.image.analysis),
            thumbnail=_derivative_from_env("THUMBNAIL", defaults.image.thumbnail),
            archive=_derivative_from_env("ARCHIVE", defaults.image.archive),
            max_upload_bytes=int(
                os.getenv("MEALSNAP_MAX_UPLOAD_BYTES", str(defaults.image.max_upload_bytes))
            ),
        )
        cache = CacheConfig(
            max_entries=int(
                os.getenv("MEALSNAP_CACHE_MAX_ENTRIES", str(defaults.cache.max_entries))
            ),
            ttl_seconds=float(
                os.getenv("MEALSNAP_CACHE_TTL_SECONDS", str(defaults.cache.ttl_seconds))
            ),
        )
        slots = TimeSlotConfig(
            breakfast=_window_from_env("BREAKFAST", defaults.time_slots.breakfast),
            lunch=_window_from_env("LUNCH", defaults.time_slots.lunch),
            dinner=_window_from_env("DINNER", defaults.time_slots.dinner),
        )
        correction_fields = defaults.correction.model_dump()
        for key, env_name, cast in (
            ("confidence_threshold", "MEALSNAP_CONFIDENCE_THRESHOLD", float),
            ("calorie_ceiling", "MEALSNAP_CALORIE_CEILING", int),
            ("calorie_fallback", "MEALSNAP_CALORIE_FALLBACK", int),
            ("max_items", "MEALSNAP_MAX_ITEMS", int),
            ("name_max_length", "MEALSNAP_NAME_MAX_LENGTH", int),
            ("calorie_tolerance", "MEALSNAP_CALORIE_TOLERANCE", int),
            ("required_script_pattern", "MEALSNAP_REQUIRED_SCRIPT_PATTERN", str),
        ):
            raw = os.getenv(env_name)
            if raw:
                correction_fields[key] = cast(raw)
        correction = CorrectionConfig.model_validate(correction_fields)

        timezone_name = os.getenv("MEALSNAP_TIMEZONE", defaults.timezone or "")
        return cls(
            image=image,
            cache=cache,
            time_slots=slots,
            correction=correction,
            timezone=timezone_name or None,
        )


def _derivative_from_env(prefix: str, default: DerivativeSpec) -> DerivativeSpec:
    return DerivativeSpec(
        width=int(os.getenv(f"MEALSNAP_{prefix}_WIDTH", str(default.width))),
        height=int(os.getenv(f"MEALSNAP_{prefix}_HEIGHT", str(default.height))),
        quality=int(os.getenv(f"MEALSNAP_{prefix}_QUALITY", str(default.quality))),
        format=os.getenv(f"MEALSNAP_{prefix}_FORMAT", default.format),  # type: ignore[arg-type]
    )


def _window_from_env(prefix: str, default: MealTimeWindow) -> MealTimeWindow:
    raw = os.getenv(f"MEALSNAP_{prefix}_HOURS")
    if not raw:
        return default
    return MealTimeWindow.parse(raw)


__all__ = [
    "DerivativeSpec",
    "ImageProcessingConfig",
    "CacheConfig",
    "MealTimeWindow",
    "TimeSlotConfig",
    "CorrectionConfig",
    "IntakeSettings",
    "MAX_UPLOAD_BYTES",
]
