"""
Unit tests for configuration models and environment loading.
"""

import pytest
from pydantic import ValidationError

from mealsnap.config import (
    CorrectionConfig,
    DerivativeSpec,
    ImageProcessingConfig,
    IntakeSettings,
    MealTimeWindow,
    TimeSlotConfig,
)
from mealsnap.domain.shared.value_objects import MealType


def _isolate(monkeypatch, *names: str) -> None:
    """Ensure variables are unset now and restored after the test."""
    for name in names:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


class TestDefaults:
    def test_image_defaults(self) -> None:
        config = ImageProcessingConfig()

        assert config.analysis == DerivativeSpec(width=1024, height=1024, quality=95, format="jpeg")
        assert config.thumbnail == DerivativeSpec(width=300, height=300, quality=80, format="webp")
        assert config.archive == DerivativeSpec(width=2048, height=2048, quality=85, format="webp")
        assert config.max_upload_bytes == 10 * 1024 * 1024

    def test_time_slots(self) -> None:
        slots = TimeSlotConfig()

        assert slots.window_for(MealType.BREAKFAST) == MealTimeWindow(start=5, end=11)
        assert slots.window_for(MealType.SNACK) is None
        assert [meal for meal, _ in slots.restricted()] == [
            MealType.BREAKFAST,
            MealType.LUNCH,
            MealType.DINNER,
        ]

    def test_correction_defaults(self) -> None:
        config = CorrectionConfig()

        assert config.confidence_threshold == 0.4
        assert (config.calorie_ceiling, config.calorie_fallback) == (2000, 500)
        assert config.max_items == 10
        assert config.default_amount == "적당량"


class TestValidation:
    def test_window_start_before_end(self) -> None:
        with pytest.raises(ValidationError):
            MealTimeWindow(start=11, end=5)

    def test_window_parse(self) -> None:
        window = MealTimeWindow.parse(" 6 - 10 ")

        assert (window.start, window.end) == (6, 10)
        assert window.contains(6) and not window.contains(10)
        assert window.label() == "6:00-10:00"

    def test_fallback_within_ceiling(self) -> None:
        with pytest.raises(ValidationError):
            CorrectionConfig(calorie_ceiling=300, calorie_fallback=500)

    def test_quality_bounds(self) -> None:
        with pytest.raises(ValidationError):
            DerivativeSpec(width=10, height=10, quality=0, format="jpeg")

    def test_unknown_format(self) -> None:
        with pytest.raises(ValidationError):
            DerivativeSpec(width=10, height=10, quality=50, format="gif")

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            TimeSlotConfig().snack_allowed = False  # type: ignore[misc]


class TestFromEnv:
    def test_environment_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("MEALSNAP_MAX_UPLOAD_BYTES", "5242880")
        monkeypatch.setenv("MEALSNAP_CACHE_MAX_ENTRIES", "7")
        monkeypatch.setenv("MEALSNAP_CACHE_TTL_SECONDS", "90")
        monkeypatch.setenv("MEALSNAP_THUMBNAIL_WIDTH", "150")
        monkeypatch.setenv("MEALSNAP_THUMBNAIL_HEIGHT", "150")
        monkeypatch.setenv("MEALSNAP_ARCHIVE_FORMAT", "jpeg")
        monkeypatch.setenv("MEALSNAP_BREAKFAST_HOURS", "6-10")
        monkeypatch.setenv("MEALSNAP_CONFIDENCE_THRESHOLD", "0.55")
        monkeypatch.setenv("MEALSNAP_MAX_ITEMS", "4")
        monkeypatch.setenv("MEALSNAP_TIMEZONE", "UTC")

        settings = IntakeSettings.from_env()

        assert settings.image.max_upload_bytes == 5 * 1024 * 1024
        assert (settings.cache.max_entries, settings.cache.ttl_seconds) == (7, 90.0)
        assert (settings.image.thumbnail.width, settings.image.thumbnail.height) == (150, 150)
        assert settings.image.archive.format == "jpeg"
        assert settings.time_slots.breakfast == MealTimeWindow(start=6, end=10)
        assert settings.time_slots.lunch == MealTimeWindow(start=11, end=17)
        assert settings.correction.confidence_threshold == 0.55
        assert settings.correction.max_items == 4
        assert settings.timezone == "UTC"

    def test_env_file(self, monkeypatch, tmp_path) -> None:
        _isolate(monkeypatch, "MEALSNAP_CALORIE_CEILING", "MEALSNAP_DINNER_HOURS")
        env_file = tmp_path / ".env"
        env_file.write_text("MEALSNAP_CALORIE_CEILING=1500\nMEALSNAP_DINNER_HOURS=18-22\n")

        settings = IntakeSettings.from_env(env_file)

        assert settings.correction.calorie_ceiling == 1500
        assert settings.time_slots.dinner == MealTimeWindow(start=18, end=22)

    def test_invalid_value_rejected(self, monkeypatch) -> None:
        monkeypatch.setenv("MEALSNAP_ANALYSIS_QUALITY", "150")

        with pytest.raises(ValidationError):
            IntakeSettings.from_env()

    def test_empty_timezone_disables_conversion(self, monkeypatch) -> None:
        monkeypatch.setenv("MEALSNAP_TIMEZONE", "")

        assert IntakeSettings.from_env().timezone is None
