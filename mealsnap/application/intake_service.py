"""
Meal photo intake service.

Application-level orchestration of one upload attempt:

1. admission (time window, then per-day uniqueness)
2. derivation of analysis/thumbnail/archive images, only when admitted
3. after the caller has called the analysis service: correction of the
   raw payload

The analysis call itself and the storage of derivatives belong to the
caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union

import structlog

from mealsnap.config import IntakeSettings
from mealsnap.domain.admission.controller import AdmissionController, AdmissionDecision
from mealsnap.domain.analysis.corrector import AnalysisResponseCorrector
from mealsnap.domain.analysis.models import RawAnalysisResponse, ValidationResult
from mealsnap.domain.analysis.parsing import parse_model_output
from mealsnap.domain.image.derivation import ImageDerivationEngine
from mealsnap.domain.image.models import DerivedImageSet, RawImage
from mealsnap.domain.shared.errors import AnalysisParseError
from mealsnap.domain.shared.ports.meal_record_lookup import IMealRecordLookup
from mealsnap.domain.shared.value_objects import MealType
from mealsnap.infrastructure.cache.derived_image_cache import InMemoryDerivedImageCache

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class IntakePreparation:
    """Admission decision plus derivatives (None when not admitted)."""

    decision: AdmissionDecision
    derived: Optional[DerivedImageSet] = None

    @property
    def admitted(self) -> bool:
        return self.decision.allowed


class MealPhotoIntakeService:
    """
    Coordinates admission, derivation and correction for meal photos.

    Example:
        >>> service = MealPhotoIntakeService.from_settings(settings, lookup)
        >>> prep = await service.prepare_upload("user_1", "lunch", RawImage(data=buf))
        >>> if prep.admitted:
        ...     payload = service.analysis_request_payload(prep.derived)
        ...     raw_text = await ai_client.analyze(**payload)
        ...     result = service.correct_analysis(raw_text)
    """

    def __init__(
        self,
        engine: ImageDerivationEngine,
        corrector: AnalysisResponseCorrector,
        admission: AdmissionController,
    ) -> None:
        """
        Initialize service.

        Args:
            engine: Image derivation engine
            corrector: Analysis response corrector
            admission: Upload admission controller
        """
        self.engine = engine
        self.corrector = corrector
        self.admission = admission

    @classmethod
    def from_settings(
        cls, settings: IntakeSettings, lookup: IMealRecordLookup
    ) -> "MealPhotoIntakeService":
        """Wire default adapters from settings."""
        cache = InMemoryDerivedImageCache.from_config(settings.cache)
        return cls(
            engine=ImageDerivationEngine(cache=cache, config=settings.image),
            corrector=AnalysisResponseCorrector(settings.correction),
            admission=AdmissionController(
                settings.time_slots, lookup, timezone=settings.timezone
            ),
        )

    async def prepare_upload(
        self,
        user_id: str,
        meal_type: Union[MealType, str],
        image: RawImage,
        at: Optional[datetime] = None,
    ) -> IntakePreparation:
        """
        Gate the attempt and, if admitted, derive the images.

        Args:
            user_id: Uploading user
            meal_type: Requested category
            image: Raw upload
            at: Attempt time (defaults to now)

        Returns:
            IntakePreparation; ``derived`` is None when rejected

        Raises:
            FileTooLargeError, UnsupportedFormatError, InvalidImageError,
            ProcessingFailedError: From the derivation engine
        """
        decision = await self.admission.decide(user_id, meal_type, at)
        if not decision.allowed:
            logger.info(
                "Upload not admitted",
                user_id=user_id,
                meal_type=str(getattr(meal_type, "value", meal_type)),
                reason=decision.reason.value if decision.reason else None,
            )
            return IntakePreparation(decision=decision)

        derived = await self.engine.derive_all(image.data)
        logger.info(
            "Upload prepared",
            user_id=user_id,
            content_hash=derived.content_hash.value,
            declared_mime_type=image.declared_mime_type,
            analysis_mime_type=derived.analysis.mime_type,
        )
        return IntakePreparation(decision=decision, derived=derived)

    @staticmethod
    def analysis_request_payload(derived: DerivedImageSet) -> Dict[str, str]:
        """Body for the analysis service: base64 analysis image and its MIME type."""
        if derived.analysis.base64 is None:
            raise ValueError("Analysis derivative has no base64 payload")
        return {
            "base64": derived.analysis.base64,
            "mime_type": derived.analysis.mime_type,
        }

    def correct_analysis(
        self,
        raw: Union[RawAnalysisResponse, str, Any],
        *,
        started_at: Optional[float] = None,
        retry_count: int = 0,
        is_fallback: bool = False,
    ) -> ValidationResult:
        """
        Correct the analysis service answer.

        Text answers are parsed first (code fences stripped); anything
        unparseable ends up as a structural failure.
        """
        if isinstance(raw, str):
            try:
                raw = parse_model_output(raw)
            except AnalysisParseError as exc:
                logger.warning(
                    "Analysis answer has no JSON object",
                    reason=exc.message,
                    retry_count=retry_count,
                    is_fallback=is_fallback,
                )
                raw = RawAnalysisResponse(payload=None)
        return self.corrector.validate(
            raw,
            started_at=started_at,
            retry_count=retry_count,
            is_fallback=is_fallback,
        )


__all__ = ["IntakePreparation", "MealPhotoIntakeService"]
