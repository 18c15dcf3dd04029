"""Application services."""

from mealsnap.application.intake_service import IntakePreparation, MealPhotoIntakeService

__all__ = ["IntakePreparation", "MealPhotoIntakeService"]
