"""Instrumentation helpers for the photo intake pipeline.

Current metrics:
* Counter mealsnap_cache_lookups_total{result=hit|miss}
* Histogram mealsnap_derivation_latency_ms
* Counter mealsnap_intake_rejections_total{code}
* Counter mealsnap_analysis_validations_total{outcome}
* Histogram mealsnap_analysis_warnings
* Counter mealsnap_admission_decisions_total{outcome,reason?}
"""

from __future__ import annotations

from typing import Dict, Optional

from .core import registry

CACHE_LOOKUPS = "mealsnap_cache_lookups_total"
DERIVATION_LATENCY = "mealsnap_derivation_latency_ms"
INTAKE_REJECTIONS = "mealsnap_intake_rejections_total"
VALIDATIONS = "mealsnap_analysis_validations_total"
VALIDATION_WARNINGS = "mealsnap_analysis_warnings"
ADMISSIONS = "mealsnap_admission_decisions_total"


def record_cache_lookup(hit: bool) -> None:
    registry.increment(CACHE_LOOKUPS, result="hit" if hit else "miss")


def record_derivation_latency_ms(ms: float) -> None:
    registry.observe(DERIVATION_LATENCY, ms)


def record_intake_rejection(code: Optional[str]) -> None:
    """Count an upload refused by validation or processing."""
    registry.increment(INTAKE_REJECTIONS, code=code or "UNKNOWN")


def record_validation(outcome: str, *, warnings: int = 0) -> None:
    """Count one corrector run (``valid`` or a failure code)."""
    registry.increment(VALIDATIONS, outcome=outcome)
    registry.observe(VALIDATION_WARNINGS, warnings)


def record_admission(allowed: bool, reason: Optional[str] = None) -> None:
    tags = {"outcome": "allowed" if allowed else "rejected"}
    if reason:
        tags["reason"] = reason
    registry.increment(ADMISSIONS, **tags)


def snapshot() -> Dict[str, object]:
    return registry.snapshot()


def reset_all() -> None:
    """Reset all metrics (test utility)."""
    registry.reset()
