"""
Shared value objects.

Immutable, validated domain primitives.
Following DDD value object pattern.
"""

from __future__ import annotations

import hashlib
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MealType(str, Enum):
    """Meal category of an upload."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"

    @classmethod
    def values(cls) -> list[str]:
        """All accepted wire values, in declaration order."""
        return [member.value for member in cls]

    @classmethod
    def parse(cls, value: object) -> "MealType | None":
        """Return the matching member or None (exact, case-sensitive match)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value == value:
                    return member
        return None


class ContentHash(BaseModel):
    """
    Deterministic digest of raw image bytes.

    Used as cache key and dedup identifier. MD5 is used for speed;
    the hash is never used for security decisions.

    Example:
        >>> h = ContentHash.of(b"abc")
        >>> assert h.value == "900150983cd24fb0d6963f7d28e17f72"
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., pattern=r"^[a-f0-9]{32}$", description="MD5 hex digest")

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __repr__(self) -> str:
        """Debug representation."""
        return f"ContentHash('{self.value}')"

    def __hash__(self) -> int:
        """Allow use as dict key."""
        return hash(self.value)

    @classmethod
    def of(cls, data: bytes) -> ContentHash:
        """Digest raw bytes."""
        return cls(value=hashlib.md5(data, usedforsecurity=False).hexdigest())

    @classmethod
    def from_string(cls, s: str) -> ContentHash:
        """Create from string."""
        return cls(value=s)
