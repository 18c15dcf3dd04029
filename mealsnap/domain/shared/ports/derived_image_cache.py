"""
Derived image cache port.

Contract for caching derivative sets keyed by the content hash of the
raw upload, so identical bytes are never re-encoded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mealsnap.domain.image.models import DerivedImageSet


@runtime_checkable
class IDerivedImageCache(Protocol):
    """Port for derived image cache implementation.

    Implementations must bound their size and expire entries so the
    cache cannot grow without limit.
    """

    async def get(self, key: str) -> Optional["DerivedImageSet"]:
        """Get cached derivatives for a content hash.

        Args:
            key: Hex content hash of the raw upload

        Returns:
            The cached set if present and fresh, None otherwise
        """
        ...

    async def set(self, key: str, value: "DerivedImageSet") -> None:
        """Store derivatives for a content hash.

        Args:
            key: Hex content hash of the raw upload
            value: Fully rendered derivative set
        """
        ...
