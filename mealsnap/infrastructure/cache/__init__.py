"""Cache adapters."""

from mealsnap.infrastructure.cache.derived_image_cache import InMemoryDerivedImageCache

__all__ = ["InMemoryDerivedImageCache"]
