"""Boolean feature flag lookups over the cached snapshot."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .cache import SnapshotCache


def bool_value(features: Mapping[str, Any], key: str) -> bool:
    value = features.get(key)
    return isinstance(value, bool) and value


def bool_subset(features: Mapping[str, Any]) -> dict[str, bool]:
    return {key: value for key, value in features.items() if isinstance(value, bool)}


class FeatureEvaluator:
    """Answers "is flag X on?"; a missing or non-boolean flag reads as off."""

    def __init__(self, cache: SnapshotCache) -> None:
        self._cache = cache

    async def is_enabled(self, key: str) -> bool:
        read = await self._cache.read()
        return bool_value(read.snapshot.features, key)

    async def all_bools(self) -> dict[str, bool]:
        read = await self._cache.read()
        return bool_subset(read.snapshot.features)
