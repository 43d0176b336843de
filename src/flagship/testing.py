"""Test double for code that depends on ``FeatureStore``."""

from __future__ import annotations

from .services.hashing import HashInput


class MockFeatureStore(dict[str, bool]):
    """Answers flag and throttle checks from a plain mapping::

        store = MockFeatureStore({"featureA": True})
        await store.is_enabled("featureA")   # True
        await store.is_enabled("featureB")   # False
        await store.allow("featureA", b"")   # True
    """

    async def is_enabled(self, key: str) -> bool:
        return bool(self.get(key, False))

    async def all_bools(self) -> dict[str, bool]:
        return dict(self)

    async def allow(self, key: str, data: HashInput) -> bool:
        return bool(self.get(key, False))

    def get_hash(self, key: str, data: HashInput) -> int:
        return 0
