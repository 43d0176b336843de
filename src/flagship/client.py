"""
Feature store client.

Retrieving a boolean flag::

    store = await FeatureStore.create(Settings(table_name="featureFlagStore"))
    if await store.is_enabled("newFeature"):
        ...  # new code
    else:
        ...  # old code

Gating a percentage of requests::

    if await store.allow("newThrottleFeature", request.user_id):
        ...

Every client owns its own snapshot cache; nothing is shared between instances.
"""

from __future__ import annotations

import logging

from .config import Settings, get_settings
from .errors import ConstructionError, RefreshError
from .services.cache import Clock, RefreshErrorHook, SnapshotCache, SnapshotRead
from .services.features import FeatureEvaluator
from .services.hashing import HashInput
from .services.throttles import ThrottleEvaluator
from .stores.base import Store
from .stores.mongo import MongoStore

LOGGER = logging.getLogger(__name__)


class FeatureStore:
    """Coordinates the snapshot cache with the flag and throttle evaluators."""

    def __init__(
        self,
        store: Store,
        settings: Settings,
        clock: Clock | None = None,
        logger: logging.Logger | None = None,
        on_refresh_error: RefreshErrorHook | None = None,
    ) -> None:
        self._store = store
        self._owns_store = False
        self._settings = settings
        self._logger = logger or LOGGER
        self._cache = SnapshotCache(
            store,
            ttl=settings.cache_ttl,
            clock=clock,
            load_timeout=settings.load_timeout_seconds,
            logger=self._logger,
            on_refresh_error=on_refresh_error,
        )
        self._features = FeatureEvaluator(self._cache)
        self._throttles = ThrottleEvaluator(self._cache)

    @classmethod
    async def create(
        cls,
        settings: Settings | None = None,
        *,
        store: Store | None = None,
        clock: Clock | None = None,
        logger: logging.Logger | None = None,
        on_refresh_error: RefreshErrorHook | None = None,
    ) -> FeatureStore:
        """Build a client and load the initial snapshot.

        Without ``store`` a ``MongoStore`` is built from ``settings``.  Raises
        ``ConstructionError`` when the initial load fails.
        """

        if settings is None:
            settings = get_settings()
        owned_store = store is None
        if store is None:
            store = MongoStore.from_settings(settings)
        client = cls(
            store,
            settings,
            clock=clock,
            logger=logger,
            on_refresh_error=on_refresh_error,
        )
        client._owns_store = owned_store
        try:
            await client._cache.fetch()
        except RefreshError as exc:
            if owned_store:
                client.close()
            cause = exc.__cause__ or exc
            raise ConstructionError(
                f"flagship - failed to fetch features: {cause}"
            ) from cause
        client._logger.info(
            "Feature store ready",
            extra={
                "table_name": settings.table_name,
                "record_name": settings.record_name,
            },
        )
        return client

    @property
    def settings(self) -> Settings:
        return self._settings

    async def is_enabled(self, key: str) -> bool:
        """Return ``True`` only for a flag stored as boolean ``true``.

        A missing flag, a non-boolean value and ``false`` all read as ``False``.
        """

        return await self._features.is_enabled(key)

    async def all_bools(self) -> dict[str, bool]:
        """Return every boolean-valued flag; other values are left out."""

        return await self._features.all_bools()

    async def allow(self, key: str, data: HashInput) -> bool:
        """Return whether ``data`` falls inside the rollout of throttle ``key``.

        A throttle document looks like::

            {"throttles": {"newThrottleFeature": {"whitelist": [10, 3321], "probability": 2.5}}}

        ``probability`` is a percentage truncated to 2dp; ``whitelist`` holds buckets
        (see ``get_hash``) that are always allowed; ``disabled`` rejects everything.
        Missing throttles are never allowed.
        """

        return await self._throttles.allow(key, data)

    def get_hash(self, key: str, data: HashInput) -> int:
        """Return the bucket ``allow`` would compare for ``key`` and ``data``."""

        return self._throttles.get_hash(key, data)

    async def read_snapshot(self) -> SnapshotRead:
        """Return the current snapshot and whether it is a stale fallback."""

        return await self._cache.read()

    def close(self) -> None:
        """Close the store built by ``create``; a caller-supplied store stays open."""

        if not self._owns_store:
            return
        close = getattr(self._store, "close", None)
        if callable(close):
            close()
