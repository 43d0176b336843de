"""TTL-guarded in-process snapshot of the feature document."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any

from ..errors import RefreshError, StoreTimeoutError
from ..models.document import StoreDocument, ThrottleRule
from ..stores.base import Store
from .metrics import CACHE_HITS, REFRESH_ERRORS, STALE_READS, STORE_LOADS

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]
RefreshErrorHook = Callable[[RefreshError], None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Snapshot:
    """Features and throttle rules as loaded at one point in time."""

    features: Mapping[str, Any]
    throttles: Mapping[str, ThrottleRule]
    expiry: datetime

    @classmethod
    def from_document(cls, document: StoreDocument, expiry: datetime) -> Snapshot:
        throttles = {
            key: ThrottleRule.from_config(config)
            for key, config in document.throttles.items()
        }
        return cls(
            features=MappingProxyType(dict(document.features)),
            throttles=MappingProxyType(throttles),
            expiry=expiry,
        )

    def is_fresh(self, now: datetime) -> bool:
        return now < self.expiry


@dataclass(frozen=True)
class SnapshotRead:
    """Result of a read that may have fallen back to the last good snapshot."""

    snapshot: Snapshot
    stale: bool = False
    error: RefreshError | None = field(default=None, compare=False)


class SnapshotCache:
    """Holds the last good snapshot and refreshes it lazily once it expires.

    One lock covers the whole fetch, store round trip included, so concurrent
    callers that find the snapshot expired trigger a single store load.
    """

    def __init__(
        self,
        store: Store,
        ttl: timedelta,
        clock: Clock | None = None,
        load_timeout: float | None = None,
        logger: logging.Logger | None = None,
        on_refresh_error: RefreshErrorHook | None = None,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._clock = clock or utcnow
        self._load_timeout = load_timeout
        self._logger = logger or LOGGER
        self._on_refresh_error = on_refresh_error
        self._lock = asyncio.Lock()
        self._snapshot: Snapshot | None = None

    @property
    def snapshot(self) -> Snapshot | None:
        """Last successfully loaded snapshot, fresh or not."""

        return self._snapshot

    async def fetch(self) -> Snapshot:
        """Return a fresh snapshot, loading it from the store when expired.

        Raises ``RefreshError`` when the load fails; the held snapshot is kept.
        """

        async with self._lock:
            current = self._snapshot
            if current is not None and current.is_fresh(self._clock()):
                CACHE_HITS.inc()
                return current

            try:
                document = await self._load()
            except Exception as exc:
                REFRESH_ERRORS.labels(reason=exc.__class__.__name__).inc()
                raise RefreshError(f"failed to refresh features: {exc}") from exc

            self._snapshot = Snapshot.from_document(
                document, expiry=self._clock() + self._ttl
            )
            self._logger.debug(
                "Feature snapshot refreshed",
                extra={
                    "features": len(self._snapshot.features),
                    "throttles": len(self._snapshot.throttles),
                    "expiry": self._snapshot.expiry.isoformat(),
                },
            )
            return self._snapshot

    async def read(self) -> SnapshotRead:
        """Like ``fetch`` but serves the stale snapshot when a refresh fails."""

        try:
            return SnapshotRead(await self.fetch())
        except RefreshError as exc:
            stale = self._snapshot
            if stale is None:
                raise
            STALE_READS.inc()
            self._logger.warning("Serving stale feature snapshot: %s", exc)
            if self._on_refresh_error is not None:
                self._on_refresh_error(exc)
            return SnapshotRead(stale, stale=True, error=exc)

    async def _load(self) -> StoreDocument:
        STORE_LOADS.inc()
        if self._load_timeout is None:
            return await self._store.load()
        try:
            return await asyncio.wait_for(self._store.load(), self._load_timeout)
        except asyncio.TimeoutError as exc:
            raise StoreTimeoutError(
                f"store load exceeded {self._load_timeout:g}s"
            ) from exc
