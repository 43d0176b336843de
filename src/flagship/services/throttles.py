"""Percentage rollout decisions for throttle keys."""

from __future__ import annotations

import logging

from ..models.document import ThrottleRule
from .cache import SnapshotCache
from .hashing import BUCKET_COUNT, HashInput, get_hash
from .metrics import THROTTLE_DECISIONS

LOGGER = logging.getLogger(__name__)


def decide(rule: ThrottleRule, bucket: int) -> bool:
    """Apply ``rule`` to a pre-computed ``bucket``; the order of checks matters."""

    if rule.disabled:
        return False
    if bucket in rule.whitelist:
        return True
    if rule.threshold == 0:
        return False
    # TODO: decide whether probabilities above 100 should be rejected at load time.
    if rule.threshold > BUCKET_COUNT:
        return True
    return bucket <= rule.threshold


class ThrottleEvaluator:
    """Buckets arbitrary input per throttle key and admits a percentage of buckets."""

    def __init__(self, cache: SnapshotCache) -> None:
        self._cache = cache

    def get_hash(self, key: str, data: HashInput) -> int:
        return get_hash(key, data)

    async def allow(self, key: str, data: HashInput) -> bool:
        read = await self._cache.read()
        if read.stale:
            LOGGER.warning("Throttle %s denied, features unavailable: %s", key, read.error)
            THROTTLE_DECISIONS.labels(outcome="unavailable").inc()
            return False

        rule = read.snapshot.throttles.get(key)
        if rule is None:
            THROTTLE_DECISIONS.labels(outcome="missing").inc()
            return False

        allowed = decide(rule, get_hash(key, data))
        THROTTLE_DECISIONS.labels(outcome="allow" if allowed else "deny").inc()
        return allowed
