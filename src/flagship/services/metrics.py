"""
Prometheus metrics shared by the snapshot cache and the evaluators.
"""

from __future__ import annotations

from prometheus_client import Counter

CACHE_HITS = Counter(
    "flagship_cache_hits_total",
    "How many snapshot reads were served without a store load",
)
STORE_LOADS = Counter(
    "flagship_store_loads_total",
    "How many times the feature document was loaded from the store",
)
REFRESH_ERRORS = Counter(
    "flagship_refresh_errors_total",
    "Failed snapshot refreshes, by exception class",
    ["reason"],
)
STALE_READS = Counter(
    "flagship_stale_reads_total",
    "Evaluations answered from a stale snapshot after a failed refresh",
)
THROTTLE_DECISIONS = Counter(
    "flagship_throttle_decisions_total",
    "Throttle decisions, by outcome",
    ["outcome"],
)
