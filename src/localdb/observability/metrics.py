"""
localdb Metrics Store.

In-process metrics collection without external dependencies.
Tracks:
- Query latencies (per table, percentiles)
- Mutation counts (per table, by event type)
- Listener failures (per channel)
- Error counts by code (LocalDBException.code / QueryError.code)

Thread-safe via locks. Singleton accessor for global access.
"""

from __future__ import annotations

import statistics
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any


@dataclass
class TableMetrics:
    """Metrics for a single table."""

    latencies_ms: list[float] = field(default_factory=list)
    mutations: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    query_count: int = 0
    last_queried: datetime | None = None

    # Keep last N latencies to avoid unbounded memory
    MAX_LATENCIES = 1000

    def record_latency(self, ms: float) -> None:
        self.latencies_ms.append(ms)
        if len(self.latencies_ms) > self.MAX_LATENCIES:
            self.latencies_ms = self.latencies_ms[-self.MAX_LATENCIES :]
        self.query_count += 1
        self.last_queried = datetime.now(timezone.utc)

    def record_mutation(self, event_type: str) -> None:
        self.mutations[event_type] += 1

    def get_percentiles(self) -> dict[str, float]:
        if not self.latencies_ms:
            return {}
        sorted_latencies = sorted(self.latencies_ms)
        n = len(sorted_latencies)
        return {
            "p50_ms": sorted_latencies[int(n * 0.5)],
            "p90_ms": sorted_latencies[int(n * 0.9)],
            "p99_ms": sorted_latencies[int(n * 0.99)] if n > 1 else sorted_latencies[-1],
            "mean_ms": statistics.mean(sorted_latencies),
            "max_ms": sorted_latencies[-1],
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "query_count": self.query_count,
            "last_queried": self.last_queried.isoformat() if self.last_queried else None,
            **self.get_percentiles(),
            "mutations": dict(self.mutations),
        }


class MetricsStore:
    """
    Central metrics store for localdb observability.

    Thread-safe; one instance is shared by default, but stores accept their own.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tables: dict[str, TableMetrics] = defaultdict(TableMetrics)
        self._listener_errors: dict[str, int] = defaultdict(int)
        self._errors: dict[str, int] = defaultdict(int)
        self._started_at = datetime.now(timezone.utc)

    # -------------------------------------------------------------------------
    # Table Metrics
    # -------------------------------------------------------------------------

    def record_query_latency(self, table: str, ms: float) -> None:
        """Record the evaluation time of a read."""
        with self._lock:
            self._tables[table].record_latency(ms)

    def record_mutation(self, table: str, event_type: str) -> None:
        """Record one row change (INSERT/UPDATE/DELETE)."""
        with self._lock:
            self._tables[table].record_mutation(event_type)

    # -------------------------------------------------------------------------
    # Errors
    # -------------------------------------------------------------------------

    def record_listener_error(self, channel: str) -> None:
        """Record a listener that raised during delivery."""
        with self._lock:
            self._listener_errors[channel] += 1
            self._errors["LISTENER_ERROR"] += 1

    def record_error(self, code: str) -> None:
        """Record an error code (raised or data-shaped)."""
        with self._lock:
            self._errors[code] += 1

    # -------------------------------------------------------------------------
    # Summary / Export
    # -------------------------------------------------------------------------

    def get_summary(self) -> dict[str, Any]:
        """
        Get a summary of all metrics.

        Returns a dict suitable for JSON serialization.
        """
        with self._lock:
            now = datetime.now(timezone.utc)
            uptime_seconds = (now - self._started_at).total_seconds()
            return {
                "uptime_seconds": round(uptime_seconds, 1),
                "collected_at": now.isoformat(),
                "tables": {name: metrics.to_dict() for name, metrics in self._tables.items()},
                "listener_errors": dict(self._listener_errors),
                "errors": dict(self._errors),
            }

    def reset(self) -> None:
        """Reset all metrics. Useful for testing."""
        with self._lock:
            self._tables.clear()
            self._listener_errors.clear()
            self._errors.clear()
            self._started_at = datetime.now(timezone.utc)


# -----------------------------------------------------------------------------
# Singleton accessor
# -----------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_metrics_store() -> MetricsStore:
    """Get the global MetricsStore singleton."""
    return MetricsStore()
