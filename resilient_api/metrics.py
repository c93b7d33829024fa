"""
================================================================================
Metrics Registry
================================================================================

Append-only record of every attempt that reached a response.

Entries are grouped under "METHOD endpoint" and kept in attempt order.
Snapshots are copies, so callers never observe concurrent appends while
iterating.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class MetricEntry:
    """One recorded attempt."""
    status: int
    duration_ms: float
    timestamp: float


class MetricsRegistry:
    """
    Thread-safe, append-only metrics store.

    Usage:
        >>> registry = MetricsRegistry()
        >>> registry.record("GET", "/users/{id}", 200, 12.5)
        >>> registry.snapshot()["GET /users/{id}"][0].status
        200
    """

    def __init__(self) -> None:
        self._metrics: Dict[str, List[MetricEntry]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(method: str, endpoint: str) -> str:
        return f"{method} {endpoint}"

    def record(self, method: str, endpoint: str, status: int, duration_ms: float) -> MetricEntry:
        entry = MetricEntry(status=status, duration_ms=duration_ms, timestamp=time.time())
        with self._lock:
            self._metrics.setdefault(self.key(method, endpoint), []).append(entry)
        return entry

    def snapshot(self) -> Dict[str, List[MetricEntry]]:
        with self._lock:
            return {key: list(entries) for key, entries in self._metrics.items()}

    def entries(self, method: str, endpoint: str) -> List[MetricEntry]:
        with self._lock:
            return list(self._metrics.get(self.key(method, endpoint), []))

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Count and min/max/average duration per key."""
        result = {}
        for key, entries in self.snapshot().items():
            durations = [e.duration_ms for e in entries]
            result[key] = {
                "count": len(entries),
                "min_ms": min(durations),
                "max_ms": max(durations),
                "avg_ms": sum(durations) / len(durations),
            }
        return result


__all__ = ["MetricEntry", "MetricsRegistry"]
