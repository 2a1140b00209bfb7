"""
In-process metrics for the addon.

Counters track cache and upstream behaviour; timings record upstream
latency. Everything lives in memory and resets with the process, which
matches the lifetime of the response cache.
"""

import time
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Any, Optional


@dataclass
class Timing:
    """
    Running summary of observed durations.

    Tracks count, total, min and max so an average can be derived.
    """
    count: int = 0
    total: float = 0.0
    min: float = float('inf')
    max: float = 0.0

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.min = min(self.min, value)
        self.max = max(self.max, value)

    def stats(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg": round(self.total / self.count, 2) if self.count else 0.0,
            "min": round(self.min, 2) if self.count else 0.0,
            "max": round(self.max, 2),
        }


class Metrics:
    """
    Thread-safe metrics registry.

    Usage:
        metrics.inc("upstream_errors", labels={"upstream": "mdblist"})

        with metrics.timer("upstream_duration_ms", labels={"upstream": "cinemeta"}):
            response = session.get(url)

        stats = metrics.get_stats()
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._timings: Dict[str, Timing] = {}

    @staticmethod
    def _make_key(name: str, labels: Optional[Dict[str, str]] = None) -> str:
        """Create metric key with optional labels."""
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"

    def inc(self, name: str, amount: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        """
        Increment a counter.

        Args:
            name: Counter name
            amount: Amount to increment by (default 1)
            labels: Optional labels dict
        """
        key = self._make_key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def observe(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Record a duration observation."""
        key = self._make_key(name, labels)
        with self._lock:
            self._timings.setdefault(key, Timing()).observe(value)

    @contextmanager
    def timer(self, name: str, labels: Optional[Dict[str, str]] = None):
        """
        Time the enclosed block in milliseconds.

        The observation is recorded even when the block raises.
        """
        start = time.monotonic()
        try:
            yield
        finally:
            self.observe(name, (time.monotonic() - start) * 1000, labels)

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> int:
        """Get current value of a counter."""
        key = self._make_key(name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {k: v.stats() for k, v in self._timings.items()},
            }

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._counters.clear()
            self._timings.clear()


# Global instance
metrics = Metrics()
