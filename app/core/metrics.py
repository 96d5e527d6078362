from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from threading import Lock
from time import perf_counter
from typing import Any, Callable


@dataclass
class _TimingStats:
    count: int = 0
    total: float = 0.0
    last: float = 0.0
    peak: float = 0.0

    def add(self, milliseconds: float) -> None:
        self.count += 1
        self.total += milliseconds
        self.last = milliseconds
        self.peak = milliseconds if self.count == 1 else max(self.peak, milliseconds)

    def as_dict(self) -> dict[str, float | int]:
        return {
            "count": self.count,
            "last": self.last,
            "avg": self.total / self.count if self.count else 0.0,
            "max": self.peak,
        }


class MetricsRegistry:
    """In-process counters and timings for sync runs.

    Timings keep running aggregates only, so a long session does not grow
    memory with every recorded sample.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: dict[str, int] = {}
        self._timings: dict[str, _TimingStats] = {}

    def counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def increment(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def record_timing(self, name: str, milliseconds: float) -> None:
        with self._lock:
            stats = self._timings.get(name)
            if stats is None:
                stats = self._timings[name] = _TimingStats()
            stats.add(float(milliseconds))

    def reset(self) -> None:
        with self._lock:
            self._counters = {}
            self._timings = {}

    def snapshot(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings_ms": {name: stats.as_dict() for name, stats in self._timings.items()},
            }


metrics_registry = MetricsRegistry()


def measure_time(metric_name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Records the wall time of each call, failed calls included."""

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def timed(*args: Any, **kwargs: Any) -> Any:
            started = perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                # Looked up per call so tests can swap the module registry.
                metrics_registry.record_timing(metric_name, (perf_counter() - started) * 1000)

        return timed

    return decorator
