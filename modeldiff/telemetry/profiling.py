"""Timing instrumentation for diff operations.

``@profile_operation(name)`` wraps a synchronous function, measures each call
with ``time.perf_counter_ns()`` and records the duration to the thread-safe
:class:`ProfileCollector` singleton.  Durations are also logged at DEBUG level.

Usage::

    from modeldiff.telemetry.profiling import ProfileCollector, profile_operation

    @profile_operation("modeldiff.diff")
    def diff(new, old):
        ...

    ProfileCollector.get_instance().get_stats("modeldiff.diff")
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class ProfileResult:
    """Timing of one call to a profiled operation."""

    operation: str
    duration_ms: float
    failed: bool = False


class ProfileCollector:
    """Keeps the most recent ``max_results`` timings per operation.

    Parameters
    ----------
    max_results:
        Maximum number of results to retain per operation name.
    """

    _instance: ProfileCollector | None = None
    _lock_cls = threading.Lock()

    def __init__(self, max_results: int = 100) -> None:
        self._max_results = max_results
        self._data: dict[str, deque[ProfileResult]] = {}
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> ProfileCollector:
        """Return the module-level singleton, creating it if needed."""
        if cls._instance is None:
            with cls._lock_cls:
                if cls._instance is None:
                    cls._instance = ProfileCollector()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        with cls._lock_cls:
            cls._instance = None

    def record(self, result: ProfileResult) -> None:
        with self._lock:
            bucket = self._data.get(result.operation)
            if bucket is None:
                bucket = deque(maxlen=self._max_results)
                self._data[result.operation] = bucket
            bucket.append(result)

    def get_stats(self, operation: str) -> dict[str, Any] | None:
        """Aggregate timings for *operation*, or ``None`` if it never ran.

        Returns
        -------
        dict
            ``{"operation", "count", "failures", "mean_ms", "p50_ms",
            "p95_ms", "max_ms"}``
        """
        with self._lock:
            results = list(self._data.get(operation, ()))
        if not results:
            return None

        durations = sorted(r.duration_ms for r in results)
        count = len(durations)
        return {
            "operation": operation,
            "count": count,
            "failures": sum(1 for r in results if r.failed),
            "mean_ms": round(sum(durations) / count, 3),
            "p50_ms": round(durations[_rank(count, 50)], 3),
            "p95_ms": round(durations[_rank(count, 95)], 3),
            "max_ms": round(durations[-1], 3),
        }

    def operations(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


def _rank(count: int, percentile: int) -> int:
    """Nearest-rank index into a sorted list of *count* items."""
    return max(0, min(count - 1, -(-percentile * count // 100) - 1))


def profile_operation(name: str) -> Callable[[F], F]:
    """Decorator recording the wall-clock duration of every call.

    Parameters
    ----------
    name:
        The operation name under which timings are grouped.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_ns = time.perf_counter_ns()
            failed = True
            try:
                value = func(*args, **kwargs)
                failed = False
                return value
            finally:
                duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                ProfileCollector.get_instance().record(
                    ProfileResult(operation=name, duration_ms=round(duration_ms, 3), failed=failed)
                )
                logger.debug("PROFILE %s: %.3f ms%s", name, duration_ms, " (failed)" if failed else "")

        return wrapper  # type: ignore[return-value]

    return decorator
