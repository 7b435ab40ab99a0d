# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Lightweight timing instrumentation for the matching hot path.

Profiling is off by default; the decorators check a flag and call straight
through, so leaving them on production functions costs one attribute read.
"""

import functools
import json
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


@dataclass
class TimingStats:
    """Statistics for a timed code section (times in seconds)."""
    name: str
    call_count: int = 0
    total_time: float = 0.0
    min_time: float = float('inf')
    max_time: float = 0.0
    times: list[float] = field(default_factory=list)

    @property
    def avg_time(self) -> float:
        """Average time per call."""
        return self.total_time / self.call_count if self.call_count > 0 else 0.0

    def percentile(self, fraction: float) -> float:
        """Time at the given fraction (0-1) of the recorded calls."""
        if not self.times:
            return 0.0
        ordered = sorted(self.times)
        idx = min(int(len(ordered) * fraction), len(ordered) - 1)
        return ordered[idx]

    @property
    def median_time(self) -> float:
        return self.percentile(0.5)

    @property
    def p95_time(self) -> float:
        return self.percentile(0.95)

    def record(self, duration: float, keep_time: bool) -> None:
        self.call_count += 1
        self.total_time += duration
        self.min_time = min(self.min_time, duration)
        self.max_time = max(self.max_time, duration)
        if keep_time:
            self.times.append(duration)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "call_count": self.call_count,
            "total_time_ms": self.total_time * 1000,
            "avg_time_ms": self.avg_time * 1000,
            "median_time_ms": self.median_time * 1000,
            "min_time_ms": (self.min_time if self.call_count else 0.0) * 1000,
            "max_time_ms": self.max_time * 1000,
            "p95_time_ms": self.p95_time * 1000,
        }


class PerformanceProfiler:
    """Collects timing data from decorated functions and sections."""

    def __init__(self) -> None:
        self._stats: dict[str, TimingStats] = {}
        self._enabled: bool = False
        self._keep_all_times: bool = False

    def enable(self, keep_all_times: bool = False) -> None:
        """
        Enable profiling.

        Args:
            keep_all_times: Keep every call duration so medians and
                percentiles can be reported.
        """
        self._enabled = True
        self._keep_all_times = keep_all_times
        logger.info("Performance profiling enabled (keep_all_times=%s)", keep_all_times)

    def disable(self) -> None:
        self._enabled = False
        logger.info("Performance profiling disabled")

    def is_enabled(self) -> bool:
        return self._enabled

    def reset(self) -> None:
        """Clear all collected statistics."""
        self._stats.clear()

    def record_timing(self, name: str, duration: float) -> None:
        """Record one duration (seconds) under the given name."""
        if not self._enabled:
            return
        stats = self._stats.get(name)
        if stats is None:
            stats = self._stats[name] = TimingStats(name=name)
        stats.record(duration, self._keep_all_times)

    def get_stats(self) -> dict[str, TimingStats]:
        """Get a copy of all collected statistics."""
        return dict(self._stats)

    def format_report(self, top_n: int = 20, sort_by: str = "total") -> str:
        """
        Format collected statistics as a text table.

        Args:
            top_n: Number of rows to include
            sort_by: "total", "avg" or "calls"
        """
        stats = self.get_stats()
        if not stats:
            return "No performance data collected."

        sort_keys: dict[str, Callable[[TimingStats], float]] = {
            "total": lambda s: s.total_time,
            "avg": lambda s: s.avg_time,
            "calls": lambda s: s.call_count,
        }
        sort_key = sort_keys.get(sort_by, sort_keys["total"])
        rows = sorted(stats.values(), key=sort_key, reverse=True)[:top_n]

        lines: list[str] = [
            "=" * 96,
            f"{'Section':<46} {'Calls':>8} {'Total(ms)':>12} {'Avg(ms)':>9} "
            f"{'P95(ms)':>9} {'Max(ms)':>9}",
            "-" * 96,
        ]
        for stat in rows:
            lines.append(
                f"{stat.name:<46} {stat.call_count:>8} "
                f"{stat.total_time * 1000:>12.2f} {stat.avg_time * 1000:>9.3f} "
                f"{stat.p95_time * 1000:>9.3f} {stat.max_time * 1000:>9.3f}")
        lines.append("=" * 96)
        return "\n".join(lines)

    def save_report(self, output_path: Path | str) -> None:
        """Save collected statistics to a JSON file."""
        report = {
            "timestamp": time.time(),
            "stats": [s.to_dict() for s in self.get_stats().values()],
        }
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2)
        logger.info("Performance report saved to %s", output_path)


# Global profiler instance
_profiler = PerformanceProfiler()


def enable_profiling(keep_all_times: bool = False) -> None:
    """Enable global performance profiling."""
    _profiler.enable(keep_all_times=keep_all_times)


def disable_profiling() -> None:
    """Disable global performance profiling."""
    _profiler.disable()


def reset_profiling() -> None:
    """Reset all profiling statistics."""
    _profiler.reset()


def get_profiler() -> PerformanceProfiler:
    """Get the global profiler instance."""
    return _profiler


@contextmanager
def profile_section(name: str) -> Iterator[None]:
    """
    Context manager for timing a code section.

    Usage:
        with profile_section("index_build"):
            build_script_index(text)
    """
    if not _profiler.is_enabled():
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        _profiler.record_timing(name, time.perf_counter() - start)


def profile_function(name: str | None = None) -> Callable[[F], F]:
    """
    Decorator for timing function calls.

    Args:
        name: Name for the timing record; defaults to the qualified name.
    """
    def decorator(func: F) -> F:
        timing_name = name if name else f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not _profiler.is_enabled():
                return func(*args, **kwargs)

            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                _profiler.record_timing(timing_name, time.perf_counter() - start)

        return wrapper  # type: ignore[return-value]

    return decorator
