"""In-process metrics for the playtime server.

Provides a lightweight, thread-safe collector for:
- Host loop (tick) processing durations and start-time jitter
- Named event counters (samples credited, saves, rollovers, status changes)
- Named one-shot timers (e.g. 'save.duration_s')
- HTTP API response times by method+route

Exposes a singleton `metrics`; snapshot() returns a JSON-safe dict.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass
class Stat:
    """Accumulates count, total, min, max and last for durations in seconds."""

    count: int = 0
    total_s: float = 0.0
    min_s: float = float("inf")
    max_s: float = 0.0
    last_s: float = 0.0

    def add(self, duration_s: float) -> None:
        self.count += 1
        self.total_s += duration_s
        self.last_s = duration_s
        if duration_s < self.min_s:
            self.min_s = duration_s
        if duration_s > self.max_s:
            self.max_s = duration_s

    def as_dict_ms(self) -> Dict[str, float | int]:
        avg_ms = (self.total_s / self.count * 1000.0) if self.count else 0.0
        return {
            "count": self.count,
            "total_ms": self.total_s * 1000.0,
            "avg_ms": avg_ms,
            "min_ms": (self.min_s * 1000.0 if self.count else 0.0),
            "max_ms": self.max_s * 1000.0,
            "last_ms": self.last_s * 1000.0,
        }


class MetricsCollector:
    """Thread-safe in-process metrics collector."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._http_stats: Dict[Tuple[str, str], Stat] = {}
        self._http_total: int = 0
        self._tick_stats: Stat = Stat()
        self._tick_jitter: Stat = Stat()
        self._tick_total: int = 0
        self._events: Dict[str, int] = {}
        self._timers: Dict[str, Stat] = {}
        self._start_monotonic: float = time.monotonic()
        self._start_time_s: float = time.time()

    def increment_event(self, key: str, count: int = 1) -> None:
        """Increment a named event counter, e.g. 'playtime.sample.count'."""
        if not key:
            return
        with self._lock:
            self._events[key] = int(self._events.get(key, 0)) + int(count)

    def record_http(self, method: str, route: str, duration_s: float) -> None:
        key = (method.upper(), route)
        with self._lock:
            stat = self._http_stats.get(key)
            if stat is None:
                stat = self._http_stats[key] = Stat()
            stat.add(duration_s)
            self._http_total += 1

    def record_tick(self, duration_s: float, jitter_s: float | None = None) -> None:
        with self._lock:
            self._tick_stats.add(duration_s)
            if jitter_s is not None:
                self._tick_jitter.add(abs(jitter_s))
            self._tick_total += 1

    def record_timer(self, name: str, duration_s: float) -> None:
        if not name:
            return
        with self._lock:
            stat = self._timers.get(name)
            if stat is None:
                stat = self._timers[name] = Stat()
            stat.add(float(duration_s))

    def event_count(self, key: str) -> int:
        with self._lock:
            return int(self._events.get(key, 0))

    def uptime_s(self) -> float:
        return max(0.0, time.monotonic() - self._start_monotonic)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "process": {
                    "started_at": self._start_time_s,
                    "uptime_s": self.uptime_s(),
                },
                "http": {
                    "total_count": self._http_total,
                    "by_route": {f"{m}:{r}": s.as_dict_ms() for (m, r), s in self._http_stats.items()},
                },
                "game_loop": {
                    "ticks": self._tick_total,
                    **self._tick_stats.as_dict_ms(),
                    "jitter": self._tick_jitter.as_dict_ms(),
                },
                "events": dict(self._events),
                "timers": {name: stat.as_dict_ms() for name, stat in self._timers.items()},
            }


# Singleton instance exported for app-wide use
metrics = MetricsCollector()

__all__ = ["metrics", "MetricsCollector", "Stat"]
