from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class IntervalTimer:
    """Fires `action(now)` once at least `interval_s` has elapsed since the last firing."""
    name: str
    interval_s: float
    action: Callable[[float], None]
    last_fired: float = 0.0

    def due(self, now: float) -> bool:
        return now - self.last_fired >= self.interval_s


class Scheduler:
    """Independent interval timers checked once per host tick.

    Timers run synchronously in registration order. Intervals are measured
    from the last firing, so a slow tick delays a timer but never fires it
    twice. A failing action is logged and still counts as fired.
    """

    def __init__(self) -> None:
        self.timers: List[IntervalTimer] = []

    def add_timer(self, name: str, interval_s: float, action: Callable[[float], None], last_fired: float = 0.0) -> IntervalTimer:
        timer = IntervalTimer(name=name, interval_s=float(interval_s), action=action, last_fired=float(last_fired))
        self.timers.append(timer)
        return timer

    def get(self, name: str) -> Optional[IntervalTimer]:
        for timer in self.timers:
            if timer.name == name:
                return timer
        return None

    def tick(self, now: float) -> List[str]:
        """Run every due timer; returns the names of the timers that fired."""
        fired: List[str] = []
        for timer in self.timers:
            if not timer.due(now):
                continue
            try:
                timer.action(now)
            except Exception:
                logger.warning(
                    "Timer %s failed",
                    timer.name,
                    extra={"action_context": f"scheduler:{timer.name}"},
                    exc_info=True,
                )
            timer.last_fired = now
            fired.append(timer.name)
        return fired


__all__ = ["IntervalTimer", "Scheduler"]
