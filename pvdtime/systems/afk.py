from __future__ import annotations

import math
from typing import Dict, Tuple

from pvdtime.models import PositionSample, Settings


def floor_position(x: float, y: float, z: float) -> Tuple[int, int, int]:
    return (math.floor(x), math.floor(y), math.floor(z))


class AfkDetector:
    """Position-based idle detection.

    A player is idle once their floored block position has not changed for
    `settings.afk_time_threshold` minutes. The first observation of a player
    in this process lifetime always counts as active. Memory is transient.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._samples: Dict[str, PositionSample] = {}

    def is_idle(self, player_id: str, position: Tuple[float, float, float], now: float) -> bool:
        """Classify a player; `now` is epoch seconds."""
        if not self.settings.afk_check_enabled:
            return False

        floored = floor_position(*position)
        last = self._samples.get(player_id)
        if last is None:
            self._samples[player_id] = PositionSample(position=floored, last_move_time=now)
            return False

        if last.position != floored:
            last.position = floored
            last.last_move_time = now
            return False

        return now - last.last_move_time >= self.settings.afk_time_threshold * 60

    def sample_for(self, player_id: str) -> PositionSample | None:
        return self._samples.get(player_id)


__all__ = ["AfkDetector", "floor_position"]
