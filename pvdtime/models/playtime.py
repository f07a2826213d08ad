from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from pvdtime.core.config import (
    DEFAULT_AFK_CHECK_ENABLED,
    DEFAULT_AFK_TIME_THRESHOLD,
    DEFAULT_REQUIRED_MINUTES,
)


@dataclass
class PlaytimeEntry:
    """Per-player playtime record.

    Attributes:
        weeks: Week identifier (e.g. '2024-W07') -> credited minutes, in insertion order.
        status_flag: Whether the player currently holds the status marker.
    """
    weeks: Dict[str, int] = field(default_factory=dict)
    status_flag: bool = False

    def minutes_for(self, week: str) -> int:
        return int(self.weeks.get(week, 0))


@dataclass
class Settings:
    """Runtime-mutable settings persisted to config.json."""
    required_minutes: int = DEFAULT_REQUIRED_MINUTES
    afk_check_enabled: bool = DEFAULT_AFK_CHECK_ENABLED
    afk_time_threshold: int = DEFAULT_AFK_TIME_THRESHOLD  # minutes


@dataclass
class PositionSample:
    """Last floored position of a player and when it last changed (epoch seconds)."""
    position: Tuple[int, int, int]
    last_move_time: float


@dataclass(frozen=True)
class OnlinePlayer:
    """Per-tick snapshot of a connected player handed to the playtime service."""
    player_id: str
    name: str
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class LeaderboardRow:
    name: str
    minutes: int

    @property
    def display(self) -> str:
        hours, minutes = divmod(self.minutes, 60)
        return f"{hours} hours {minutes} minutes"
