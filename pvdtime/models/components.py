from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Set


@dataclass
class Player:
    """A connected player as seen by the host.

    Attributes:
        name: Display name; also the key of the playtime ledger.
        uuid: Stable identity used for AFK position memory.
        joined_at: Timestamp of the connection.
    """
    name: str
    uuid: str
    joined_at: datetime = field(default_factory=datetime.now)


@dataclass
class Position:
    """World coordinates of a player entity (block units, fractional)."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass
class CommandTags:
    """Scoreboard-style tags attached to a player entity (e.g. 'PVD')."""
    tags: Set[str] = field(default_factory=set)
