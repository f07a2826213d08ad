from .components import Player, Position, CommandTags
from .playtime import PlaytimeEntry, Settings, PositionSample, OnlinePlayer, LeaderboardRow

__all__ = [
    "Player",
    "Position",
    "CommandTags",
    "PlaytimeEntry",
    "Settings",
    "PositionSample",
    "OnlinePlayer",
    "LeaderboardRow",
]
