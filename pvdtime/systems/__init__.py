from .afk import AfkDetector
from .playtime_tracking import PlaytimeTrackingSystem, EcsMarkerHost, online_players

__all__ = [
    "AfkDetector",
    "PlaytimeTrackingSystem",
    "EcsMarkerHost",
    "online_players",
]
