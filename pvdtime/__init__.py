"""Weekly playtime tracking with AFK filtering and a status marker for game servers."""

__version__ = "0.1.0"
