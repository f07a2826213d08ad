"""Shared application state.

Exports a singleton GameWorld instance that can be imported by API routers.
The playtime service itself is owned by this world and reached through it.
"""

from __future__ import annotations

from pvdtime.core.game import GameWorld

# Global game world instance
game_world = GameWorld()

__all__ = ["game_world"]
