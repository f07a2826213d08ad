from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, List, Optional

import esper

from pvdtime.core.config import (
    STATUS_TAG,
    get_sample_interval_seconds,
    get_save_interval_seconds,
    get_weekly_check_interval_seconds,
)
from pvdtime.core.scheduler import Scheduler
from pvdtime.models import CommandTags, OnlinePlayer, Player, Position

if TYPE_CHECKING:
    from pvdtime.core.service import PlaytimeService

logger = logging.getLogger(__name__)


def online_players(world: esper.World) -> List[OnlinePlayer]:
    """Snapshot every player entity that has a position."""
    return [
        OnlinePlayer(player_id=player.uuid, name=player.name, x=pos.x, y=pos.y, z=pos.z)
        for _ent, (player, pos) in world.get_components(Player, Position)
    ]


class EcsMarkerHost:
    """Status marker capability backed by the CommandTags component of player entities."""

    def __init__(self, world: esper.World, tag: str = STATUS_TAG) -> None:
        self.world = world
        self.tag = tag

    def _tags_for(self, player_id: str) -> Optional[CommandTags]:
        for ent, player in self.world.get_component(Player):
            if player.uuid != player_id:
                continue
            tags = self.world.try_component(ent, CommandTags)
            if tags is None:
                tags = CommandTags()
                self.world.add_component(ent, tags)
            return tags
        return None

    def has_marker(self, player_id: str) -> bool:
        tags = self._tags_for(player_id)
        return tags is not None and self.tag in tags.tags

    def set_marker(self, player_id: str, present: bool) -> None:
        tags = self._tags_for(player_id)
        if tags is None:
            return
        if present:
            tags.tags.add(self.tag)
        else:
            tags.tags.discard(self.tag)


class PlaytimeTrackingSystem(esper.Processor):
    """ECS processor driving the playtime timers once per host tick.

    Three independent timers: sampling (fires on the first tick), ledger
    persistence and the weekly check (both first fire one interval after
    construction).
    """

    def __init__(self, service: "PlaytimeService", clock: Callable[[], float] = time.time) -> None:
        super().__init__()
        self.service = service
        self.clock = clock
        self.markers: Optional[EcsMarkerHost] = None
        self._online: List[OnlinePlayer] = []

        started = clock()
        self.scheduler = Scheduler()
        self.scheduler.add_timer(
            "playtime_sample",
            get_sample_interval_seconds(),
            lambda now: self.service.sample_playtime(self._online, now),
        )
        self.scheduler.add_timer(
            "ledger_save",
            get_save_interval_seconds(),
            lambda now: self.service.save(),
            last_fired=started,
        )
        self.scheduler.add_timer(
            "weekly_check",
            get_weekly_check_interval_seconds(),
            lambda now: self.service.check_weekly(self._online, self.markers),
            last_fired=started,
        )

    def process(self) -> None:
        """Run one tick of playtime tracking."""
        if self.markers is None or self.markers.world is not self.world:
            self.markers = EcsMarkerHost(self.world)
        self._online = online_players(self.world)
        self.scheduler.tick(self.clock())


__all__ = ["EcsMarkerHost", "PlaytimeTrackingSystem", "online_players"]
