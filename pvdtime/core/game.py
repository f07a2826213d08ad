from __future__ import annotations

import logging
import threading
import time
import uuid as uuid_lib
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime
from queue import Empty, Queue
from typing import Any, Callable, Dict, List, Optional

import esper

from pvdtime.core.commands import CommandContext, CommandResult, CommandRouter, CommandSource
from pvdtime.core.config import COMMAND_TIMEOUT_SECONDS, STATUS_TAG
from pvdtime.core.metrics import metrics
from pvdtime.core.service import PlaytimeService
from pvdtime.core.storage import PlaytimeStore
from pvdtime.core.time_utils import isoformat_utc
from pvdtime.models import CommandTags, Player, Position
from pvdtime.systems import EcsMarkerHost, PlaytimeTrackingSystem, online_players

logger = logging.getLogger(__name__)


@dataclass
class _QueuedCall:
    fn: Callable[[], Any]
    future: "Future[Any]"


class GameWorld:
    """Stand-in host server: an esper world of player entities ticked on a background thread.

    The playtime service, the tracking processor and every command run on the
    loop thread. Other threads (HTTP handlers) enqueue commands and wait on a
    future for the result.
    """

    def __init__(self, store: Optional[PlaytimeStore] = None, service: Optional[PlaytimeService] = None) -> None:
        self.world = esper.World()
        self.running = False
        self.game_thread: Optional[threading.Thread] = None
        self.command_queue: "Queue[_QueuedCall]" = Queue()
        self.loaded: bool = False

        self.service = service if service is not None else PlaytimeService(store=store)
        self.markers = EcsMarkerHost(self.world, STATUS_TAG)
        self.router = CommandRouter()

        self.tracking = PlaytimeTrackingSystem(self.service)
        self.tracking.markers = self.markers
        self.world.add_processor(self.tracking)

    # --- lifecycle ---

    def load(self) -> None:
        """Load persisted settings and ledger."""
        started = time.perf_counter()
        self.service.load()
        self.loaded = True
        metrics.increment_event("autoload.count")
        metrics.record_timer("autoload.duration_s", time.perf_counter() - started)

    def start_game_loop(self) -> None:
        """Start the game loop in a separate thread."""
        if not self.running:
            self.running = True
            self.game_thread = threading.Thread(target=self._game_loop, daemon=True)
            self.game_thread.start()
            logger.info("Game loop started")

    def stop_game_loop(self) -> None:
        """Stop the game loop and save the ledger one last time."""
        self.running = False
        if self.game_thread:
            self.game_thread.join()
            self.game_thread = None
            logger.info("Game loop stopped")
        # Commands left in the queue are answered on this thread now that the loop is gone
        self._process_commands()
        try:
            self.service.save()
        except Exception:
            logger.warning(
                "Final save on stop failed",
                extra={"action_context": "shutdown:final_save"},
                exc_info=True,
            )

    def _game_loop(self) -> None:
        """Main loop: process queued commands, then all ECS systems, every tick.

        Uses time.monotonic() for cadence; the playtime timers themselves use
        wall-clock time.
        """
        from pvdtime.core.config import TICK_RATE

        period_s = TICK_RATE  # seconds per tick
        next_tick = time.monotonic()
        while self.running:
            planned_start = next_tick
            actual_start = time.monotonic()
            jitter_s = actual_start - planned_start

            self.tick()

            elapsed = time.monotonic() - actual_start
            metrics.record_tick(elapsed, jitter_s=jitter_s)
            logger.debug(
                "tick_complete",
                extra={"duration_ms": elapsed * 1000.0, "jitter_ms": abs(jitter_s) * 1000.0},
            )

            next_tick = planned_start + period_s
            time.sleep(max(0.0, next_tick - time.monotonic()))

    def tick(self) -> None:
        """Run a single host tick synchronously."""
        self._process_commands()
        try:
            self.world.process()
        except Exception:
            logger.warning(
                "World processing failed",
                extra={"action_context": "loop:process"},
                exc_info=True,
            )

    # --- commands ---

    def queue_call(self, fn: Callable[[], Any]) -> "Future[Any]":
        """Schedule `fn` to run on the loop thread at the start of the next tick."""
        future: "Future[Any]" = Future()
        self.command_queue.put(_QueuedCall(fn=fn, future=future))
        return future

    def call_on_loop(self, fn: Callable[[], Any], timeout: Optional[float] = None) -> Any:
        """Run `fn` on the loop thread and wait for its result (inline when the loop is not running)."""
        if not self.running:
            return fn()
        future = self.queue_call(fn)
        return future.result(timeout=timeout if timeout is not None else COMMAND_TIMEOUT_SECONDS)

    def run_command(self, text: str, source: CommandSource, timeout: Optional[float] = None) -> CommandResult:
        return self.call_on_loop(lambda: self.execute_command(text, source), timeout=timeout)

    def _process_commands(self) -> None:
        while True:
            try:
                queued = self.command_queue.get_nowait()
            except Empty:
                return
            if not queued.future.set_running_or_notify_cancel():
                continue
            try:
                queued.future.set_result(queued.fn())
            except Exception as e:
                logger.error(f"Error processing command: {e}")
                queued.future.set_exception(e)

    def execute_command(self, text: str, source: CommandSource) -> CommandResult:
        ctx = CommandContext(
            service=self.service,
            source=source,
            markers=self.markers,
            players=online_players(self.world),
        )
        return self.router.execute(text, ctx)

    # --- host player list ---

    def _find_player_entity(self, name: str) -> Optional[int]:
        for ent, player in self.world.get_component(Player):
            if player.name == name:
                return ent
        return None

    def connect_player(self, name: str, x: float = 0.0, y: float = 0.0, z: float = 0.0, player_uuid: Optional[str] = None) -> int:
        """Add a player entity; reconnecting an online name just returns its entity."""
        ent = self._find_player_entity(name)
        if ent is not None:
            return ent
        ent = self.world.create_entity(
            Player(name=name, uuid=player_uuid or str(uuid_lib.uuid4())),
            Position(x=x, y=y, z=z),
            CommandTags(),
        )
        logger.info(f"Player {name} connected")
        return ent

    def move_player(self, name: str, x: float, y: float, z: float) -> bool:
        ent = self._find_player_entity(name)
        if ent is None:
            return False
        pos = self.world.component_for_entity(ent, Position)
        pos.x, pos.y, pos.z = float(x), float(y), float(z)
        return True

    def disconnect_player(self, name: str) -> bool:
        ent = self._find_player_entity(name)
        if ent is None:
            return False
        self.world.delete_entity(ent, immediate=True)
        logger.info(f"Player {name} disconnected")
        return True

    def get_online_players(self) -> List[Dict[str, Any]]:
        result: List[Dict[str, Any]] = []
        for ent, (player, pos) in self.world.get_components(Player, Position):
            tags = self.world.try_component(ent, CommandTags)
            result.append({
                "name": player.name,
                "uuid": player.uuid,
                "joined_at": isoformat_utc(player.joined_at),
                "position": {"x": pos.x, "y": pos.y, "z": pos.z},
                "tags": sorted(tags.tags) if tags is not None else [],
                "week_minutes": self.service.ledger.minutes(player.name, self.service.current_week()),
            })
        return result

    def status(self) -> Dict[str, Any]:
        return {
            "status": "running" if self.running else "stopped",
            "loaded": self.loaded,
            "current_week": self.service.current_week(),
            "last_processed_week": self.service.last_processed_week,
            "tracked_players": len(self.service.ledger),
            "online_players": len(online_players(self.world)),
            "timestamp": datetime.now().isoformat(),
        }


__all__ = ["GameWorld"]
