"""Playtime service: the single owner of the ledger, settings and AFK memory.

Constructed once at startup and handed explicitly to the tracking processor
and to the command router. All methods are expected to run on the host loop
thread; there is no internal locking.

Host interaction is limited to:
- a per-call iterable of OnlinePlayer snapshots, and
- a MarkerHost capability toggling the status marker on a player.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Callable, Iterable, List, Optional, Protocol, Tuple

from pvdtime.core.config import SET_COMMAND_STATUS_MINUTES, STATUS_TAG
from pvdtime.core.ledger import PlaytimeLedger, leaderboard
from pvdtime.core.metrics import metrics
from pvdtime.core.storage import PlaytimeStore, StorageError
from pvdtime.core.time_utils import local_today, previous_week_id, week_id
from pvdtime.models import LeaderboardRow, OnlinePlayer, Settings
from pvdtime.systems.afk import AfkDetector

logger = logging.getLogger(__name__)


class MarkerHost(Protocol):
    """Host capability for the status marker of a connected player."""

    def has_marker(self, player_id: str) -> bool: ...

    def set_marker(self, player_id: str, present: bool) -> None: ...


class PlaytimeService:
    def __init__(
        self,
        store: Optional[PlaytimeStore] = None,
        settings: Optional[Settings] = None,
        today: Callable[[], date] = local_today,
    ) -> None:
        self.store = store if store is not None else PlaytimeStore()
        self.settings = settings if settings is not None else Settings()
        self.ledger = PlaytimeLedger()
        self.afk = AfkDetector(self.settings)
        self._today = today
        # Only compared against the current week; an offline gap spanning
        # several week boundaries archives the immediately preceding week only.
        self.last_processed_week: str = self.current_week()

    # --- clock helpers ---

    def current_week(self) -> str:
        return week_id(self._today())

    def previous_week(self) -> str:
        return previous_week_id(self._today())

    # --- lifecycle ---

    def load(self) -> None:
        """Load settings and ledger from disk; missing files keep defaults, bad files are logged."""
        try:
            loaded = self.store.load_settings(self.settings)
            if loaded is not None:
                self._apply_settings(loaded)
        except StorageError:
            logger.warning(
                "Failed to load settings; keeping defaults",
                extra={"action_context": "startup:load_settings"},
                exc_info=True,
            )
        try:
            entries = self.store.load_ledger()
            if entries is not None:
                self.ledger.replace(entries)
        except StorageError:
            logger.warning(
                "Failed to load playtime ledger; starting empty",
                extra={"action_context": "startup:load_ledger"},
                exc_info=True,
            )
        logger.info(
            "playtime_loaded",
            extra={
                "players": len(self.ledger),
                "required_minutes": self.settings.required_minutes,
                "afk_check_enabled": self.settings.afk_check_enabled,
                "afk_time_threshold": self.settings.afk_time_threshold,
            },
        )

    def _apply_settings(self, new: Settings) -> None:
        # Mutate in place: the AFK detector holds a reference to this record.
        self.settings.required_minutes = new.required_minutes
        self.settings.afk_check_enabled = new.afk_check_enabled
        self.settings.afk_time_threshold = new.afk_time_threshold

    def save(self) -> bool:
        started = time.perf_counter()
        ok = self.store.save_ledger(self.ledger.entries)
        if ok:
            metrics.increment_event("save.count")
            metrics.record_timer("save.duration_s", time.perf_counter() - started)
        return ok

    def save_settings(self) -> bool:
        return self.store.save_settings(self.settings)

    # --- timers ---

    def sample_playtime(self, players: Iterable[OnlinePlayer], now: Optional[float] = None) -> int:
        """Credit one minute to every online player that is not AFK. Returns the number credited."""
        now = time.time() if now is None else now
        week = self.current_week()
        credited = 0
        for player in players:
            if self.afk.is_idle(player.player_id, (player.x, player.y, player.z), now):
                continue
            self.ledger.add_minutes(player.name, week, 1)
            credited += 1
        metrics.increment_event("playtime.sample.count", credited)
        return credited

    def check_weekly(self, players: Iterable[OnlinePlayer], markers: MarkerHost) -> bool:
        """Roll the ledger over on a week change, then reconcile status markers.

        Returns True when a rollover happened.
        """
        current = self.current_week()
        rolled = False
        if current != self.last_processed_week:
            self.rollover()
            self.last_processed_week = current
            rolled = True
        self.apply_status(players, markers)
        return rolled

    def rollover(self) -> str:
        """Archive the previous week, clear the whole ledger and persist it."""
        previous = self.previous_week()
        self.store.write_archive(previous, self.ledger.week_snapshot(previous))
        self.ledger.clear()
        self.save()
        metrics.increment_event("rollover.count")
        logger.info(
            "weekly_rollover",
            extra={"action_context": "loop:weekly_rollover", "archived_week": previous},
        )
        return previous

    def apply_status(self, players: Iterable[OnlinePlayer], markers: MarkerHost) -> Tuple[List[str], List[str]]:
        """Grant or revoke the status marker against the required-minutes threshold.

        Returns (granted names, revoked names).
        """
        week = self.current_week()
        granted: List[str] = []
        revoked: List[str] = []
        for player in players:
            minutes = self.ledger.minutes(player.name, week)
            should_have = minutes >= self.settings.required_minutes
            has = markers.has_marker(player.player_id)
            entry = self.ledger.get(player.name)
            if should_have and not has:
                markers.set_marker(player.player_id, True)
                if entry is not None:
                    entry.status_flag = True
                granted.append(player.name)
                metrics.increment_event("status.granted")
                logger.info("Added %s tag for %s", STATUS_TAG, player.name)
            elif not should_have and has:
                markers.set_marker(player.player_id, False)
                if entry is not None:
                    entry.status_flag = False
                revoked.append(player.name)
                metrics.increment_event("status.revoked")
                logger.info("Removed %s tag for %s", STATUS_TAG, player.name)
        return granted, revoked

    # --- read side ---

    def current_leaderboard(self) -> List[LeaderboardRow]:
        return leaderboard(self.ledger.entries, self.current_week())

    def active_leaderboard(self) -> List[LeaderboardRow]:
        return leaderboard(self.ledger.entries, self.current_week(), flagged_only=True)

    def last_week_leaderboard(self) -> Optional[List[LeaderboardRow]]:
        """Rows of the previous week's archive, or None when no archive exists.

        Raises StorageError when the archive exists but cannot be read.
        """
        previous = self.previous_week()
        archive = self.store.read_archive(previous)
        if archive is None:
            return None
        return leaderboard(archive, previous)

    # --- admin side ---

    def set_afk_enabled(self, enabled: bool) -> None:
        self.settings.afk_check_enabled = bool(enabled)
        self.save_settings()

    def set_afk_threshold(self, minutes: int) -> None:
        self.settings.afk_time_threshold = int(minutes)
        self.save_settings()

    def set_required_minutes(self, minutes: int, players: Iterable[OnlinePlayer], markers: MarkerHost) -> None:
        self.settings.required_minutes = int(minutes)
        self.save_settings()
        self.apply_status(players, markers)

    def clear_player(self, name: str, players: Iterable[OnlinePlayer], markers: MarkerHost) -> bool:
        """Zero the current week of `name` and revoke the marker; False if the player is unknown."""
        entry = self.ledger.get(name)
        if entry is None:
            return False
        entry.weeks[self.current_week()] = 0
        entry.status_flag = False
        for player in players:
            if player.name == name:
                markers.set_marker(player.player_id, False)
        self.save()
        return True

    def clear_all(self, players: Iterable[OnlinePlayer], markers: MarkerHost) -> None:
        self.ledger.zero_all()
        for player in players:
            markers.set_marker(player.player_id, False)
        self.save()

    def set_player_minutes(self, name: str, minutes: int) -> bool:
        """Overwrite the current-week minutes of `name`, creating the entry if needed.

        The status flag follows SET_COMMAND_STATUS_MINUTES, not the configured
        required minutes. Returns the new flag.
        """
        entry = self.ledger.set_minutes(name, self.current_week(), minutes)
        entry.status_flag = int(minutes) >= SET_COMMAND_STATUS_MINUTES
        self.save()
        return entry.status_flag


__all__ = ["MarkerHost", "PlaytimeService"]
