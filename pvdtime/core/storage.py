"""JSON file persistence for the playtime ledger, weekly archives and settings.

All files live under one data directory (config.PLAYTIME_DATA_DIR):
- lastlog.json: {name: {"weeks": {weekId: minutes}, "PVD": bool}}
- archive_<weekId>.json: same shape restricted to one week
- config.json: {"requiredMinutes": int, "afkCheckEnabled": bool, "afkTimeThreshold": int}

Typed records are converted to and from plain JSON only in this module.

Error contract:
- A missing file means "no data yet": readers return None.
- Unreadable or malformed files raise StorageError; callers log and keep
  their current in-memory state.
- Write failures are logged and reported as False; no retry is attempted.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pvdtime.core.config import ARCHIVE_PREFIX, LEDGER_FILENAME, SETTINGS_FILENAME, get_data_dir
from pvdtime.core.metrics import metrics
from pvdtime.models import PlaytimeEntry, Settings

logger = logging.getLogger(__name__)

Ledger = Dict[str, PlaytimeEntry]


class StorageError(Exception):
    """Raised when a persisted file exists but cannot be read or parsed."""


# --- (de)serialization at the boundary ---

def entry_to_json(entry: PlaytimeEntry) -> Dict[str, Any]:
    return {"weeks": dict(entry.weeks), "PVD": bool(entry.status_flag)}


def entry_from_json(raw: Any) -> PlaytimeEntry:
    if not isinstance(raw, dict):
        raise ValueError(f"player entry must be an object, got {type(raw).__name__}")
    weeks_raw = raw.get("weeks")
    if weeks_raw is None:
        weeks_raw = {}
    if not isinstance(weeks_raw, dict):
        raise ValueError("'weeks' must be an object")
    weeks: Dict[str, int] = {}
    for week, minutes in weeks_raw.items():
        if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
            raise ValueError(f"minutes for week {week!r} must be a number")
        weeks[str(week)] = int(minutes)
    flag = raw.get("PVD", False)
    if not isinstance(flag, bool):
        raise ValueError("'PVD' must be a boolean")
    return PlaytimeEntry(weeks=weeks, status_flag=flag)


def ledger_to_json(entries: Ledger) -> Dict[str, Any]:
    return {name: entry_to_json(entry) for name, entry in entries.items()}


def ledger_from_json(raw: Any) -> Ledger:
    if not isinstance(raw, dict):
        raise ValueError(f"ledger must be an object, got {type(raw).__name__}")
    return {str(name): entry_from_json(value) for name, value in raw.items()}


def settings_to_json(settings: Settings) -> Dict[str, Any]:
    return {
        "requiredMinutes": int(settings.required_minutes),
        "afkCheckEnabled": bool(settings.afk_check_enabled),
        "afkTimeThreshold": int(settings.afk_time_threshold),
    }


def settings_from_json(raw: Any, base: Optional[Settings] = None) -> Settings:
    """Apply known keys of `raw` over `base` (defaults when omitted); missing keys keep their value."""
    if not isinstance(raw, dict):
        raise ValueError(f"settings must be an object, got {type(raw).__name__}")
    current = base if base is not None else Settings()
    result = Settings(
        required_minutes=current.required_minutes,
        afk_check_enabled=current.afk_check_enabled,
        afk_time_threshold=current.afk_time_threshold,
    )
    if "requiredMinutes" in raw:
        result.required_minutes = int(raw["requiredMinutes"])
    if "afkCheckEnabled" in raw:
        value = raw["afkCheckEnabled"]
        if not isinstance(value, bool):
            raise ValueError("'afkCheckEnabled' must be a boolean")
        result.afk_check_enabled = value
    if "afkTimeThreshold" in raw:
        result.afk_time_threshold = int(raw["afkTimeThreshold"])
    return result


class PlaytimeStore:
    """Reads and writes the playtime files under a single directory."""

    def __init__(self, base_dir: Optional[str | os.PathLike[str]] = None) -> None:
        self.base_dir = Path(base_dir if base_dir is not None else get_data_dir())

    @property
    def ledger_path(self) -> Path:
        return self.base_dir / LEDGER_FILENAME

    @property
    def settings_path(self) -> Path:
        return self.base_dir / SETTINGS_FILENAME

    def archive_path(self, week: str) -> Path:
        return self.base_dir / f"{ARCHIVE_PREFIX}{week}.json"

    # --- low level ---

    def _read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def _write_json(self, path: Path, payload: Dict[str, Any], action_context: str) -> bool:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            return True
        except (OSError, TypeError, ValueError):
            metrics.increment_event("storage.write_failed")
            logger.warning(
                "Failed to write %s",
                path,
                extra={"action_context": action_context},
                exc_info=True,
            )
            return False

    # --- ledger ---

    def load_ledger(self) -> Optional[Ledger]:
        raw = self._read_json(self.ledger_path)
        if raw is None:
            return None
        try:
            return ledger_from_json(raw)
        except ValueError as exc:
            raise StorageError(f"Malformed ledger {self.ledger_path}: {exc}") from exc

    def save_ledger(self, entries: Ledger) -> bool:
        return self._write_json(self.ledger_path, ledger_to_json(entries), "storage:save_ledger")

    # --- archives ---

    def write_archive(self, week: str, entries: Ledger) -> bool:
        path = self.archive_path(week)
        ok = self._write_json(path, ledger_to_json(entries), "storage:write_archive")
        if ok:
            logger.info(
                "Archive for week %s written to %s",
                week,
                path.resolve(),
                extra={"action_context": "storage:write_archive", "week": week},
            )
        return ok

    def read_archive(self, week: str) -> Optional[Ledger]:
        path = self.archive_path(week)
        raw = self._read_json(path)
        if raw is None:
            return None
        try:
            return ledger_from_json(raw)
        except ValueError as exc:
            raise StorageError(f"Malformed archive {path}: {exc}") from exc

    # --- settings ---

    def load_settings(self, base: Optional[Settings] = None) -> Optional[Settings]:
        raw = self._read_json(self.settings_path)
        if raw is None:
            return None
        try:
            return settings_from_json(raw, base)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Malformed settings {self.settings_path}: {exc}") from exc

    def save_settings(self, settings: Settings) -> bool:
        return self._write_json(self.settings_path, settings_to_json(settings), "storage:save_settings")


__all__ = [
    "Ledger",
    "PlaytimeStore",
    "StorageError",
    "entry_to_json",
    "entry_from_json",
    "ledger_to_json",
    "ledger_from_json",
    "settings_to_json",
    "settings_from_json",
]
