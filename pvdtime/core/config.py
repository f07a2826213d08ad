"""Centralized configuration for the playtime tracking server.

Keeps tick rate, timer intervals and file locations out of the app entrypoint.
Values are read once from the environment at import time; runtime-mutable
settings (required minutes, AFK toggle/threshold) live in config.json and are
handled by pvdtime.core.storage.
"""
from __future__ import annotations

import os
from typing import List

# Seconds per tick of the background host loop
TICK_RATE: float = float(os.environ.get("TICK_RATE", "1.0"))

# Optional fast-intervals toggle for dev/test without changing production defaults.
_DEV_FAST = os.environ.get("DEV_FAST_INTERVALS", "false").lower() == "true"
_DEFAULT_INTERVAL = "5" if _DEV_FAST else "60"

# One firing of the sampling timer credits one minute of playtime
SAMPLE_INTERVAL_SECONDS: int = int(os.environ.get("SAMPLE_INTERVAL_SECONDS", _DEFAULT_INTERVAL))
# Ledger persistence cadence
SAVE_INTERVAL_SECONDS: int = int(os.environ.get("SAVE_INTERVAL_SECONDS", _DEFAULT_INTERVAL))
# Week rollover + status check cadence
WEEKLY_CHECK_INTERVAL_SECONDS: int = int(os.environ.get("WEEKLY_CHECK_INTERVAL_SECONDS", _DEFAULT_INTERVAL))

# Folder (relative to the working directory) holding lastlog.json, config.json and archives
PLAYTIME_DATA_DIR: str = os.environ.get("PLAYTIME_DATA_DIR", "playtime_logs")
LEDGER_FILENAME: str = "lastlog.json"
SETTINGS_FILENAME: str = "config.json"
ARCHIVE_PREFIX: str = "archive_"

# Host-side tag mirrored by the ledger status flag
STATUS_TAG: str = os.environ.get("STATUS_TAG", "PVD")

# Permission level required by the settings/admin subcommands
ADMIN_PERMISSION_LEVEL: int = int(os.environ.get("ADMIN_PERMISSION_LEVEL", "4"))
# The `set` admin command flags a player when the new value reaches this many minutes.
# It is intentionally independent of the configurable required-minutes threshold.
SET_COMMAND_STATUS_MINUTES: int = 5

# Defaults for the persisted settings record
DEFAULT_REQUIRED_MINUTES: int = int(os.environ.get("DEFAULT_REQUIRED_MINUTES", "180"))
DEFAULT_AFK_CHECK_ENABLED: bool = os.environ.get("DEFAULT_AFK_CHECK_ENABLED", "true").lower() == "true"
DEFAULT_AFK_TIME_THRESHOLD: int = int(os.environ.get("DEFAULT_AFK_TIME_THRESHOLD", "5"))

# How long an HTTP caller waits for the loop thread to execute a queued command
COMMAND_TIMEOUT_SECONDS: float = float(os.environ.get("COMMAND_TIMEOUT_SECONDS", "5.0"))

# Auth / Security configuration
JWT_SECRET: str = os.environ.get("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM: str = os.environ.get("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24h

# CORS configuration
CORS_ALLOW_ORIGINS: List[str] = [orig.strip() for orig in os.environ.get("CORS_ALLOW_ORIGINS", "*").split(",")]
CORS_ALLOW_CREDENTIALS: bool = os.environ.get("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
CORS_ALLOW_METHODS: List[str] = [m.strip() for m in os.environ.get("CORS_ALLOW_METHODS", "*").split(",")]
CORS_ALLOW_HEADERS: List[str] = [h.strip() for h in os.environ.get("CORS_ALLOW_HEADERS", "*").split(",")]


# --- Typed getters (single source of truth) ---

def get_tick_rate() -> float:
    return float(TICK_RATE)

def get_data_dir() -> str:
    return str(PLAYTIME_DATA_DIR)

def get_sample_interval_seconds() -> int:
    return int(SAMPLE_INTERVAL_SECONDS)

def get_save_interval_seconds() -> int:
    return int(SAVE_INTERVAL_SECONDS)

def get_weekly_check_interval_seconds() -> int:
    return int(WEEKLY_CHECK_INTERVAL_SECONDS)
