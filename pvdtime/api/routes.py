from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from pvdtime.auth.security import get_command_source, require_admin
from pvdtime.core.commands import CommandSource
from pvdtime.core.config import (
    CORS_ALLOW_CREDENTIALS,
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_METHODS,
    CORS_ALLOW_ORIGINS,
    get_data_dir,
    get_sample_interval_seconds,
    get_save_interval_seconds,
    get_tick_rate,
    get_weekly_check_interval_seconds,
)
from pvdtime.core.metrics import metrics
from pvdtime.core.storage import StorageError
from pvdtime.models import LeaderboardRow

logger = logging.getLogger(__name__)

# Global game world instance (shared singleton)
from pvdtime.core.state import game_world  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context: loads persisted playtime data and starts/stops the host loop."""
    logger.info(
        "startup_config",
        extra={
            "tick_rate": float(get_tick_rate()),
            "data_dir": get_data_dir(),
            "sample_interval_s": int(get_sample_interval_seconds()),
            "save_interval_s": int(get_save_interval_seconds()),
            "weekly_check_interval_s": int(get_weekly_check_interval_seconds()),
        },
    )
    game_world.load()
    game_world.start_game_loop()
    try:
        yield
    finally:
        game_world.stop_game_loop()


app = FastAPI(title="PVD Playtime Server", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=CORS_ALLOW_CREDENTIALS,
    allow_methods=CORS_ALLOW_METHODS,
    allow_headers=CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    path = getattr(route, "path", request.url.path)
    metrics.record_http(request.method, path, time.perf_counter() - start)
    return response


class CommandRequest(BaseModel):
    command: str


class CommandResponse(BaseModel):
    success: bool
    message: str


class PlayerConnectRequest(BaseModel):
    name: str
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    uuid: Optional[str] = None


class PositionUpdate(BaseModel):
    x: float
    y: float
    z: float


async def _on_loop(fn):
    """Run `fn` on the host loop thread without blocking the event loop."""
    return await asyncio.to_thread(game_world.call_on_loop, fn)


def _rows(rows: List[LeaderboardRow]) -> List[Dict[str, Any]]:
    return [{"name": r.name, "minutes": r.minutes, "display": r.display} for r in rows]


@app.get("/")
async def root():
    return await _on_loop(game_world.status)


@app.get("/metrics")
async def get_metrics():
    return metrics.snapshot()


@app.get("/healthz")
async def healthz():
    thread = game_world.game_thread
    return {
        "ok": bool(game_world.running and thread is not None and thread.is_alive()),
        "loaded": game_world.loaded,
        "uptime_s": metrics.uptime_s(),
    }


@app.get("/playtime")
async def get_playtime():
    service = game_world.service
    rows = await _on_loop(service.current_leaderboard)
    return {"week": service.current_week(), "players": _rows(rows)}


@app.get("/playtime/active")
async def get_active_playtime():
    service = game_world.service
    rows = await _on_loop(service.active_leaderboard)
    return {"week": service.current_week(), "players": _rows(rows)}


@app.get("/playtime/last")
async def get_last_week_playtime():
    service = game_world.service
    try:
        rows = await _on_loop(service.last_week_leaderboard)
    except StorageError:
        logger.warning("Failed to read last week archive", extra={"action_context": "api:playtime_last"}, exc_info=True)
        raise HTTPException(status_code=500, detail="Error loading data.")
    if rows is None:
        # A missing archive means no data yet
        return {"week": service.previous_week(), "players": [], "message": "No data for last week."}
    return {"week": service.previous_week(), "players": _rows(rows)}


@app.post("/commands", response_model=CommandResponse)
async def run_command(payload: CommandRequest, source: CommandSource = Depends(get_command_source)):
    result = await asyncio.to_thread(game_world.run_command, payload.command, source)
    return CommandResponse(success=result.success, message=result.message)


# --- host bridge: player list maintenance ---

@app.get("/players")
async def list_players():
    return {"players": await _on_loop(game_world.get_online_players)}


@app.post("/players", status_code=201)
async def connect_player(payload: PlayerConnectRequest, _admin=Depends(require_admin)):
    await _on_loop(lambda: game_world.connect_player(payload.name, payload.x, payload.y, payload.z, payload.uuid))
    return {"name": payload.name, "connected": True}


@app.put("/players/{name}/position")
async def move_player(name: str, payload: PositionUpdate, _admin=Depends(require_admin)):
    moved = await _on_loop(lambda: game_world.move_player(name, payload.x, payload.y, payload.z))
    if not moved:
        raise HTTPException(status_code=404, detail=f"Player {name} is not online")
    return {"name": name, "position": payload.model_dump()}


@app.delete("/players/{name}")
async def disconnect_player(name: str, _admin=Depends(require_admin)):
    removed = await _on_loop(lambda: game_world.disconnect_player(name))
    if not removed:
        raise HTTPException(status_code=404, detail=f"Player {name} is not online")
    return {"name": name, "connected": False}


__all__ = ["app", "game_world"]
