from __future__ import annotations

# Minimal entrypoint module for ASGI servers
# Exposes the FastAPI app constructed in pvdtime.api.routes
import os

import uvicorn

from pvdtime.api.routes import app


def run() -> None:
    """Serve the app with uvicorn (HOST/PORT from the environment)."""
    uvicorn.run(app, host=os.environ.get("HOST", "127.0.0.1"), port=int(os.environ.get("PORT", "8000")))


if __name__ == "__main__":
    run()

__all__ = ["app", "run"]
