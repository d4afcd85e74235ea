"""FastAPI health responder served alongside the bot.

Hosting platforms probe an HTTP port to decide whether the container is
alive, even though the bot itself only talks over the gateway websocket.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from .service import RosterService

logger = logging.getLogger(__name__)


def create_app(service: RosterService) -> FastAPI:
    app = FastAPI(title="Eclipse Roster", version="1.0.0")

    @app.get("/")
    @app.get("/health")
    def health() -> dict:
        return {
            "status": "ok",
            "categories": len(service.categories()),
            "members": service.state.total_members(),
            "save_pending": service.save_pending,
        }

    return app


async def serve_health(app: FastAPI, port: int, host: str = "0.0.0.0") -> None:
    """Serve ``app`` on the running loop; failures are logged, never raised."""

    config = uvicorn.Config(app, host=host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    logger.info("Healthcheck HTTP server listening on :%s", port)
    try:
        await server.serve()
    except (OSError, SystemExit) as exc:
        # uvicorn exits on bind failures; the bot keeps running without it.
        logger.warning("Healthcheck server stopped: %s", exc)


__all__ = ["create_app", "serve_health"]
