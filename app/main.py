from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import PROJECT_DIR, Settings, load_settings
from app.runtime import PresenceRuntime
from routes.presence_ws import create_router as create_presence_router
from routes.status import router as status_router
from services.clock import Clock, iso_now, now_ms

logger = logging.getLogger(__name__)

SHUTDOWN_DRAIN_SECONDS = 2.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    runtime: PresenceRuntime = app.state.runtime
    runtime.eviction.start()
    logger.info(
        "[main] Location Tracker Server started: http://%s:%s ws=%s env=%s",
        runtime.settings.host,
        runtime.settings.port,
        runtime.settings.ws_path,
        runtime.settings.environment,
    )
    try:
        yield
    finally:
        await runtime.shutdown()
        await runtime.hub.wait_idle(SHUTDOWN_DRAIN_SECONDS)
        await runtime.eviction.stop()
        logger.info("[main] Server shut down")


def _static_directory(settings: Settings) -> Path | None:
    path = Path(settings.static_dir)
    if not path.is_absolute():
        path = PROJECT_DIR / path
    return path if path.is_dir() else None


def create_app(settings: Settings | None = None, *, clock: Clock = now_ms) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Location Tracker API", version="0.1.0", lifespan=lifespan)
    app.state.runtime = PresenceRuntime.build(settings, clock=clock)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        allow_credentials="*" not in settings.cors_origins,
    )
    app.include_router(status_router)
    app.include_router(create_presence_router(settings.ws_path))

    static_dir = _static_directory(settings)
    if static_dir is not None:
        app.mount("/static", StaticFiles(directory=static_dir, html=True), name="static")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Not found",
                    "message": f"Route {request.method} {request.url.path} not found",
                    "timestamp": iso_now(),
                },
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("[main] Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error", "timestamp": iso_now()})

    return app


class PresenceServer(uvicorn.Server):
    """uvicorn server that tells clients it is going away before closing their sockets."""

    def __init__(self, config: uvicorn.Config, runtime: PresenceRuntime) -> None:
        super().__init__(config)
        self._runtime = runtime

    async def shutdown(self, sockets: list | None = None) -> None:
        logger.info("[main] Shutdown requested, notifying clients...")
        try:
            await self._runtime.shutdown()
            await self._runtime.hub.wait_idle(SHUTDOWN_DRAIN_SECONDS)
        except Exception:
            logger.exception("[main] Error while notifying clients of shutdown")
        await super().shutdown(sockets=sockets)


app = create_app()


def run() -> None:
    settings: Settings = app.state.runtime.settings
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    PresenceServer(config, app.state.runtime).run()


if __name__ == "__main__":
    run()
