from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from smartlocker.infrastructure.config import Settings, settings as default_settings
from smartlocker.infrastructure.logging_config import configure_logging
from smartlocker.presentation.routers import router
from smartlocker.services.lifecycle_service import LifecycleService

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, service: LifecycleService | None = None) -> FastAPI:
    """
    Build the API around a single LifecycleService.

    Nothing touches the database until startup: the lifespan builds the
    service (unless one is given), bootstraps it (seeding, locker
    reconciliation, abandoned session reclaim), then starts the sweeper.
    """
    settings = settings or default_settings
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Smart locker service starting up")
        lifecycle = service or LifecycleService(settings=settings)
        lifecycle.bootstrap()
        lifecycle.start()
        app.state.lifecycle = lifecycle
        yield
        logger.info("Smart locker service shutting down")
        lifecycle.shutdown()

    app = FastAPI(title="Smart Locker Sessions", version="1.0.0", lifespan=lifespan)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("smartlocker.main:app", host="0.0.0.0", port=8000)
