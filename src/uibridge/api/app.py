"""FastAPI app for the UIBridge controller."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from uibridge import __version__
from uibridge.api.routes import router
from uibridge.remote.scheduler import RepeatingTask
from uibridge.remote.sessions import SessionStore
from uibridge.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the controller application.

    The ``SessionStore`` is created here and kept on ``app.state.sessions``;
    the idle-session sweep runs for the lifetime of the app.
    """
    settings = settings or get_settings()
    store = SessionStore(
        client_timeout_sec=settings.api.client_timeout_sec,
        max_activity=settings.api.max_activity_entries,
        max_settled=settings.api.max_settled_commands,
        screenshots_dir=settings.api.screenshots_dir,
    )

    async def _sweep() -> None:
        evicted = store.sweep()
        if evicted:
            logger.info("Swept %d inactive client(s)", len(evicted))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sweeper = RepeatingTask("uibridge-sweep", settings.api.sweep_interval_sec, _sweep, run_immediately=False)
        sweeper.start()
        logger.info("Controller ready; screenshots saved to %s", settings.api.screenshots_dir)
        try:
            yield
        finally:
            await sweeper.cancel()

    application = FastAPI(
        title="UIBridge Controller",
        description="Queue automation commands for live page agents and collect their results.",
        version=__version__,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.sessions = store

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    return application
