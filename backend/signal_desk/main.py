from __future__ import annotations
import logging
from fastapi import FastAPI

from signal_desk.config import load_settings
from signal_desk.log import setup_logging
from signal_desk.runtime import SignalDesk

from signal_desk.routers.health import router as health_router
from signal_desk.routers.state import router as state_router
from signal_desk.routers.config import router as config_router
from signal_desk.routers.notifications import router as notifications_router

log = logging.getLogger("main")


def create_app(desk: SignalDesk | None = None) -> FastAPI:
    """
    Build the dashboard API.
    With no `desk`, settings are read from the environment at startup, so a
    missing Telegram credential fails the boot instead of the first alert.
    """
    app = FastAPI(title="SignalDesk", version="0.1.0")
    app.state.desk = desk

    app.include_router(health_router)
    app.include_router(state_router)
    app.include_router(config_router)
    app.include_router(notifications_router)

    @app.on_event("startup")
    async def startup():
        if app.state.desk is None:
            settings = load_settings()
            setup_logging(settings.log_level)
            app.state.desk = SignalDesk(settings)
        # Now, we start polling: seed the chart, then arm the tick job.
        app.state.desk.start()
        log.info(
            "Scheduler started with tick interval of %d ms.",
            app.state.desk.config.poll_interval_ms,
        )

    @app.on_event("shutdown")
    async def shutdown():
        if app.state.desk is not None:
            await app.state.desk.stop()

    return app


app = create_app()
