"""Application lifespan: startup and shutdown.

Collaborators are built eagerly in create_app(); the lifespan only runs the
periodic sweep of expired tokens and idle sessions, and flushes telemetry
on exit.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.application.services.token_issuer import TokenIssuer
from app.core.reset_session_store import ResetSessionStore
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


async def run_sweeper(
    issuer: TokenIssuer, sessions: ResetSessionStore, interval_seconds: float
) -> None:
    """Remove expired tokens and idle sessions every interval_seconds until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            expired = issuer.sweep_expired()
            idle = sessions.sweep_idle()
        except Exception:
            logger.exception("Sweep failed")
            continue
        if expired or idle:
            logger.debug("Swept %d expired token(s), %d idle session(s)", expired, idle)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the sweeper, yield, then stop it and shut telemetry down."""
    settings = app.state.settings

    # ---- Startup ----
    sweeper = asyncio.create_task(
        run_sweeper(
            app.state.token_issuer,
            app.state.session_store,
            settings.token_sweep_interval_seconds,
        )
    )
    app.state.sweeper_task = sweeper
    logger.info(
        "%s %s started (token sender: %s)",
        settings.app_name,
        settings.app_version,
        settings.token_sender,
    )

    yield

    # ---- Shutdown ----
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    app.state.sweeper_task = None
    logger.info("Sweeper task stopped")

    telemetry = getattr(app.state, "telemetry", None)
    if telemetry is not None:
        telemetry.shutdown()
