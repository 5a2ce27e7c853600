from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI

from . import db as db_mod
from .config import Settings
from .infrastructure.repositories import build_tenant_store
from .logging_config import get_logger
from .setup_db import create_all
from .wiring import install_services

logger = get_logger(__name__)


@dataclass
class WireResult:
    app: Any
    engine: Any
    sessionmaker: Any
    teardown: Any


async def _sweep_loop(app: FastAPI, interval: int) -> None:
    # single writer: one loop per process, one process should run it
    while True:
        await asyncio.sleep(interval)
        try:
            report = await app.state.lifecycle_manager.sweep_expired()
            logger.info(
                "scheduled_sweep_completed",
                expired=len(report.expired),
                trials_expired=len(report.trials_expired),
            )
        except Exception as e:
            logger.exception("scheduled_sweep_failed", error=str(e))


async def wire_app(app: FastAPI) -> WireResult:
    """Runtime wiring: build the tenant store, install services and start the sweep.

    IMPORTANT: This function creates the DB engine, so it MUST NOT be called
    at module import time. Tests rely on setting DATABASE_URL before any
    engines are created.
    """
    settings = getattr(app.state, "settings", None) or Settings()  # type: ignore[call-arg]

    db_engine = None
    session_factory = None
    if settings.store_backend != "memory":
        db_engine = db_mod.create_engine(settings)
        session_factory = db_mod.create_sessionmaker(db_engine)
        await create_all(engine=db_engine)

    store = build_tenant_store(settings, session_factory=session_factory)
    install_services(app, settings, store)

    sweep_task = None
    if settings.sweep_interval_seconds > 0:
        sweep_task = asyncio.create_task(_sweep_loop(app, settings.sweep_interval_seconds))
        logger.info("sweep_loop_started", interval_seconds=settings.sweep_interval_seconds)

    async def _teardown():
        if sweep_task is not None:
            sweep_task.cancel()
            try:
                await sweep_task
            except asyncio.CancelledError:
                pass
        if db_engine is not None:
            await db_engine.dispose()
        logger.info("teardown complete")

    return WireResult(
        app=app,
        engine=db_engine,
        sessionmaker=session_factory,
        teardown=_teardown,
    )
