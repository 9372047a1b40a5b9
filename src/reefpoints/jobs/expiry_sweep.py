"""Background scheduler that persists voucher expiry."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from ..core.config import get_settings
from ..core.database import SessionLocal
from ..services.redemption_service import expire_overdue

logger = logging.getLogger(__name__)

_scheduler = AsyncIOScheduler(timezone="UTC")


async def _execute_expiry_sweep() -> None:
    session = SessionLocal()
    try:
        expired = expire_overdue(session)
        session.commit()
        logger.info("expiry sweep completed: %d vouchers expired", expired)
    except Exception:
        session.rollback()
        logger.exception("expiry sweep job failed")
        raise
    finally:
        session.close()


def register_scheduler(app: FastAPI) -> None:
    """Attach APScheduler lifecycle hooks to the FastAPI app."""

    settings = get_settings()
    if not settings.expiry_sweep_enabled:
        logger.info("expiry sweep disabled")
        return

    if _scheduler.get_job("expiry_sweep") is None:
        _scheduler.add_job(
            _execute_expiry_sweep,
            "interval",
            minutes=settings.expiry_sweep_interval_minutes,
            id="expiry_sweep",
            coalesce=True,
            max_instances=1,
            misfire_grace_time=300,
        )

    @app.on_event("startup")
    async def start_scheduler() -> None:
        if not _scheduler.running:
            _scheduler.start()
            logger.info("expiry sweep scheduler started")

    @app.on_event("shutdown")
    async def shutdown_scheduler() -> None:
        if _scheduler.running:
            _scheduler.shutdown(wait=False)
            logger.info("expiry sweep scheduler stopped")

