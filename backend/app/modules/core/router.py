import logging

from fastapi import APIRouter
from sqlalchemy import text

import app.db as db_module

router = APIRouter(prefix="/api", tags=["health"])
logger = logging.getLogger("core.health")


@router.get("/health")
async def api_health() -> dict:
    logger.debug("health check ok")
    return {"status": "ok"}


@router.get("/health/db")
async def api_health_db() -> dict:
    try:
        db_module._ensure_engine()
    except RuntimeError as exc:
        logger.error("db check failed: %s", exc)
        return {"status": "error", "detail": "database unavailable"}

    try:
        with db_module.engine.connect() as connection:
            connection.execute(text("SELECT 1")).fetchone()
        logger.debug("db check ok")
        return {"status": "ok"}
    except Exception:  # noqa: BLE001
        logger.exception("db check failed")
        return {"status": "error", "detail": "database unavailable"}
