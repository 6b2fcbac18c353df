"""
Notebox Backend — Health Check Route
======================================

What:  Health check endpoint for monitoring and container probes.
How:   Runs `SELECT 1` against the database and pings the object store.

Status levels:
    - healthy:   database and object store reachable
    - degraded:  object store unreachable (notes still work, files do not)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from notebox import __version__
from notebox.exceptions import ObjectStoreError
from notebox.schemas.note import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    state = request.app.state
    db_status = "connected"
    store_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with state.database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Object Store ────────────────────────────────────────────────
    try:
        reachable = await state.object_store.ping(state.settings.object_store_bucket)
    except ObjectStoreError as e:
        reachable = False
        logger.warning("Health check: object store unreachable: %s", e.message)
    if not reachable:
        store_status = "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        object_store=store_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
