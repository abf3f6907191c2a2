"""
CivicBridge Backend: Health Check Route
=======================================

What:  GET /health for container probes and load balancers.
How:   Runs SELECT 1 against the database and reports the notification
       channel in use.

Status levels:
    healthy:   database reachable (HTTP 200)
    unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from civicbridge import __version__
from civicbridge import database
from civicbridge.schemas.common import HealthResponse
from civicbridge.services.notification_service import notification_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        notifier=notification_dispatcher.notifier.name,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
