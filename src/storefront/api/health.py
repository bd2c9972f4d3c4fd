"""Health check endpoints."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from storefront.api.deps import CodeStoreDep, SessionDep
from storefront.services.codes import RedisCodeStore

logger = logging.getLogger(__name__)

router = APIRouter()


async def _code_store_status(codes: CodeStoreDep) -> str:
    if not isinstance(codes, RedisCodeStore):
        return "memory"
    await codes.client.ping()
    return "connected"


@router.get("")
async def health_check():
    """Basic health check - just confirms the service is running."""
    return {"status": "ok"}


@router.get("/db")
async def health_check_db(session: SessionDep):
    """Health check with database connectivity."""
    try:
        await session.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e!r}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "database": "disconnected"},
        )


@router.get("/redis")
async def health_check_redis(codes: CodeStoreDep):
    """Health check for the verification code store."""
    try:
        return {"status": "ok", "redis": await _code_store_status(codes)}
    except Exception as e:
        logger.error(f"Redis health check failed: {e!r}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "redis": "disconnected"},
        )


@router.get("/ready")
async def readiness_check(session: SessionDep, codes: CodeStoreDep):
    """Readiness check - returns 503 if any critical dependency is unavailable."""
    errors = {}

    try:
        await session.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database readiness check failed: {e!r}")
        db_status = "disconnected"
        errors["database"] = "unreachable"

    try:
        redis_status = await _code_store_status(codes)
    except Exception as e:
        logger.error(f"Redis readiness check failed: {e!r}")
        redis_status = "disconnected"
        errors["redis"] = "unreachable"

    response = {
        "status": "ok" if not errors else "degraded",
        "database": db_status,
        "redis": redis_status,
    }

    if errors:
        return JSONResponse(status_code=503, content=response)
    return response
