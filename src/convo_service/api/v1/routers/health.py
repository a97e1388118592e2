from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from convo_service.config import settings
from convo_service.infrastructure.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


async def _check_postgres() -> str:
    async with AsyncSessionLocal() as session:
        await session.execute(text("SELECT 1"))
    return "ok"


async def _check_redis(request: Request) -> str:
    await request.app.state.redis.ping()
    return "ok"


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Readiness: Postgres always, Redis only when it carries the broker."""
    checks: dict[str, str] = {}
    probes = {"postgres": _check_postgres()}
    if settings.BROKER_BACKEND == "redis":
        probes["redis"] = _check_redis(request)

    for name, probe in probes.items():
        try:
            checks[name] = await probe
        except Exception as exc:  # noqa: BLE001
            logger.warning("Readiness check %s failed: %s", name, exc)
            checks[name] = f"error: {exc}"

    ready = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "unavailable",
            "broker": settings.BROKER_BACKEND,
            "checks": checks,
        },
    )
