"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cmk.config import get_settings
from cmk.database import get_session
from cmk.redis_client import get_redis
from cmk.rewards.store import count_accounts

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check. 200 while the process is up."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness check.

    The account store is required; Redis only backs rate limiting, so its
    absence degrades the service instead of failing it.
    """
    checks: dict[str, object] = {}
    accounts: int | None = None

    try:
        accounts = await count_accounts(db)
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as exc:
        checks["redis"] = f"unavailable: {exc}"

    if checks["database"] != "ok":
        status = "unavailable"
    elif checks["redis"] != "ok":
        status = "degraded"
    else:
        status = "ready"
    return {"status": status, "checks": checks, "accounts": accounts}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
