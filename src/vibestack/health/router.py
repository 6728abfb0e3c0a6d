"""Health, readiness, and version endpoints."""

from fastapi import APIRouter

from vibestack.config import get_settings
from vibestack.redis_client import get_redis, redis_available
from vibestack.supabase_client import get_supabase

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness() -> dict[str, object]:
    """Readiness: platform reachability, plus Redis when configured."""
    checks: dict[str, object] = {}

    try:
        await get_supabase().table("profiles").select("id").limit(1).execute()
        checks["platform"] = "ok"
    except Exception as exc:
        checks["platform"] = f"error: {exc}"

    if redis_available():
        try:
            await get_redis().ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
