"""Health check endpoints."""

from fastapi import APIRouter

from dissonant.core.deps import SettingsDep, StoreDep
from dissonant.models.order import ORDERS_COLLECTION
from dissonant.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: SettingsDep, store: StoreDep) -> HealthResponse:
    """
    Health check endpoint.

    Checks document store and broker connectivity.
    """
    checks: dict[str, str] = {}
    healthy = True

    try:
        await store.get(ORDERS_COLLECTION, "_health")
        checks["firestore"] = "healthy"
    except Exception as e:
        healthy = False
        checks["firestore"] = f"unhealthy: {e}"

    try:
        import redis.asyncio as redis

        redis_client = redis.from_url(str(settings.redis_url))  # type: ignore[no-untyped-call]
        await redis_client.ping()
        await redis_client.aclose()
        checks["redis"] = "healthy"
    except Exception as e:
        healthy = False
        checks["redis"] = f"unhealthy: {e}"

    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=settings.version,
        environment=settings.environment,
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness probe: the process is up."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(store: StoreDep) -> dict[str, str]:
    """Readiness probe: the document store answers."""
    await store.get(ORDERS_COLLECTION, "_health")
    return {"status": "ready"}
