"""Health-check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from nodectl import __version__
from nodectl.auth import require_api_key
from nodectl.deps import get_lifecycle, get_pool
from nodectl.models.responses import HealthResponse, PoolResponse
from nodectl.services.lifecycle import NodeLifecycleService
from nodectl.services.pool import ConnectionPool

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def service_health() -> HealthResponse:
    """Basic liveness probe (no auth required)."""
    return HealthResponse(status="ok", version=__version__)


@router.get(
    "/pool",
    response_model=PoolResponse,
    dependencies=[Depends(require_api_key)],
)
async def pool_sessions(
    pool: ConnectionPool = Depends(get_pool),
    lifecycle: NodeLifecycleService = Depends(get_lifecycle),
) -> PoolResponse:
    """Pooled sessions and their queue depth."""
    identity = lifecycle.identity
    return PoolResponse(
        configured=identity is not None,
        target=identity.key if identity else None,
        sessions=pool.sessions(),
    )
