"""FastAPI application entry-point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from nodectl import __version__
from nodectl.config import settings
from nodectl.routers import health, node
from nodectl.services.executor import RemoteExecutor
from nodectl.services.identity import resolve_identity
from nodectl.services.lifecycle import NodeLifecycleService
from nodectl.services.pool import ConnectionPool
from nodectl.services.runner import CommandRunner
from nodectl.services.transport import SshTransport
from nodectl.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    setup_logging()
    identity = resolve_identity(settings)
    if identity is None:
        log.warning("startup.no_remote_target")

    pool = ConnectionPool(CommandRunner(SshTransport(settings), cfg=settings), cfg=settings)
    app.state.pool = pool
    app.state.lifecycle = NodeLifecycleService(
        RemoteExecutor(pool, cfg=settings), identity, settings,
    )
    yield
    # Shutdown: drop pooled sessions
    pool.close()


app = FastAPI(
    title="nodectl",
    description="Remote lifecycle control for a Celestia light node",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(node.router)
