"""Request-scoped access to the objects built in the application lifespan."""

from __future__ import annotations

from fastapi import Request

from nodectl.services.lifecycle import NodeLifecycleService
from nodectl.services.pool import ConnectionPool


def get_lifecycle(request: Request) -> NodeLifecycleService:
    return request.app.state.lifecycle


def get_pool(request: Request) -> ConnectionPool:
    return request.app.state.pool
