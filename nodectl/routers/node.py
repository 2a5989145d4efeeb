"""Node lifecycle endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from nodectl.auth import require_api_key
from nodectl.deps import get_lifecycle
from nodectl.models.node import NodeStatus
from nodectl.models.responses import (
    ErrorResponse,
    InitRequest,
    LifecycleResponse,
    RunningResponse,
    StartRequest,
)
from nodectl.services.lifecycle import NodeLifecycleService

router = APIRouter(
    prefix="/node",
    tags=["node"],
    dependencies=[Depends(require_api_key)],
    responses={401: {"model": ErrorResponse}},
)


@router.get("/status", response_model=NodeStatus)
async def node_status(
    lifecycle: NodeLifecycleService = Depends(get_lifecycle),
) -> NodeStatus:
    return await lifecycle.status()


@router.get("/running", response_model=RunningResponse)
async def node_running(
    lifecycle: NodeLifecycleService = Depends(get_lifecycle),
) -> RunningResponse:
    return RunningResponse(running=await lifecycle.is_process_running())


@router.post("/start", response_model=LifecycleResponse)
async def start_node(
    req: Optional[StartRequest] = None,
    lifecycle: NodeLifecycleService = Depends(get_lifecycle),
) -> LifecycleResponse:
    """Start the service and confirm it reports active."""
    network = req.network if req else None
    return LifecycleResponse(
        operation="start", success=await lifecycle.start(network),
    )


@router.post("/stop", response_model=LifecycleResponse)
async def stop_node(
    lifecycle: NodeLifecycleService = Depends(get_lifecycle),
) -> LifecycleResponse:
    """Stop the service and wait for its processes to exit."""
    return LifecycleResponse(operation="stop", success=await lifecycle.stop())


@router.post("/kill", response_model=LifecycleResponse)
async def kill_node_processes(
    lifecycle: NodeLifecycleService = Depends(get_lifecycle),
) -> LifecycleResponse:
    """Signal stray node processes (TERM, then KILL)."""
    return LifecycleResponse(
        operation="kill", success=await lifecycle.kill_processes(),
    )


@router.post("/init", response_model=LifecycleResponse)
async def init_node(
    req: Optional[InitRequest] = None,
    lifecycle: NodeLifecycleService = Depends(get_lifecycle),
) -> LifecycleResponse:
    network = req.network if req else None
    return LifecycleResponse(
        operation="init", success=await lifecycle.initialize(network),
    )


@router.delete("/init", response_model=LifecycleResponse)
async def remove_node_init(
    network: Optional[str] = None,
    user: Optional[str] = None,
    lifecycle: NodeLifecycleService = Depends(get_lifecycle),
) -> LifecycleResponse:
    return LifecycleResponse(
        operation="remove_init",
        success=await lifecycle.remove_initialization(network, user),
    )
