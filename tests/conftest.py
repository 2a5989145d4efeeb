"""Shared pytest fixtures."""

from __future__ import annotations

import os

# Force settings to use test-safe defaults before any import
os.environ.setdefault("NODECTL_API_KEY", "")
os.environ.setdefault("ENABLE_SSH_DEBUG", "false")

import pytest
from httpx import ASGITransport, AsyncClient

from nodectl.config import Settings
from nodectl.services.executor import RemoteExecutor
from nodectl.services.identity import TargetIdentity
from nodectl.services.lifecycle import NodeLifecycleService
from nodectl.services.pool import ConnectionPool
from nodectl.services.runner import CommandRunner
from tests.fake_transport import FakeTransport


@pytest.fixture
def test_settings() -> Settings:
    """Settings with every delay shrunk so tests never sleep for real."""
    return Settings(
        _env_file=None,
        remote_user="celestia",
        remote_host="10.0.0.5",
        ssh_key_path="/keys/id_test",
        command_delay_seconds=0.0,
        kill_grace_seconds=0.05,
        retry_backoff_seconds=0.0,
        sudo_retry_backoff_seconds=0.0,
        settle_delay_seconds=0.0,
        stop_poll_interval_seconds=0.0,
        stop_poll_timeout_seconds=0.5,
        kill_term_grace_seconds=0.0,
        kill_round_delay_seconds=0.0,
        kill_verify_interval_seconds=0.0,
    )


@pytest.fixture
def identity() -> TargetIdentity:
    return TargetIdentity(key_path="/keys/id_test", user="celestia", host="10.0.0.5")


@pytest.fixture
def transport() -> FakeTransport:
    """Provide a fresh FakeTransport."""
    return FakeTransport()


@pytest.fixture
async def pool(transport, test_settings):
    runner = CommandRunner(transport, cfg=test_settings)
    p = ConnectionPool(runner, cfg=test_settings)
    yield p
    p.close()


@pytest.fixture
def executor(pool, test_settings) -> RemoteExecutor:
    return RemoteExecutor(pool, cfg=test_settings)


@pytest.fixture
def lifecycle(executor, identity, test_settings) -> NodeLifecycleService:
    return NodeLifecycleService(executor, identity, test_settings)


@pytest.fixture
async def client(pool, lifecycle):
    """Async test client with the fake-transport lifecycle injected."""
    from nodectl.deps import get_lifecycle, get_pool
    from nodectl.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    fastapi_app.dependency_overrides[get_pool] = lambda: pool

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()
