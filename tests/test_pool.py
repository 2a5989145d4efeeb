"""Tests for per-target FIFO queuing and idle session reaping."""

from __future__ import annotations

import asyncio

import pytest

from nodectl.errors import CommandFailed, PoolClosed
from nodectl.services.identity import TargetIdentity
from nodectl.services.pool import ConnectionPool
from nodectl.services.runner import CommandRunner
from tests.fake_transport import Reply


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def clocked_pool(transport, test_settings, clock):
    p = ConnectionPool(
        CommandRunner(transport, cfg=test_settings),
        cfg=test_settings,
        idle_timeout=300,
        clock=clock,
    )
    yield p
    p.close()


@pytest.fixture
def other_identity() -> TargetIdentity:
    return TargetIdentity(key_path="/keys/id_test", user="celestia", host="10.0.0.6")


# ── FIFO ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_same_target_runs_in_submission_order(pool, transport, identity):
    # earlier commands are slower, so any overlap would reorder completions
    for i in range(5):
        transport.add_response(f"cmd-{i}", Reply(stdout=f"out-{i}", delay=0.01 * (5 - i)))

    futures = [pool.enqueue(identity, f"echo cmd-{i}", 1) for i in range(5)]
    completed: list[str] = []
    for fut in futures:
        fut.add_done_callback(lambda f: completed.append(f.result().stdout))
    results = await asyncio.gather(*futures)

    assert [r.stdout for r in results] == [f"out-{i}" for i in range(5)]
    assert completed == [f"out-{i}" for i in range(5)]
    assert transport.commands() == [f"echo cmd-{i}" for i in range(5)]
    assert transport.max_active == 1


@pytest.mark.asyncio
async def test_concurrent_submitters_never_overlap(pool, transport, identity):
    transport.add_response("work", Reply(stdout="ok", delay=0.01))

    async def caller(n: int) -> str:
        await asyncio.sleep(0.001 * n)
        result = await pool.submit(identity, f"work {n}", 1)
        return result.command

    results = await asyncio.gather(*(caller(n) for n in range(6)))

    assert results == [f"work {n}" for n in range(6)]
    assert transport.max_active == 1
    events = [kind for kind, _, _ in transport.history]
    assert events == ["start", "end"] * 6


@pytest.mark.asyncio
async def test_failure_does_not_block_queue(pool, transport, identity):
    transport.add_response("bad", Reply(stderr="nope", exit_code=1))
    transport.add_response("good", Reply(stdout="fine"))

    first = pool.enqueue(identity, "bad", 1)
    second = pool.enqueue(identity, "good", 1)

    with pytest.raises(CommandFailed):
        await first
    assert (await second).stdout == "fine"


@pytest.mark.asyncio
async def test_different_targets_run_concurrently(pool, transport, identity, other_identity):
    transport.add_response("slow", Reply(stdout="ok", delay=0.05))

    await asyncio.gather(
        pool.submit(identity, "slow a", 1),
        pool.submit(other_identity, "slow b", 1),
    )

    assert transport.max_active == 2
    assert len(pool) == 2


@pytest.mark.asyncio
async def test_cancelled_request_is_skipped(pool, transport, identity):
    transport.add_response("first", Reply(stdout="1", delay=0.02))
    first = pool.enqueue(identity, "first", 1)
    second = pool.enqueue(identity, "second", 1)
    second.cancel()

    await first
    await asyncio.sleep(0.01)
    assert transport.commands() == ["first"]


@pytest.mark.asyncio
async def test_session_reused_for_same_key(pool, identity):
    await pool.submit(identity, "one", 1)
    await pool.submit(identity, "two", 1)
    assert len(pool) == 1
    assert identity.key in pool


# ── idle reaping ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_idle_session_is_reaped(clocked_pool, clock, identity):
    await clocked_pool.submit(identity, "uptime", 1)
    await asyncio.sleep(0.01)

    clock.now += 301
    assert clocked_pool.reap_idle() == [identity.key]
    assert len(clocked_pool) == 0


@pytest.mark.asyncio
async def test_recent_session_is_retained(clocked_pool, clock, identity):
    await clocked_pool.submit(identity, "uptime", 1)

    clock.now += 299
    assert clocked_pool.reap_idle() == []
    assert identity.key in clocked_pool


@pytest.mark.asyncio
async def test_activity_refreshes_idle_timer(clocked_pool, clock, identity):
    await clocked_pool.submit(identity, "uptime", 1)
    clock.now += 200
    await clocked_pool.submit(identity, "uptime", 1)
    clock.now += 200

    assert clocked_pool.reap_idle() == []


@pytest.mark.asyncio
async def test_busy_session_is_never_reaped(clocked_pool, clock, transport, identity):
    transport.add_response("long", Reply(hang=True))
    fut = clocked_pool.enqueue(identity, "long", 5)
    await asyncio.sleep(0.01)

    clock.now += 10_000
    assert clocked_pool.reap_idle() == []
    assert clocked_pool.sessions()[0].busy is True

    clocked_pool.close()
    with pytest.raises(PoolClosed):
        await fut


@pytest.mark.asyncio
async def test_reaper_stops_when_pool_empties(transport, test_settings, identity):
    p = ConnectionPool(
        CommandRunner(transport, cfg=test_settings),
        cfg=test_settings,
        idle_timeout=0.0,
        reap_interval=0.01,
    )
    await p.submit(identity, "uptime", 1)
    assert p.reaper_running

    await asyncio.sleep(0.05)
    assert len(p) == 0
    assert not p.reaper_running
    p.close()


# ── teardown ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_close_rejects_queued_requests(pool, transport, identity):
    transport.add_response("long", Reply(hang=True))
    running = pool.enqueue(identity, "long", 5)
    queued = pool.enqueue(identity, "next", 5)
    await asyncio.sleep(0.01)

    pool.close()

    with pytest.raises(PoolClosed):
        await queued
    with pytest.raises(PoolClosed):
        await running
    assert len(pool) == 0
    assert not pool.reaper_running
    assert transport.commands() == ["long"]


@pytest.mark.asyncio
async def test_sessions_snapshot(pool, transport, identity):
    transport.add_response("uptime", Reply(stdout="up", delay=0.02))
    fut = pool.enqueue(identity, "uptime", 1)
    await asyncio.sleep(0.01)
    (running,) = pool.sessions()
    assert running.busy is True
    assert running.idle_seconds == 0.0

    await fut
    # the worker clears busy after its inter-command delay
    await asyncio.sleep(0.01)
    (info,) = pool.sessions()
    assert info.key == "celestia@10.0.0.5"
    assert info.busy is False
    assert info.queued == 0
