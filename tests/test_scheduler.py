import asyncio

import pytest

from sales_agent.scheduling.scheduler import AsyncioScheduler, VirtualScheduler


def test_advance_fires_due_events_in_time_order(scheduler):
    fired = []
    scheduler.call_later(3.0, fired.append, "c")
    scheduler.call_later(1.0, fired.append, "a")
    scheduler.call_later(2.0, fired.append, "b")

    assert scheduler.advance(2.0) == 2
    assert fired == ["a", "b"]
    assert scheduler.now() == 2.0

    assert scheduler.advance(1.0) == 1
    assert fired == ["a", "b", "c"]


def test_same_instant_keeps_scheduling_order(scheduler):
    fired = []
    for label in ("first", "second", "third"):
        scheduler.call_later(1.0, fired.append, label)
    scheduler.advance(1.0)
    assert fired == ["first", "second", "third"]


def test_cancelled_task_never_fires(scheduler):
    fired = []
    task = scheduler.call_later(1.0, fired.append, "x")
    assert task.cancel()
    assert not task.cancel()
    assert scheduler.advance(5.0) == 0
    assert fired == []
    assert task.cancelled and not task.fired


def test_fired_task_cannot_be_cancelled(scheduler):
    task = scheduler.call_later(0.5, lambda: None)
    scheduler.advance(1.0)
    assert task.fired
    assert not task.cancel()


def test_callbacks_can_chain_within_one_advance(scheduler):
    fired = []

    def first():
        fired.append(("first", scheduler.now()))
        scheduler.call_later(1.0, lambda: fired.append(("second", scheduler.now())))

    scheduler.call_later(1.0, first)
    scheduler.advance(5.0)
    assert fired == [("first", 1.0), ("second", 2.0)]


def test_run_until_idle(scheduler):
    fired = []
    scheduler.call_later(10.0, fired.append, 10)
    scheduler.call_later(2.0, fired.append, 2)
    cancelled = scheduler.call_later(5.0, fired.append, 5)
    cancelled.cancel()

    assert scheduler.run_until_idle() == 2
    assert fired == [2, 10]
    assert scheduler.now() == 10.0
    assert scheduler.pending == []


def test_pending_lists_active_tasks(scheduler):
    a = scheduler.call_later(2.0, lambda: None, name="a")
    b = scheduler.call_later(1.0, lambda: None, name="b")
    a.cancel()
    assert scheduler.pending == [b]


def test_negative_delays_are_rejected(scheduler):
    with pytest.raises(ValueError):
        scheduler.call_later(-1.0, lambda: None)
    with pytest.raises(ValueError):
        scheduler.advance(-1.0)


def test_start_time():
    assert VirtualScheduler(start=100.0).now() == 100.0


def test_asyncio_scheduler_fires_and_cancels():
    fired = []

    async def scenario():
        scheduler = AsyncioScheduler()
        scheduler.call_later(0.01, fired.append, "kept")
        dropped = scheduler.call_later(0.01, fired.append, "dropped")
        dropped.cancel()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert fired == ["kept"]


def test_asyncio_scheduler_survives_failing_callback():
    fired = []

    def boom():
        raise RuntimeError("boom")

    async def scenario():
        scheduler = AsyncioScheduler()
        scheduler.call_later(0.0, boom)
        scheduler.call_later(0.01, fired.append, "after")
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert fired == ["after"]
