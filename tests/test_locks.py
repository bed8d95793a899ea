"""Tests for per-salon-day lock registry."""

import asyncio
import datetime as dt

import pytest

from booking_core.scheduling.locks import SlotLockRegistry

DAY = dt.date(2026, 3, 3)
NEXT_DAY = dt.date(2026, 3, 4)


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    """A second holder waits until the first releases."""
    locks = SlotLockRegistry()
    events = []

    async def worker(name, pause):
        async with locks.hold("salon-1", DAY):
            events.append(f"{name}-in")
            await asyncio.sleep(pause)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a", 0.05), worker("b", 0))

    assert events == ["a-in", "a-out", "b-in", "b-out"]


@pytest.mark.asyncio
async def test_different_days_do_not_block_each_other():
    locks = SlotLockRegistry()
    entered = asyncio.Event()

    async def holder():
        async with locks.hold("salon-1", DAY):
            await asyncio.wait_for(entered.wait(), timeout=1)

    async def other():
        async with locks.hold("salon-1", NEXT_DAY):
            entered.set()

    await asyncio.gather(holder(), other())


@pytest.mark.asyncio
async def test_overlapping_multi_day_holds_do_not_deadlock():
    locks = SlotLockRegistry()

    async def move(first, second):
        for _ in range(5):
            async with locks.hold("salon-1", first, second):
                await asyncio.sleep(0)

    await asyncio.wait_for(asyncio.gather(move(DAY, NEXT_DAY), move(NEXT_DAY, DAY)), timeout=2)


@pytest.mark.asyncio
async def test_locks_are_released_and_dropped():
    locks = SlotLockRegistry()

    async with locks.hold("salon-1", DAY, DAY):
        assert len(locks) == 1

    assert len(locks) == 0

    with pytest.raises(RuntimeError):
        async with locks.hold("salon-1", DAY):
            raise RuntimeError("boom")

    assert len(locks) == 0
