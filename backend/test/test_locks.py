"""KeyedLock 테스트."""

import asyncio

from modules.shared import KeyedLock


async def test_same_key_is_serialized():
    locks = KeyedLock()
    order = []

    async def worker(name):
        async with locks.hold("42"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
    assert len(locks) == 0


async def test_different_keys_do_not_block_each_other():
    locks = KeyedLock()
    async with locks.hold("42"):
        assert locks.locked("42")
        await asyncio.wait_for(_enter(locks, "43"), timeout=0.5)


async def _enter(locks, key):
    async with locks.hold(key):
        return True


async def test_cancelled_waiter_releases_slot():
    locks = KeyedLock()
    async with locks.hold("42"):
        waiter = asyncio.create_task(_enter(locks, "42"))
        await asyncio.sleep(0)
        waiter.cancel()
        await asyncio.gather(waiter, return_exceptions=True)
    assert len(locks) == 0
