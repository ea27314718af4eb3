from __future__ import annotations

import asyncio

import pytest

from pyquest._inflight import InflightRegistry
from pyquest.exceptions import QuestRegistryError


@pytest.mark.asyncio
async def test_entry_removes_itself_on_success_and_failure() -> None:
    registry = InflightRegistry()
    loop = asyncio.get_running_loop()
    ok = loop.create_future()
    bad = loop.create_future()

    registry.register("ok", ok)
    registry.register("bad", bad)
    assert registry.peek("ok") is ok
    assert sorted(registry.keys()) == ["bad", "ok"]

    ok.set_result(1)
    bad.set_exception(RuntimeError("boom"))
    await asyncio.sleep(0)

    assert registry.peek("ok") is None
    assert "bad" not in registry
    assert len(registry) == 0
    with pytest.raises(RuntimeError):
        bad.result()


@pytest.mark.asyncio
async def test_duplicate_registration_for_unsettled_key_raises() -> None:
    registry = InflightRegistry()
    loop = asyncio.get_running_loop()
    registry.register("posts", loop.create_future())

    with pytest.raises(QuestRegistryError) as excinfo:
        registry.register("posts", loop.create_future())

    assert excinfo.value.key == "posts"


@pytest.mark.asyncio
async def test_discarded_task_does_not_remove_newer_entry() -> None:
    registry = InflightRegistry()
    loop = asyncio.get_running_loop()
    old = loop.create_future()
    new = loop.create_future()

    registry.register("posts", old)
    assert registry.discard("posts") is old
    registry.register("posts", new)

    old.set_result(None)
    await asyncio.sleep(0)

    assert registry.peek("posts") is new
    new.cancel()


@pytest.mark.asyncio
async def test_wait_all_includes_tasks_registered_while_waiting() -> None:
    registry = InflightRegistry()
    order: list[str] = []

    async def second() -> None:
        await asyncio.sleep(0.01)
        order.append("second")

    async def first() -> None:
        await asyncio.sleep(0.01)
        order.append("first")
        registry.register("second", asyncio.ensure_future(second()))

    registry.register("first", asyncio.ensure_future(first()))

    await registry.wait_all()

    assert order == ["first", "second"]
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_wait_returns_none_for_idle_key() -> None:
    registry = InflightRegistry()

    assert await registry.wait("idle") is None
