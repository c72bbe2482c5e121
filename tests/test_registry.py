import asyncio
import os

import pytest

from rollfile.config import SinkConfig
from rollfile.registry import SinkRegistry
from rollfile.sink import SinkStatus


@pytest.mark.asyncio
async def test_same_path_shares_one_sink(tmp_path, monkeypatch, errors):
    monkeypatch.chdir(tmp_path)
    registry = SinkRegistry(observer=errors)
    first = await registry.acquire("app.log")
    second = await registry.acquire(str(tmp_path / "app.log"))
    assert first is second
    assert len(registry) == 1
    assert "app.log" in registry
    await registry.close_all()


@pytest.mark.asyncio
async def test_concurrent_acquire_opens_one_handle(tmp_path, errors):
    registry = SinkRegistry(observer=errors)
    config = SinkConfig.from_options(str(tmp_path / "app.log"), max_size=100, retain=2)
    sinks = await asyncio.gather(*(registry.acquire(config) for _ in range(10)))

    assert len({id(s) for s in sinks}) == 1
    await asyncio.gather(*(s.write(f"{i}\n") for i, s in enumerate(sinks)))
    await registry.close_all()

    lines = (tmp_path / "app.log").read_text().splitlines()
    assert lines == [str(i) for i in range(10)]
    assert errors == []


@pytest.mark.asyncio
async def test_later_options_for_registered_path_are_ignored(tmp_path, errors):
    registry = SinkRegistry(observer=errors)
    path = str(tmp_path / "app.log")
    sink = await registry.acquire(SinkConfig.from_options(path, max_size=100, retain=2))
    again = await registry.acquire(SinkConfig.from_options(path, max_size=5))
    assert again is sink
    assert again.config.max_size_bytes == 100
    await registry.close_all()


@pytest.mark.asyncio
async def test_release_closes_and_forgets(tmp_path, errors):
    registry = SinkRegistry(observer=errors)
    sink = await registry.acquire(str(tmp_path / "app.log"))
    await sink.write(b"kept\n")

    assert await registry.release(tmp_path / "app.log") is True
    assert sink.status is SinkStatus.CLOSED
    assert registry.get(tmp_path / "app.log") is None
    assert await registry.release(tmp_path / "app.log") is False

    fresh = await registry.acquire(str(tmp_path / "app.log"))
    assert fresh is not sink
    await fresh.write(b"again\n")
    await registry.close_all()
    assert (tmp_path / "app.log").read_bytes() == b"kept\nagain\n"


@pytest.mark.asyncio
async def test_context_manager_closes_every_sink(tmp_path, clock, errors):
    async with SinkRegistry(observer=errors, clock=clock) as registry:
        a = await registry.acquire(str(tmp_path / "a.log"))
        b = await registry.acquire(
            SinkConfig.from_options(str(tmp_path / "b.log"), max_size=1, retain=1)
        )
        await b.write(b"1")
        await b.write(b"2")
        assert b.clock is clock
        assert sorted(os.path.basename(s.path) for s in registry) == ["a.log", "b.log"]

    assert len(registry) == 0
    assert a.closed and b.closed
    assert (tmp_path / "b.log.20261017").read_bytes() == b"1"
