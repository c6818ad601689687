"""Tests for the background cache sweeper."""

import asyncio

import pytest

from app.core.cache import TTLCache
from app.workers.cache_sweeper import CacheSweeper


def test_sweep_drops_expired_entries(clock):
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("stale", 1)
    clock.advance(11)
    cache.set("fresh", 2)

    sweeper = CacheSweeper(cache, interval_seconds=60)
    assert sweeper.sweep() == 1
    assert cache.stats().keys == ["fresh"]


def test_rejects_non_positive_interval(clock):
    with pytest.raises(ValueError):
        CacheSweeper(TTLCache(clock=clock), interval_seconds=0)


@pytest.mark.asyncio
async def test_runs_on_interval_until_stopped(clock):
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("stale", 1)
    clock.advance(11)

    sweeper = CacheSweeper(cache, interval_seconds=0.01)
    sweeper.start()
    assert sweeper.running
    await asyncio.sleep(0.1)
    await sweeper.stop()

    assert not sweeper.running
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_without_start_is_noop(clock):
    sweeper = CacheSweeper(TTLCache(clock=clock), interval_seconds=60)
    await sweeper.stop()

    sweeper.start()
    task = sweeper._task
    sweeper.start()
    assert sweeper._task is task

    await sweeper.stop()
    assert not sweeper.running
