"""Tests for the debounced change scheduler."""

import asyncio

import pytest

from vaultsync.sync.scheduler import ChangeScheduler
from vaultsync.sync.vault import VaultFile

DELAY = 0.05


def make_scheduler():
    fired = []

    async def action(file):
        fired.append(file.path)

    return ChangeScheduler(action), fired


@pytest.mark.asyncio
async def test_single_event_fires_after_delay():
    scheduler, fired = make_scheduler()
    scheduler.schedule(VaultFile.from_path("a.md"), DELAY)

    assert scheduler.pending
    assert fired == []

    await asyncio.sleep(DELAY * 4)
    await scheduler.drain()
    assert fired == ["a.md"]
    assert not scheduler.pending


@pytest.mark.asyncio
async def test_burst_across_files_fires_only_latest():
    scheduler, fired = make_scheduler()
    a = VaultFile.from_path("A.md")
    b = VaultFile.from_path("B.md")

    scheduler.schedule(a, DELAY)
    scheduler.schedule(a, DELAY)
    scheduler.schedule(b, DELAY)

    await asyncio.sleep(DELAY * 4)
    await scheduler.drain()
    assert fired == ["B.md"]


@pytest.mark.asyncio
async def test_quiet_period_restarts_on_each_event():
    scheduler, fired = make_scheduler()
    file = VaultFile.from_path("a.md")

    scheduler.schedule(file, DELAY * 2)
    await asyncio.sleep(DELAY)
    scheduler.schedule(file, DELAY * 2)
    await asyncio.sleep(DELAY * 1.5)
    assert fired == []

    await asyncio.sleep(DELAY * 2)
    await scheduler.drain()
    assert fired == ["a.md"]


@pytest.mark.asyncio
async def test_separate_windows_each_fire():
    scheduler, fired = make_scheduler()
    scheduler.schedule(VaultFile.from_path("a.md"), DELAY)
    await asyncio.sleep(DELAY * 3)
    scheduler.schedule(VaultFile.from_path("b.md"), DELAY)
    await asyncio.sleep(DELAY * 3)
    await scheduler.drain()
    assert fired == ["a.md", "b.md"]


@pytest.mark.asyncio
async def test_token_increments_per_schedule():
    scheduler, _ = make_scheduler()
    assert scheduler.token == 0
    scheduler.schedule(VaultFile.from_path("a.md"), DELAY)
    scheduler.schedule(VaultFile.from_path("b.md"), DELAY)
    assert scheduler.token == 2
    scheduler.cancel()


@pytest.mark.asyncio
async def test_cancel_prevents_fire_without_changing_token():
    scheduler, fired = make_scheduler()
    scheduler.schedule(VaultFile.from_path("a.md"), DELAY)
    token = scheduler.token

    scheduler.cancel()

    assert scheduler.token == token
    assert not scheduler.pending
    await asyncio.sleep(DELAY * 3)
    assert fired == []


@pytest.mark.asyncio
async def test_stale_token_fire_is_noop():
    scheduler, fired = make_scheduler()
    scheduler.schedule(VaultFile.from_path("new.md"), DELAY * 10)

    scheduler._fire(scheduler.token - 1, VaultFile.from_path("old.md"))
    await scheduler.drain()

    assert fired == []
    assert scheduler.pending
    scheduler.cancel()
