import asyncio
from datetime import datetime, timezone

import pytest

from commutesafe.core.polling import DatabaseLocationSource, LocationPoller
from commutesafe.core.sharing import share_location_with, update_own_location
from commutesafe.models.location import VisibleLocation

def _location(user_id="user_a"):
    return VisibleLocation(
        user_id=user_id, latitude=14.72, longitude=121.04,
        updated_at=datetime.now(timezone.utc)
    )

class FakeSource:
    def __init__(self, failures=0):
        self.calls = 0
        self.failures = failures

    async def fetch_visible_to(self, viewer_id):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("network down")
        return [_location()]

class GatedSource:
    """Blocks every fetch until released"""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch_visible_to(self, viewer_id):
        self.started.set()
        await self.release.wait()
        return [_location()]

class ManualHandle:
    def __init__(self, job):
        self.job = job
        self.cancelled = 0

    def cancel(self):
        self.cancelled += 1

class ManualScheduler:
    """Runs nothing by itself; tests drive the job"""

    def __init__(self):
        self.handle = None

    def every(self, interval_seconds, job, name="interval-job"):
        self.handle = ManualHandle(job)
        return self.handle

async def test_first_fetch_is_immediate():
    received = []
    poller = LocationPoller(FakeSource())

    unsubscribe = poller.subscribe("user_b", received.append, interval_ms=60_000)
    await asyncio.sleep(0.05)
    unsubscribe()

    assert len(received) == 1
    assert received[0][0].user_id == "user_a"

async def test_polls_repeat_until_unsubscribed():
    received = []
    poller = LocationPoller(FakeSource())

    unsubscribe = poller.subscribe("user_b", received.append, interval_ms=10)
    await asyncio.sleep(0.1)
    unsubscribe()
    count = len(received)
    await asyncio.sleep(0.05)

    assert count >= 3
    assert len(received) == count

async def test_in_flight_fetch_is_dropped_after_unsubscribe():
    received = []
    source = GatedSource()
    scheduler = ManualScheduler()
    poller = LocationPoller(source, scheduler)

    unsubscribe = poller.subscribe("user_b", received.append)
    job = asyncio.ensure_future(scheduler.handle.job())
    await source.started.wait()

    unsubscribe()
    source.release.set()
    await job

    assert received == []
    assert scheduler.handle.cancelled == 1

async def test_unsubscribe_is_idempotent():
    poller = LocationPoller(FakeSource())
    unsubscribe = poller.subscribe("user_b", lambda locations: None, interval_ms=10)
    await asyncio.sleep(0)

    unsubscribe()
    unsubscribe()

async def test_fetch_errors_do_not_stop_polling():
    received = []
    source = FakeSource(failures=2)
    poller = LocationPoller(source)

    unsubscribe = poller.subscribe("user_b", received.append, interval_ms=10)
    await asyncio.sleep(0.1)
    unsubscribe()

    assert source.calls >= 3
    assert received

async def test_async_callbacks_are_awaited():
    received = []

    async def on_update(locations):
        await asyncio.sleep(0)
        received.append(locations)

    poller = LocationPoller(FakeSource())
    unsubscribe = poller.subscribe("user_b", on_update, interval_ms=60_000)
    await asyncio.sleep(0.05)
    unsubscribe()

    assert len(received) == 1

async def test_database_source_reads_visible_locations(session_factory, db, make_profile):
    await make_profile("user_a")
    await make_profile("user_b")
    await update_own_location(db, "user_a", 14.72, 121.04)
    await share_location_with(db, "user_a", "user_b")

    source = DatabaseLocationSource(session_factory)
    visible = await source.fetch_visible_to("user_b")

    assert [(item.user_id, item.latitude) for item in visible] == [("user_a", 14.72)]

@pytest.mark.parametrize("interval_ms", [0, -5000])
async def test_non_positive_interval_is_rejected(interval_ms):
    scheduler = ManualScheduler()
    poller = LocationPoller(FakeSource(), scheduler)

    with pytest.raises(ValueError):
        poller.subscribe("user_b", lambda locations: None, interval_ms=interval_ms)
    assert scheduler.handle is None
