"""
Near-live friend locations without a streaming connection.

``IntervalScheduler`` runs an async job now and then every interval until
cancelled. ``LocationPoller`` uses it to re-read "locations visible to me"
from any ``VisibleLocationSource``; swapping the source or the scheduler for
a push transport does not change what subscribers see.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Protocol, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from commutesafe.config import settings
from commutesafe.core.sharing import fetch_visible_to
from commutesafe.models.location import VisibleLocation

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[List[VisibleLocation]], Union[None, Awaitable[None]]]

class VisibleLocationSource(Protocol):
    async def fetch_visible_to(self, viewer_id: str) -> List[VisibleLocation]:
        ...

class DatabaseLocationSource:
    """Reads visible locations with a fresh session per fetch"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def fetch_visible_to(self, viewer_id: str) -> List[VisibleLocation]:
        async with self.session_factory() as session:
            return await fetch_visible_to(session, viewer_id)

class ScheduledJob:
    """Handle for a running interval job. cancel() may be called any number of times."""

    def __init__(self, job: Callable[[], Awaitable[None]], interval: float, name: str = "interval-job"):
        self._job = job
        self._interval = interval
        self._active = True
        self._task = asyncio.get_running_loop().create_task(self._run(), name=name)

    @property
    def active(self) -> bool:
        return self._active

    async def _run(self):
        while self._active:
            try:
                await self._job()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Scheduled job failed: {e}")
            if not self._active:
                break
            await asyncio.sleep(self._interval)

    def cancel(self):
        if not self._active:
            return
        self._active = False
        self._task.cancel()

class IntervalScheduler:
    def every(self, interval_seconds: float, job: Callable[[], Awaitable[None]], name: str = "interval-job") -> ScheduledJob:
        return ScheduledJob(job, interval_seconds, name=name)

class LocationPoller:
    def __init__(
        self,
        source: VisibleLocationSource,
        scheduler: Optional[IntervalScheduler] = None
    ):
        self.source = source
        self.scheduler = scheduler or IntervalScheduler()

    def subscribe(
        self,
        viewer_id: str,
        on_update: UpdateCallback,
        interval_ms: Optional[int] = None
    ) -> Callable[[], None]:
        """
        Deliver viewer_id's visible locations to on_update now and every interval_ms.

        Returns an unsubscribe function. Once it returns, on_update is not
        called again, even for a fetch that was already in flight.
        Must be called from inside a running event loop.
        """
        if interval_ms is None:
            interval_ms = settings.LOCATION_POLL_INTERVAL_MS
        if interval_ms <= 0:
            raise ValueError(f"Polling interval must be positive, got {interval_ms} ms")
        state = {"active": True}

        async def poll():
            if not state["active"]:
                return
            try:
                locations = await self.source.fetch_visible_to(viewer_id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error fetching friend locations for {viewer_id}: {e}")
                return

            # Checked after the await: unsubscribe may have happened meanwhile
            if not state["active"]:
                return
            outcome = on_update(locations)
            if inspect.isawaitable(outcome):
                await outcome

        handle = self.scheduler.every(interval_ms / 1000, poll, name=f"poll-locations-{viewer_id}")

        def unsubscribe():
            state["active"] = False
            handle.cancel()

        return unsubscribe
