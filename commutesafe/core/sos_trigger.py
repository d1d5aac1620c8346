"""
Long-press SOS trigger.

    idle -> pressing -> (held >= threshold) -> activated -> idle

Releasing before the threshold goes straight back to idle. After activation
the trigger stays activated until the confirmation is dismissed or the
display window runs out, whichever comes first.
"""

import asyncio
import contextlib
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from commutesafe.config import settings
from commutesafe.core.analytics import UsabilityTracker
from commutesafe.core.emergency_alert import (
    ALERT_ERROR_MESSAGE, LocationProvider, Point, ResolvedLocation, resolve_sos_location
)
from commutesafe.core.prompts import ConfirmationPrompt, PromptAction
from commutesafe.models.emergency import SOSDispatchResult

logger = logging.getLogger(__name__)

Dispatcher = Callable[[ResolvedLocation], Awaitable[SOSDispatchResult]]

class SOSState(str, Enum):
    IDLE = "idle"
    PRESSING = "pressing"
    ACTIVATED = "activated"

class SOSTrigger:
    def __init__(
        self,
        dispatch: Dispatcher,
        tracker: Optional[UsabilityTracker] = None,
        prompt: Optional[ConfirmationPrompt] = None,
        last_known: Optional[Callable[[], Optional[Point]]] = None,
        provider: Optional[LocationProvider] = None,
        on_activate: Optional[Callable[[SOSDispatchResult], None]] = None,
        threshold_ms: Optional[int] = None,
        display_window_ms: Optional[int] = None,
        disabled: bool = False
    ):
        self.dispatch = dispatch
        self.tracker = tracker or UsabilityTracker()
        self.prompt = prompt
        self.last_known = last_known
        self.provider = provider
        self.on_activate = on_activate
        self.threshold_ms = settings.SOS_LONG_PRESS_MS if threshold_ms is None else threshold_ms
        self.display_window_ms = (
            settings.SOS_DISPLAY_WINDOW_MS if display_window_ms is None else display_window_ms
        )
        self.disabled = disabled

        self.state = SOSState.IDLE
        self.last_result: Optional[SOSDispatchResult] = None
        self._pressed_at = 0.0
        self._task: Optional[asyncio.Task] = None

    def _held_ms(self) -> float:
        return (time.monotonic() - self._pressed_at) * 1000

    def press_in(self) -> bool:
        """Start a press. Ignored while disabled or not idle."""
        if self.disabled or self.state != SOSState.IDLE:
            return False

        self.state = SOSState.PRESSING
        self._pressed_at = time.monotonic()
        self.tracker.log_interaction("press_start", "SOS_Button")
        self._task = asyncio.get_running_loop().create_task(self._hold())
        return True

    def press_out(self):
        if self.state != SOSState.PRESSING:
            return

        held_ms = self._held_ms()
        if held_ms >= self.threshold_ms:
            # Threshold reached but the hold task has not run yet
            if self._task is not None:
                self._task.cancel()
            self._task = asyncio.get_running_loop().create_task(self._activate())
            return

        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.state = SOSState.IDLE
        self.tracker.log_interaction("press_cancel", "SOS_Button", {
            "duration": round(held_ms),
            "required": self.threshold_ms
        })

    async def wait_idle(self):
        """Wait for the current press, activation and display window to finish"""
        task = self._task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _hold(self):
        await asyncio.sleep(self.threshold_ms / 1000)
        if self.state == SOSState.PRESSING:
            await self._activate()

    def _last_known_fix(self) -> Optional[Point]:
        if self.last_known is None:
            return None
        try:
            return self.last_known()
        except Exception as e:
            logger.warning(f"Could not read last known location for SOS: {e}")
            return None

    async def _activate(self):
        self.state = SOSState.ACTIVATED
        try:
            location = await resolve_sos_location(self._last_known_fix(), self.provider)

            try:
                result = await self.dispatch(location)
            except Exception as e:
                logger.error(f"Error sending SOS alert: {e}")
                result = SOSDispatchResult(
                    success=False,
                    latitude=location.latitude,
                    longitude=location.longitude,
                    location_source=location.source,
                    message=ALERT_ERROR_MESSAGE,
                    error=str(e)
                )

            self.last_result = result
            self.tracker.log_task_completion("SOS_Activation", self.threshold_ms, True, {
                "activation_type": "long_press",
                "alert_sent": result.success,
                "contacts_notified": result.contacts_count
            })

            if self.on_activate:
                try:
                    self.on_activate(result)
                except Exception as e:
                    logger.error(f"SOS activation callback failed: {e}")

            await self._show_confirmation(result)
        finally:
            self.state = SOSState.IDLE

    async def _show_confirmation(self, result: SOSDispatchResult):
        window = asyncio.ensure_future(asyncio.sleep(self.display_window_ms / 1000))
        waiters = {window}

        if self.prompt is not None:
            title = "Emergency Alert Sent" if result.success else "Alert Error"
            waiters.add(asyncio.ensure_future(
                self.prompt.confirm(title, result.message, [PromptAction.OK])
            ))

        try:
            done, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task is not window and task.exception() is not None:
                    # A broken prompt leaves the confirmation up for the full window
                    logger.error(f"SOS confirmation prompt failed: {task.exception()}")
                    await window
        finally:
            for task in waiters:
                if not task.done():
                    task.cancel()
