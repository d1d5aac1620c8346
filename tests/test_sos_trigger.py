import asyncio

import pytest

from commutesafe.core.analytics import InMemoryEventSink, UsabilityTracker
from commutesafe.core.emergency_alert import ALERT_ERROR_MESSAGE, LocationPermissionDenied
from commutesafe.core.prompts import AutoConfirmPrompt
from commutesafe.core.sos_trigger import SOSState, SOSTrigger
from commutesafe.models.emergency import SOSDispatchResult

class RecordingDispatcher:
    def __init__(self, fail=False):
        self.locations = []
        self.fail = fail

    async def __call__(self, location):
        self.locations.append(location)
        if self.fail:
            raise RuntimeError("database unavailable")
        return SOSDispatchResult(
            success=True,
            latitude=location.latitude,
            longitude=location.longitude,
            location_source=location.source,
            contacts_count=2,
            message="Your emergency alert has been recorded."
        )

class DeniedProvider:
    async def current_fix(self):
        raise LocationPermissionDenied()

@pytest.fixture
def sink():
    return InMemoryEventSink()

def _trigger(dispatch, sink, **kwargs):
    kwargs.setdefault("threshold_ms", 20)
    kwargs.setdefault("display_window_ms", 20)
    return SOSTrigger(dispatch, tracker=UsabilityTracker(sink), **kwargs)

async def test_early_release_cancels(sink):
    dispatch = RecordingDispatcher()
    trigger = _trigger(dispatch, sink, threshold_ms=3000)

    assert trigger.press_in()
    assert trigger.state == SOSState.PRESSING
    await asyncio.sleep(0.01)
    trigger.press_out()
    await trigger.wait_idle()

    assert trigger.state == SOSState.IDLE
    assert dispatch.locations == []
    actions = [event["action"] for event in sink.events if event["event"] == "interaction"]
    assert actions == ["press_start", "press_cancel"]
    assert sink.events[-1]["details"]["required"] == 3000

async def test_long_press_dispatches_once(sink):
    dispatch = RecordingDispatcher()
    prompt = AutoConfirmPrompt()
    activations = []
    trigger = _trigger(
        dispatch, sink,
        prompt=prompt,
        last_known=lambda: (14.72, 121.04),
        on_activate=activations.append
    )

    trigger.press_in()
    await asyncio.wait_for(trigger.wait_idle(), 1)

    assert trigger.state == SOSState.IDLE
    assert len(dispatch.locations) == 1
    assert dispatch.locations[0].source == "last_known"
    assert len(activations) == 1
    assert prompt.shown[0][0] == "Emergency Alert Sent"

    completion = [event for event in sink.events if event["event"] == "task_completion"][0]
    assert completion["task_name"] == "SOS_Activation"
    assert completion["metadata"] == {
        "activation_type": "long_press",
        "alert_sent": True,
        "contacts_notified": 2
    }

async def test_release_after_activation_is_ignored(sink):
    dispatch = RecordingDispatcher()
    trigger = _trigger(dispatch, sink)

    trigger.press_in()
    await asyncio.wait_for(trigger.wait_idle(), 1)
    trigger.press_out()

    assert len(dispatch.locations) == 1
    assert trigger.state == SOSState.IDLE

async def test_denied_permission_uses_fallback(sink):
    dispatch = RecordingDispatcher()
    trigger = _trigger(dispatch, sink, provider=DeniedProvider())

    trigger.press_in()
    await asyncio.wait_for(trigger.wait_idle(), 1)

    location = dispatch.locations[0]
    assert (location.latitude, location.longitude, location.source) == (14.7033, 121.0633, "fallback")

async def test_dispatch_failure_shows_error(sink):
    prompt = AutoConfirmPrompt()
    trigger = _trigger(RecordingDispatcher(fail=True), sink, prompt=prompt)

    trigger.press_in()
    await asyncio.wait_for(trigger.wait_idle(), 1)

    assert not trigger.last_result.success
    assert trigger.last_result.message == ALERT_ERROR_MESSAGE
    assert prompt.shown == [("Alert Error", ALERT_ERROR_MESSAGE)]
    assert trigger.state == SOSState.IDLE

async def test_dismissing_the_prompt_ends_activation_early(sink):
    trigger = _trigger(RecordingDispatcher(), sink, prompt=AutoConfirmPrompt(), display_window_ms=60_000)

    trigger.press_in()
    await asyncio.wait_for(trigger.wait_idle(), 1)

    assert trigger.state == SOSState.IDLE

async def test_presses_are_ignored_while_busy_or_disabled(sink):
    gate = asyncio.Event()

    async def slow_dispatch(location):
        await gate.wait()
        return await RecordingDispatcher()(location)

    trigger = _trigger(slow_dispatch, sink)
    trigger.press_in()
    assert not trigger.press_in()

    await asyncio.sleep(0.05)
    assert trigger.state == SOSState.ACTIVATED
    assert not trigger.press_in()
    gate.set()
    await asyncio.wait_for(trigger.wait_idle(), 1)

    disabled = _trigger(RecordingDispatcher(), sink, disabled=True)
    assert not disabled.press_in()
    assert disabled.state == SOSState.IDLE

class FailingPrompt:
    def __init__(self):
        self.calls = 0

    async def confirm(self, title, message, actions):
        self.calls += 1
        raise RuntimeError("dialog could not be shown")

async def test_failing_location_getter_still_sends_alert(sink):
    def broken_last_known():
        raise RuntimeError("location store unavailable")

    dispatch = RecordingDispatcher()
    trigger = _trigger(dispatch, sink, last_known=broken_last_known)

    trigger.press_in()
    await asyncio.wait_for(trigger.wait_idle(), 1)

    assert len(dispatch.locations) == 1
    assert dispatch.locations[0].source == "fallback"
    assert trigger.state == SOSState.IDLE

async def test_failing_activation_callback_returns_to_idle(sink):
    def broken_callback(result):
        raise RuntimeError("ui went away")

    dispatch = RecordingDispatcher()
    trigger = _trigger(dispatch, sink, on_activate=broken_callback)

    trigger.press_in()
    await asyncio.wait_for(trigger.wait_idle(), 1)

    assert trigger.state == SOSState.IDLE
    assert trigger.last_result.success
    assert trigger.press_in()
    await asyncio.wait_for(trigger.wait_idle(), 1)
    assert len(dispatch.locations) == 2

async def test_failing_prompt_waits_out_the_display_window(sink, caplog):
    prompt = FailingPrompt()
    trigger = _trigger(RecordingDispatcher(), sink, prompt=prompt, display_window_ms=50)
    loop = asyncio.get_running_loop()

    trigger.press_in()
    started = loop.time()
    await asyncio.wait_for(trigger.wait_idle(), 1)

    assert prompt.calls == 1
    assert loop.time() - started >= 0.05
    assert trigger.state == SOSState.IDLE
    assert any("confirmation prompt failed" in record.getMessage() for record in caplog.records)

async def test_zero_threshold_is_kept(sink):
    trigger = _trigger(RecordingDispatcher(), sink, threshold_ms=0, display_window_ms=0)

    assert trigger.threshold_ms == 0
    assert trigger.display_window_ms == 0
    trigger.press_in()
    await asyncio.wait_for(trigger.wait_idle(), 1)
    assert trigger.last_result.success
