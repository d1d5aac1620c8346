import logging

import pytest

from commutesafe.core.analytics import (
    InMemoryEventSink,
    LoggingEventSink,
    UsabilityTracker,
    format_duration,
)

@pytest.mark.parametrize("ms, expected", [
    (850, "850ms"),
    (1500, "1.50s"),
    (12500, "12.50s"),
    (125000, "2m 5s"),
])
def test_format_duration(ms, expected):
    assert format_duration(ms) == expected

def test_task_statistics():
    tracker = UsabilityTracker(InMemoryEventSink())
    tracker.log_task_completion("Add_Friend", 1000, True)
    tracker.log_task_completion("Add_Friend", 2000, True)
    tracker.log_task_completion("SOS_Activation", 3000, False)
    tracker.log_screen_view("Map")

    stats = tracker.get_task_statistics()

    assert stats["total_tasks"] == 3
    assert stats["successful_tasks"] == 2
    assert stats["failed_tasks"] == 1
    assert stats["success_rate"] == "66.67%"
    assert stats["average_time_ms"] == 2000
    assert stats["average_time_formatted"] == "2.00s"

def test_statistics_with_no_tasks():
    stats = UsabilityTracker(InMemoryEventSink()).get_task_statistics()
    assert stats["total_tasks"] == 0
    assert stats["success_rate"] == "0.00%"

def test_trackers_do_not_share_events():
    first_sink, second_sink = InMemoryEventSink(), InMemoryEventSink()
    first = UsabilityTracker(first_sink)
    second = UsabilityTracker(second_sink)

    first.log_interaction("press_start", "SOS_Button")

    assert len(first_sink.events) == 1
    assert second_sink.events == []
    assert second.get_all_logs() == []

def test_timer_records_completion():
    sink = InMemoryEventSink()
    tracker = UsabilityTracker(sink)

    event = tracker.start_task_timer("Route_Search").stop(metadata={"results": 3})

    assert event["event"] == "task_completion"
    assert event["task_name"] == "Route_Search"
    assert event["time_taken"] >= 0
    assert event["metadata"] == {"results": 3}
    assert sink.events == [event]

def test_clear_resets_history():
    tracker = UsabilityTracker(InMemoryEventSink())
    tracker.log_error("network", "Request failed")

    tracker.clear()

    assert tracker.get_all_logs() == []

def test_logging_sink_writes_errors_at_error_level(caplog):
    tracker = UsabilityTracker(LoggingEventSink())

    with caplog.at_level(logging.INFO, logger="commutesafe.usability"):
        tracker.log_screen_view("Friends")
        tracker.log_error("network", "Request failed")

    levels = [record.levelname for record in caplog.records if record.name == "commutesafe.usability"]
    assert levels == ["INFO", "ERROR"]
