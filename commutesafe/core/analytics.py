import logging
import time
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Protocol

logger = logging.getLogger(__name__)

class EventSink(Protocol):
    def record(self, event: Dict[str, Any]) -> None:
        ...

class InMemoryEventSink:
    """Keeps events in a list; one instance per tracker, so tests stay isolated"""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    def record(self, event: Dict[str, Any]) -> None:
        self.events.append(event)

    def clear(self):
        self.events.clear()

class LoggingEventSink:
    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logging.getLogger("commutesafe.usability")

    def record(self, event: Dict[str, Any]) -> None:
        if event.get("event") == "error":
            self.log.error(f"[ERROR] {event['error_type']}: {event['message']}")
        else:
            self.log.info(f"[USABILITY] {event}")

def format_duration(ms: float) -> str:
    """Milliseconds as 850ms, 12.50s or 2m 5s"""
    if ms < 1000:
        return f"{round(ms)}ms"
    if ms < 60000:
        return f"{ms / 1000:.2f}s"
    minutes = int(ms // 60000)
    seconds = round((ms % 60000) / 1000)
    return f"{minutes}m {seconds}s"

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

class TaskTimer:
    def __init__(self, tracker: "UsabilityTracker", task_name: str):
        self.tracker = tracker
        self.task_name = task_name
        self.start_time = time.monotonic()

    def stop(self, success: bool = True, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        elapsed_ms = (time.monotonic() - self.start_time) * 1000
        return self.tracker.log_task_completion(self.task_name, elapsed_ms, success, metadata)

class UsabilityTracker:
    """
    Task completion and interaction log for usability evaluation.

    Every event goes to the sink this tracker was built with; statistics are
    computed over the events this tracker has seen.
    """

    def __init__(self, sink: Optional[EventSink] = None):
        self.sink = sink or LoggingEventSink()
        self._history: List[Dict[str, Any]] = []

    def _emit(self, event: Dict[str, Any]) -> Dict[str, Any]:
        self._history.append(event)
        self.sink.record(event)
        return event

    def log_task_completion(
        self,
        task_name: str,
        time_taken_ms: float,
        success: bool,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return self._emit({
            "event": "task_completion",
            "task_name": task_name,
            "time_taken": time_taken_ms,
            "time_taken_formatted": format_duration(time_taken_ms),
            "success": success,
            "timestamp": _now_iso(),
            "metadata": metadata or {}
        })

    def start_task_timer(self, task_name: str) -> TaskTimer:
        logger.debug(f"[TIMER] Task started: {task_name}")
        return TaskTimer(self, task_name)

    def log_screen_view(self, screen_name: str) -> Dict[str, Any]:
        return self._emit({
            "event": "screen_view",
            "screen_name": screen_name,
            "timestamp": _now_iso()
        })

    def log_interaction(
        self,
        action: str,
        element: str,
        details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return self._emit({
            "event": "interaction",
            "action": action,
            "element": element,
            "details": details or {},
            "timestamp": _now_iso()
        })

    def log_error(
        self,
        error_type: str,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return self._emit({
            "event": "error",
            "error_type": error_type,
            "message": message,
            "context": context or {},
            "timestamp": _now_iso()
        })

    def get_all_logs(self) -> List[Dict[str, Any]]:
        return list(self._history)

    def get_task_statistics(self) -> Dict[str, Any]:
        completions = [e for e in self._history if e["event"] == "task_completion"]
        successful = [e for e in completions if e["success"]]

        total = len(completions)
        success_rate = (len(successful) / total * 100) if total else 0
        average_ms = (sum(e["time_taken"] for e in completions) / total) if total else 0

        return {
            "total_tasks": total,
            "successful_tasks": len(successful),
            "failed_tasks": total - len(successful),
            "success_rate": f"{success_rate:.2f}%",
            "average_time_ms": average_ms,
            "average_time_formatted": format_duration(average_ms)
        }

    def clear(self):
        self._history.clear()
        logger.debug("[LOGGER] All logs cleared")
