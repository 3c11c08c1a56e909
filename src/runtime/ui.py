from __future__ import annotations

from typing import Any, Optional, Protocol

from contracts.ui_protocol import EVENT_COMMAND_RESULT, EVENT_TIMER
from pomodoro import TimerEvent, TimerSnapshot


class UIServerLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...


def snapshot_payload(snapshot: TimerSnapshot) -> dict[str, Any]:
    return {
        "state": snapshot.state,
        "elapsed": snapshot.elapsed,
        "elapsed_limit": snapshot.elapsed_limit,
        "remaining": snapshot.remaining,
        "session": snapshot.session,
        "session_limit": snapshot.session_limit,
        "state_timestamp": snapshot.state_timestamp,
    }


class RuntimeUIPublisher:
    def __init__(self, ui_server: Optional[UIServerLike]):
        self._ui_server = ui_server

    def publish(self, event_type: str, **payload: Any) -> None:
        if self._ui_server:
            self._ui_server.publish(event_type, **payload)

    def publish_timer_event(self, event: TimerEvent, snapshot: TimerSnapshot) -> None:
        payload: dict[str, Any] = {"event": event.kind, **snapshot_payload(snapshot)}
        if event.is_requested is not None:
            payload["is_requested"] = event.is_requested
        if event.is_completed is not None:
            payload["is_completed"] = event.is_completed
        self.publish(EVENT_TIMER, **payload)

    def publish_timer_sync(self, snapshot: TimerSnapshot, *, reason: str) -> None:
        self.publish(EVENT_TIMER, event="sync", reason=reason, **snapshot_payload(snapshot))

    def publish_command_result(
        self,
        *,
        action: str,
        accepted: bool,
        reason: str,
        snapshot: TimerSnapshot,
    ) -> None:
        self.publish(
            EVENT_COMMAND_RESULT,
            action=action,
            accepted=accepted,
            reason=reason,
            **snapshot_payload(snapshot),
        )
