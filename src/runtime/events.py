"""Events queued for the runtime loop by server, presence and signal threads."""

from dataclasses import dataclass, field
from datetime import datetime
from queue import Queue
from typing import Any, Mapping


@dataclass(frozen=True)
class TimerCommandEvent:
    """Command received from a UI client."""
    action: str
    arguments: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> "TimerCommandEvent":
        arguments = {
            key: value
            for key, value in message.items()
            if key not in ("type", "action")
        }
        return cls(action=str(message.get("action", "")), arguments=arguments)


@dataclass(frozen=True)
class ResumeDetectedEvent:
    """Event emitted when the system came back from suspend."""
    occurred_at: datetime


@dataclass(frozen=True)
class ShutdownRequestedEvent:
    """Event emitted by signal handlers to end the runtime loop."""
    reason: str


RuntimeEvent = TimerCommandEvent | ResumeDetectedEvent | ShutdownRequestedEvent


class QueueEventPublisher:
    """Event publisher that pushes runtime events to a queue."""

    def __init__(self, queue: Queue):
        self._queue = queue

    def publish(self, event: RuntimeEvent) -> None:
        self._queue.put(event)
