"""Utilities for serializing UI events, parsing client messages and keeping sticky state."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from contracts.ui_protocol import MESSAGE_COMMAND, STICKY_EVENT_ORDER, STICKY_EVENT_TYPES


def make_event(
    event_type: str,
    *,
    now_fn: Callable[[], datetime] | None = None,
    **payload: Any,
) -> str:
    """Serialize an event payload with type and timestamp for websocket delivery."""
    now = now_fn() if now_fn is not None else datetime.now(timezone.utc)
    return json.dumps(
        {
            "type": event_type,
            "timestamp": now.isoformat(),
            **payload,
        }
    )


def parse_client_message(raw: str | bytes) -> dict[str, Any]:
    """Decode a client command message; raises ValueError when it is not one."""
    try:
        message = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as error:
        raise ValueError(f"Message is not valid JSON: {error}") from error

    if not isinstance(message, dict):
        raise ValueError("Message must be a JSON object")
    if message.get("type") != MESSAGE_COMMAND:
        raise ValueError(f"Unsupported message type: {message.get('type')!r}")

    action = message.get("action")
    if not isinstance(action, str) or not action.strip():
        raise ValueError("Command message requires an action")
    message["action"] = action.strip().lower()
    return message


class StickyEventStore:
    """Thread-safe cache of sticky events replayed to new websocket clients."""
    def __init__(self):
        self._events: dict[str, str] = {}
        self._lock = threading.Lock()

    def remember(self, event_type: str, message: str) -> None:
        if event_type not in STICKY_EVENT_TYPES:
            return
        with self._lock:
            self._events[event_type] = message

    def snapshot(self) -> list[str]:
        with self._lock:
            return [self._events[key] for key in STICKY_EVENT_ORDER if key in self._events]

    def latest(self, event_type: str) -> Optional[dict[str, Any]]:
        """Decoded payload of the last remembered event of `event_type`."""
        with self._lock:
            message = self._events.get(event_type)
        return json.loads(message) if message is not None else None
