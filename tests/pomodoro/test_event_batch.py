import unittest

from pomodoro.events import EventBatch, TimerEvent, transition_events
from pomodoro.machine import Transition


def _transition(previous: str, state: str, *, completed: bool = False) -> Transition:
    return Transition(
        previous_state=previous,  # type: ignore[arg-type]
        state=state,  # type: ignore[arg-type]
        previous_session=0,
        session=1 if completed else 0,
        previous_elapsed_ms=5,
        previous_elapsed_limit_ms=10,
        elapsed_ms=0,
        elapsed_limit_ms=20,
        timestamp_ms=1,
    )


class TransitionEventsTests(unittest.TestCase):
    def test_pomodoro_to_pause_ends_pomodoro(self) -> None:
        events = transition_events(
            _transition("pomodoro", "pause", completed=True),
            is_requested=False,
            pause_when_idle=False,
        )
        self.assertEqual(
            [
                TimerEvent.state_changed(),
                TimerEvent.elapsed_changed(),
                TimerEvent.pomodoro_end(True),
                TimerEvent.notify_pomodoro_end(True),
            ],
            events,
        )

    def test_pause_to_pomodoro_notifies_start(self) -> None:
        events = transition_events(
            _transition("pause", "pomodoro"),
            is_requested=True,
            pause_when_idle=False,
        )
        self.assertIn(TimerEvent.pomodoro_start(True), events)
        self.assertIn(TimerEvent.notify_pomodoro_start(True), events)

    def test_start_from_null_does_not_notify(self) -> None:
        events = transition_events(
            _transition("null", "pomodoro"),
            is_requested=True,
            pause_when_idle=False,
        )
        self.assertIn(TimerEvent.pomodoro_start(True), events)
        self.assertNotIn(TimerEvent.notify_pomodoro_start(True), events)

    def test_pause_to_idle_notifies_without_starting(self) -> None:
        events = transition_events(
            _transition("pause", "idle"),
            is_requested=False,
            pause_when_idle=True,
        )
        kinds = [event.kind for event in events]
        self.assertIn("notify_pomodoro_start", kinds)
        self.assertNotIn("pomodoro_start", kinds)

    def test_stop_during_pomodoro_ends_without_notification(self) -> None:
        events = transition_events(
            _transition("pomodoro", "null"),
            is_requested=True,
            pause_when_idle=False,
        )
        kinds = [event.kind for event in events]
        self.assertIn("pomodoro_end", kinds)
        self.assertNotIn("notify_pomodoro_end", kinds)


class EventBatchTests(unittest.TestCase):
    def test_commit_collapses_change_notifications_and_orders_them_first(self) -> None:
        batch = EventBatch()
        batch.begin()
        batch.emit(TimerEvent.pomodoro_end(True))
        batch.emit(TimerEvent.elapsed_changed())
        batch.emit(TimerEvent.state_changed())
        batch.emit(TimerEvent.elapsed_changed())
        batch.emit(TimerEvent.pomodoro_start(False))
        batch.emit(TimerEvent.state_changed())

        events = batch.commit()

        self.assertEqual(
            (
                TimerEvent.state_changed(),
                TimerEvent.elapsed_changed(),
                TimerEvent.pomodoro_end(True),
                TimerEvent.pomodoro_start(False),
            ),
            events,
        )
        self.assertFalse(batch.is_open)

    def test_silenced_events_are_dropped(self) -> None:
        batch = EventBatch()
        batch.begin()
        with batch.silenced():
            batch.emit(TimerEvent.pomodoro_end(True))
        batch.emit(TimerEvent.elapsed_changed())

        self.assertEqual((TimerEvent.elapsed_changed(),), batch.commit())

    def test_batches_do_not_nest(self) -> None:
        batch = EventBatch()
        batch.begin()
        with self.assertRaises(RuntimeError):
            batch.begin()

    def test_emit_requires_open_batch(self) -> None:
        with self.assertRaises(RuntimeError):
            EventBatch().emit(TimerEvent.state_changed())

    def test_unknown_event_kind_is_rejected(self) -> None:
        batch = EventBatch()
        batch.begin()
        with self.assertRaises(ValueError):
            batch.emit(TimerEvent("session_changed"))  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
