import math
import unittest

from pomodoro import PomodoroTimer, TimerEvent, TimerSettings
from pomodoro.recovery import format_timestamp, parse_timestamp
from storage import MemoryStateStore, StorageReadError, StorageWriteError

START = 1_700_000_000.0


class _Clock:
    def __init__(self, now: float = START):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _TickerStub:
    def __init__(self, callback):
        self.callback = callback
        self.started = 0
        self.cancelled = 0

    def start(self) -> None:
        self.started += 1

    def cancel(self) -> None:
        self.cancelled += 1


class _IdleMonitorStub:
    def __init__(self):
        self.callbacks: dict[int, object] = {}
        self.removed: list[int] = []
        self._next_id = 1

    def add_user_active_watch(self, callback) -> int:
        watch_id = self._next_id
        self._next_id += 1
        self.callbacks[watch_id] = callback
        return watch_id

    def remove_watch(self, watch_id: int) -> None:
        self.removed.append(watch_id)
        self.callbacks.pop(watch_id, None)


class _FailingStore(MemoryStateStore):
    def set(self, key, value):
        raise StorageWriteError("disk full")


class _UnreadableStore(MemoryStateStore):
    def get(self, key):
        raise StorageReadError("permission denied")


class PomodoroTimerTestCase(unittest.TestCase):
    def build_timer(self, settings: TimerSettings | None = None, **kwargs) -> PomodoroTimer:
        self.clock = _Clock()
        self.tickers: list[_TickerStub] = []

        def ticker_factory(callback):
            ticker = _TickerStub(callback)
            self.tickers.append(ticker)
            return ticker

        kwargs.setdefault("store", MemoryStateStore())
        return PomodoroTimer(
            settings=settings or TimerSettings(),
            ticker_factory=ticker_factory,
            now_fn=self.clock,
            **kwargs,
        )


class PomodoroTimerFlowTests(PomodoroTimerTestCase):
    def test_full_pomodoro_moves_to_short_pause(self) -> None:
        timer = self.build_timer()
        timer.start()

        self.clock.advance(1500)
        update = timer.on_tick()

        self.assertEqual("pause", timer.state)
        self.assertEqual(1, timer.session)
        self.assertEqual(300, timer.elapsed_limit)
        self.assertEqual(0, timer.elapsed)
        self.assertEqual(
            (
                TimerEvent.state_changed(),
                TimerEvent.elapsed_changed(),
                TimerEvent.pomodoro_end(True),
                TimerEvent.notify_pomodoro_end(True),
            ),
            update.events,
        )

    def test_stop_after_accepted_time_counts_session(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(1300)
        timer.on_tick()

        stop = timer.stop()
        timer.start()

        self.assertIn(TimerEvent.pomodoro_end(True), stop.events)
        self.assertEqual("pomodoro", timer.state)
        self.assertEqual(1, timer.session)
        self.assertEqual(0, timer.elapsed)

    def test_start_is_noop_while_running(self) -> None:
        timer = self.build_timer()
        first = timer.start()
        self.clock.advance(10)
        second = timer.start()
        third = timer.start()

        self.assertEqual("pomodoro", first.snapshot.state)
        self.assertEqual((), second.events)
        self.assertEqual((), third.events)
        self.assertEqual(START, timer.state_timestamp)

    def test_start_reports_requested_pomodoro(self) -> None:
        timer = self.build_timer()
        update = timer.start()
        self.assertEqual(
            ["state_changed", "elapsed_changed", "pomodoro_start"],
            update.kinds(),
        )
        self.assertTrue(update.events[-1].is_requested)

    def test_elapsed_never_decreases_within_a_state(self) -> None:
        timer = self.build_timer()
        timer.start()
        seen = []
        for _ in range(5):
            self.clock.advance(100)
            seen.append(timer.on_tick().snapshot.elapsed)

        self.assertEqual([100, 200, 300, 400, 500], seen)

    def test_live_overrun_carries_into_pause(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(1550)

        timer.on_tick()

        self.assertEqual("pause", timer.state)
        self.assertEqual(50, timer.elapsed)
        self.assertEqual(START + 1500, timer.state_timestamp)

    def test_pause_returns_to_pomodoro(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(1500)
        timer.on_tick()
        self.clock.advance(300)

        update = timer.on_tick()

        self.assertEqual("pomodoro", timer.state)
        self.assertEqual(1, timer.session)
        self.assertIn(TimerEvent.pomodoro_start(False), update.events)
        self.assertIn(TimerEvent.notify_pomodoro_start(False), update.events)

    def test_reset_clears_session_and_restarts(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(1500)
        timer.on_tick()

        update = timer.reset()

        self.assertEqual(0, update.snapshot.session)
        self.assertEqual("pomodoro", update.snapshot.state)
        self.assertEqual(0, update.snapshot.elapsed)
        self.assertIn(TimerEvent.pomodoro_start(True), update.events)

    def test_reset_while_stopped_stays_stopped(self) -> None:
        timer = self.build_timer()
        update = timer.reset()
        self.assertEqual("null", update.snapshot.state)
        self.assertEqual(0, update.snapshot.session)

    def test_set_elapsed_rebases_state_start(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(5)

        update = timer.set_elapsed(600)

        self.assertEqual(600, update.snapshot.elapsed)
        self.assertEqual(START + 5 - 600, update.snapshot.state_timestamp)
        self.assertEqual(["elapsed_changed"], update.kinds())

    def test_set_elapsed_ignores_non_finite_values(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(5)

        for seconds in (math.inf, -math.inf, math.nan):
            with self.subTest(seconds=seconds):
                with self.assertLogs("pomodoro", level="WARNING"):
                    update = timer.set_elapsed(seconds)
                self.assertEqual((), update.events)
                self.assertEqual("pomodoro", update.snapshot.state)
                self.assertEqual(START, update.snapshot.state_timestamp)

    def test_huge_elapsed_does_not_start_state_before_epoch(self) -> None:
        store = MemoryStateStore()
        timer = self.build_timer(store=store)
        timer.start()
        self.clock.advance(5)

        update = timer.set_elapsed(1e300)

        self.assertEqual("pomodoro", update.snapshot.state)
        self.assertEqual(0, update.snapshot.elapsed)
        self.assertGreaterEqual(parse_timestamp(store.get("state-changed-date")), 0)

    def test_set_elapsed_is_ignored_when_stopped(self) -> None:
        timer = self.build_timer()
        self.assertEqual((), timer.set_elapsed(30).events)
        self.assertEqual(0, timer.elapsed)

    def test_ticks_are_ignored_when_stopped(self) -> None:
        timer = self.build_timer()
        self.assertEqual((), timer.on_tick().events)


class PomodoroTimerIdleTests(PomodoroTimerTestCase):
    def test_idle_activity_only_matters_in_idle(self) -> None:
        monitor = _IdleMonitorStub()
        timer = self.build_timer(TimerSettings(pause_when_idle=True), idle_monitor=monitor)
        timer.start()
        self.clock.advance(1500)
        timer.on_tick()

        self.assertEqual("pause", timer.state)
        self.assertEqual((), timer.on_idle_became_active().events)
        self.assertEqual({}, monitor.callbacks)

        self.clock.advance(300)
        to_idle = timer.on_tick()
        self.assertEqual("idle", timer.state)
        self.assertEqual(
            ["state_changed", "elapsed_changed", "notify_pomodoro_start"],
            to_idle.kinds(),
        )
        self.assertEqual([1], list(monitor.callbacks))

        self.clock.advance(100)
        timer.on_tick()
        back = timer.on_idle_became_active()

        self.assertEqual("pomodoro", timer.state)
        self.assertEqual(0, timer.elapsed)
        self.assertEqual(1, timer.session)
        self.assertIn(TimerEvent.pomodoro_start(False), back.events)

    def test_start_leaves_idle_and_removes_watch(self) -> None:
        monitor = _IdleMonitorStub()
        timer = self.build_timer(TimerSettings(pause_when_idle=True), idle_monitor=monitor)
        timer.commit_transition("idle", START)

        timer.start()

        self.assertEqual("pomodoro", timer.state)
        self.assertEqual([1], monitor.removed)

    def test_monitor_watch_callback_drives_timer(self) -> None:
        monitor = _IdleMonitorStub()
        timer = self.build_timer(TimerSettings(pause_when_idle=True), idle_monitor=monitor)
        timer.commit_transition("idle", START)

        monitor.callbacks[1]()

        self.assertEqual("pomodoro", timer.state)


class PomodoroTimerCollaboratorTests(PomodoroTimerTestCase):
    def test_ticker_runs_only_while_timer_runs(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.assertEqual(1, len(self.tickers))
        self.assertEqual(1, self.tickers[0].started)

        timer.stop()
        self.assertEqual(1, self.tickers[0].cancelled)

        timer.start()
        self.assertEqual(2, len(self.tickers))

    def test_ticker_callback_ticks_timer(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(42)

        self.tickers[0].callback()

        self.assertEqual(42, timer.elapsed)

    def test_transitions_are_written_through(self) -> None:
        store = MemoryStateStore()
        timer = self.build_timer(store=store)
        timer.start()

        self.assertEqual("pomodoro", store.get("state"))
        self.assertEqual(0.0, store.get("session-count"))
        self.assertEqual(format_timestamp(int(START * 1000)), store.get("state-changed-date"))

    def test_write_failures_do_not_stop_timer(self) -> None:
        timer = self.build_timer(store=_FailingStore())
        with self.assertLogs("pomodoro", level="WARNING"):
            update = timer.start()
        self.assertEqual("pomodoro", update.snapshot.state)

    def test_listeners_get_events_after_commit(self) -> None:
        timer = self.build_timer()
        received = []

        def listener(event, snapshot):
            received.append((event.kind, snapshot.state, timer.state))

        unsubscribe = timer.subscribe(listener)
        timer.start()
        unsubscribe()
        timer.stop()

        self.assertEqual(
            [
                ("state_changed", "pomodoro", "pomodoro"),
                ("elapsed_changed", "pomodoro", "pomodoro"),
                ("pomodoro_start", "pomodoro", "pomodoro"),
            ],
            received,
        )

    def test_failing_listener_is_logged(self) -> None:
        timer = self.build_timer()

        def listener(event, snapshot):
            raise RuntimeError("boom")

        timer.subscribe(listener)
        with self.assertLogs("pomodoro", level="ERROR"):
            update = timer.start()
        self.assertEqual("pomodoro", update.snapshot.state)


class PomodoroTimerConfigTests(PomodoroTimerTestCase):
    def test_shorter_pomodoro_clamps_elapsed_without_transition(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(1000)
        timer.on_tick()

        update = timer.on_config_changed("pomodoro-time", 600)

        self.assertEqual("pomodoro", timer.state)
        self.assertEqual(600, timer.elapsed_limit)
        self.assertEqual(600, timer.elapsed)
        self.assertEqual(["elapsed_changed"], update.kinds())

    def test_clamped_pomodoro_ends_on_next_tick_without_eating_pause(self) -> None:
        store = MemoryStateStore()
        timer = self.build_timer(store=store)
        timer.start()
        self.clock.advance(1000)
        timer.on_tick()
        timer.on_config_changed("pomodoro-time", 600)
        self.assertEqual(
            format_timestamp(int((START + 400) * 1000)),
            store.get("state-changed-date"),
        )

        self.clock.advance(1)
        update = timer.on_tick()

        self.assertEqual("pause", update.snapshot.state)
        self.assertEqual(1, update.snapshot.elapsed)
        self.assertEqual(300, update.snapshot.elapsed_limit)
        self.assertEqual(1, update.snapshot.session)
        self.assertIn(TimerEvent.notify_pomodoro_end(True), update.events)
        self.assertNotIn(TimerEvent.pomodoro_start(False), update.events)

    def test_shorter_pause_clamps_elapsed_and_survives_ticks(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(1500)
        timer.on_tick()
        self.clock.advance(200)
        timer.on_tick()

        update = timer.on_config_changed("short-pause-time", 120)

        self.assertEqual("pause", update.snapshot.state)
        self.assertEqual(120, update.snapshot.elapsed)
        self.assertEqual(120, update.snapshot.elapsed_limit)
        self.assertEqual(["elapsed_changed"], update.kinds())

        self.clock.advance(1)
        update = timer.on_tick()

        self.assertEqual("pomodoro", update.snapshot.state)
        self.assertEqual(0, update.snapshot.elapsed)
        self.assertEqual(1, update.snapshot.session)

    def test_longer_pomodoro_keeps_state_start(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(1000)
        timer.on_tick()

        update = timer.on_config_changed("pomodoro-time", 3000)

        self.assertEqual(3000, update.snapshot.elapsed_limit)
        self.assertEqual(1000, update.snapshot.elapsed)
        self.assertEqual(START, update.snapshot.state_timestamp)

    def test_non_finite_setting_is_ignored(self) -> None:
        timer = self.build_timer()
        for value in (math.inf, math.nan):
            with self.subTest(value=value):
                with self.assertLogs("pomodoro", level="WARNING"):
                    update = timer.on_config_changed("pomodoro-time", value)
                self.assertEqual((), update.events)
                self.assertEqual(1500, timer.settings.pomodoro_time)

    def test_session_limit_is_clamped_to_one(self) -> None:
        timer = self.build_timer()
        with self.assertLogs("pomodoro", level="WARNING"):
            timer.session_limit = 0
        self.assertEqual(1, timer.session_limit)

    def test_unknown_option_is_ignored(self) -> None:
        timer = self.build_timer()
        with self.assertLogs("pomodoro", level="WARNING"):
            update = timer.on_config_changed("volume", 11)
        self.assertEqual((), update.events)

    def test_zero_duration_from_constructor_is_clamped(self) -> None:
        with self.assertLogs("pomodoro", level="WARNING"):
            timer = self.build_timer(TimerSettings(short_pause_time=0))
        self.assertEqual(1, timer.settings.short_pause_time)


class PomodoroTimerRestoreTests(PomodoroTimerTestCase):
    def _store_with(self, state: str, seconds_ago: float, session: float = 0.0) -> MemoryStateStore:
        return MemoryStateStore(
            {
                "session-count": session,
                "state": state,
                "state-changed-date": format_timestamp(int((START - seconds_ago) * 1000)),
            }
        )

    def test_restore_replays_missed_intervals(self) -> None:
        timer = self.build_timer(store=self._store_with("pomodoro", 4000))

        update = timer.restore()

        self.assertEqual("pomodoro", update.snapshot.state)
        self.assertEqual(400, update.snapshot.elapsed)
        self.assertEqual(2, update.snapshot.session)
        self.assertEqual(
            (
                TimerEvent.state_changed(),
                TimerEvent.elapsed_changed(),
                TimerEvent.pomodoro_start(False),
                TimerEvent.notify_pomodoro_start(False),
            ),
            update.events,
        )
        self.assertEqual(1, self.tickers[0].started)

    def test_restore_twice_gives_same_snapshot(self) -> None:
        timer = self.build_timer(store=self._store_with("pomodoro", 4000))
        first = timer.restore()
        second = timer.restore()
        self.assertEqual(first.snapshot, second.snapshot)

    def test_restore_into_pause_reports_uncompleted_end(self) -> None:
        timer = self.build_timer(store=self._store_with("pause", 100, session=1.0))

        update = timer.restore()

        self.assertEqual("pause", update.snapshot.state)
        self.assertEqual(100, update.snapshot.elapsed)
        self.assertIn(TimerEvent.pomodoro_end(False), update.events)
        self.assertIn(TimerEvent.notify_pomodoro_end(False), update.events)

    def test_restore_of_empty_store_stays_stopped(self) -> None:
        timer = self.build_timer(store=MemoryStateStore())
        with self.assertLogs("pomodoro", level="WARNING"):
            update = timer.restore()
        self.assertEqual("null", update.snapshot.state)
        self.assertEqual(["state_changed", "elapsed_changed"], update.kinds())
        self.assertEqual([], self.tickers)

    def test_resume_restores_with_current_time(self) -> None:
        timer = self.build_timer()
        timer.start()
        self.clock.advance(1600)

        update = timer.on_resume()

        self.assertEqual("pause", update.snapshot.state)
        self.assertEqual(100, update.snapshot.elapsed)
        self.assertEqual(1, update.snapshot.session)

    def test_resume_without_store_keeps_running_timer(self) -> None:
        timer = self.build_timer(store=None)
        timer.start()
        self.clock.advance(10)

        update = timer.on_resume()

        self.assertEqual("pomodoro", update.snapshot.state)
        self.assertEqual(10, update.snapshot.elapsed)
        self.assertEqual(START, update.snapshot.state_timestamp)

    def test_resume_with_unreadable_store_replays_live_state(self) -> None:
        timer = self.build_timer(store=_UnreadableStore())
        timer.start()
        self.clock.advance(1600)

        with self.assertLogs("pomodoro", level="WARNING"):
            update = timer.on_resume()

        self.assertEqual("pause", update.snapshot.state)
        self.assertEqual(100, update.snapshot.elapsed)
        self.assertEqual(1, update.snapshot.session)


if __name__ == "__main__":
    unittest.main()
