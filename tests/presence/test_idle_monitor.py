import subprocess
import unittest
from unittest.mock import patch

from presence import CommandIdleMonitor, IdleMonitorError, command_idle_time


class _IdleSource:
    def __init__(self, *values):
        self.values = list(values)

    def __call__(self) -> float:
        value = self.values.pop(0)
        if isinstance(value, Exception):
            raise value
        return value


class CommandIdleTimeTests(unittest.TestCase):
    def test_reads_milliseconds_from_stdout(self) -> None:
        completed = subprocess.CompletedProcess(["xprintidle"], 0, stdout="1500\n", stderr="")
        with patch("presence.idle.subprocess.run", return_value=completed) as run:
            self.assertEqual(1.5, command_idle_time(("xprintidle",)))
        self.assertEqual(["xprintidle"], run.call_args.args[0])

    def test_missing_command_raises_idle_error(self) -> None:
        with patch("presence.idle.subprocess.run", side_effect=FileNotFoundError("nope")):
            with self.assertRaises(IdleMonitorError):
                command_idle_time(("xprintidle",))

    def test_unexpected_output_raises_idle_error(self) -> None:
        completed = subprocess.CompletedProcess(["idle"], 0, stdout="n/a", stderr="")
        with patch("presence.idle.subprocess.run", return_value=completed):
            with self.assertRaises(IdleMonitorError):
                command_idle_time(("idle",))

    def test_empty_command_is_rejected(self) -> None:
        with self.assertRaises(IdleMonitorError):
            command_idle_time(())


class CommandIdleMonitorTests(unittest.TestCase):
    def _monitor(self, source: _IdleSource) -> CommandIdleMonitor:
        monitor = CommandIdleMonitor(source, poll_seconds=3600)
        self.addCleanup(monitor.close)
        return monitor

    def test_watch_fires_once_when_idle_time_drops(self) -> None:
        calls = []
        monitor = self._monitor(_IdleSource(300.0, 301.0, 0.5, 0.2))

        monitor.add_user_active_watch(lambda: calls.append("active"))

        self.assertEqual(0, monitor.poll())
        self.assertEqual(0, monitor.poll())
        self.assertEqual(1, monitor.poll())
        self.assertEqual(["active"], calls)
        self.assertEqual(0, monitor.watch_count)
        self.assertEqual(0, monitor.poll())

    def test_removed_watch_does_not_fire(self) -> None:
        calls = []
        monitor = self._monitor(_IdleSource(300.0, 0.0))

        watch_id = monitor.add_user_active_watch(lambda: calls.append("active"))
        monitor.remove_watch(watch_id)
        monitor.remove_watch(watch_id)

        self.assertEqual(0, monitor.poll())
        self.assertEqual([], calls)

    def test_source_failure_disables_monitor(self) -> None:
        monitor = self._monitor(_IdleSource(10.0, IdleMonitorError("gone")))
        monitor.add_user_active_watch(lambda: None)
        monitor.poll()

        with self.assertLogs("presence.idle", level="WARNING"):
            self.assertEqual(0, monitor.poll())

        self.assertFalse(monitor.is_available)
        with self.assertRaises(IdleMonitorError):
            monitor.add_user_active_watch(lambda: None)

    def test_failing_callback_is_logged(self) -> None:
        def callback() -> None:
            raise RuntimeError("boom")

        monitor = self._monitor(_IdleSource(10.0, 1.0))
        monitor.add_user_active_watch(callback)
        monitor.poll()

        with self.assertLogs("presence.idle", level="ERROR"):
            self.assertEqual(1, monitor.poll())

    def test_registration_does_not_sample_idle_time(self) -> None:
        source = _IdleSource(IdleMonitorError("sampled on registration"))
        monitor = self._monitor(source)

        monitor.add_user_active_watch(lambda: None)

        self.assertEqual(1, monitor.watch_count)
        self.assertEqual(1, len(source.values))
        self.assertTrue(monitor.is_available)

    def test_first_poll_only_takes_baseline(self) -> None:
        calls = []
        monitor = self._monitor(_IdleSource(0.1, 0.0))
        monitor.add_user_active_watch(lambda: calls.append("active"))

        self.assertEqual(0, monitor.poll())
        self.assertEqual(1, monitor.poll())
        self.assertEqual(["active"], calls)


if __name__ == "__main__":
    unittest.main()
