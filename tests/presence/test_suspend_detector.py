import unittest

from presence import SuspendDetector


class _Clock:
    def __init__(self, value: float):
        self.value = value

    def __call__(self) -> float:
        return self.value


class SuspendDetectorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.wall = _Clock(1_000.0)
        self.monotonic = _Clock(50.0)
        self.detector = SuspendDetector(
            poll_seconds=3600,
            threshold_seconds=10.0,
            wall_fn=self.wall,
            monotonic_fn=self.monotonic,
        )
        self.resumes = []
        self.detector.connect(lambda: self.resumes.append(self.wall.value))

    def test_first_check_only_records_clocks(self) -> None:
        self.assertFalse(self.detector.check())
        self.assertEqual([], self.resumes)

    def test_regular_polling_is_not_a_resume(self) -> None:
        self.detector.check()
        self.wall.value += 5.0
        self.monotonic.value += 5.0

        self.assertFalse(self.detector.check())
        self.assertEqual([], self.resumes)

    def test_wall_clock_jump_is_a_resume(self) -> None:
        self.detector.check()
        self.wall.value += 605.0
        self.monotonic.value += 5.0

        with self.assertLogs("presence.resume", level="INFO"):
            self.assertTrue(self.detector.check())
        self.assertEqual([1_605.0], self.resumes)

        self.wall.value += 5.0
        self.monotonic.value += 5.0
        self.assertFalse(self.detector.check())

    def test_failing_callback_does_not_block_others(self) -> None:
        def broken() -> None:
            raise RuntimeError("boom")

        detector = SuspendDetector(
            poll_seconds=3600,
            wall_fn=self.wall,
            monotonic_fn=self.monotonic,
        )
        calls = []
        detector.connect(broken)
        detector.connect(lambda: calls.append("ok"))
        detector.check()
        self.wall.value += 120.0

        with self.assertLogs("presence.resume", level="ERROR"):
            self.assertTrue(detector.check())
        self.assertEqual(["ok"], calls)


if __name__ == "__main__":
    unittest.main()
