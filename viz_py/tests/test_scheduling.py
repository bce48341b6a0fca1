from __future__ import annotations

import unittest

from viz_py.core.scheduling import ManualScheduler


class TestManualScheduler(unittest.TestCase):
    def test_tasks_fire_in_time_order(self) -> None:
        sched = ManualScheduler()
        calls: list[tuple[str, float]] = []
        sched.every(0.1, lambda: calls.append(("fast", sched.clock())))
        sched.every(0.25, lambda: calls.append(("slow", sched.clock())))

        sched.advance(0.5)

        self.assertEqual([name for name, _ in calls], ["fast", "fast", "slow", "fast", "fast", "fast", "slow"])
        times = [t for _, t in calls]
        self.assertEqual(times, sorted(times))
        self.assertAlmostEqual(sched.clock(), 0.5)

    def test_stopped_task_does_not_fire(self) -> None:
        sched = ManualScheduler(start=10.0)
        calls: list[float] = []
        task = sched.every(1.0, lambda: calls.append(sched.clock()))

        sched.advance(1.0)
        self.assertEqual(calls, [11.0])
        task.stop()
        sched.advance(5.0)
        self.assertEqual(calls, [11.0])
        self.assertFalse(task.active)
        self.assertEqual(sched.pending, 0)

    def test_rejects_non_positive_interval(self) -> None:
        with self.assertRaises(ValueError):
            ManualScheduler().every(0.0, lambda: None)


if __name__ == "__main__":
    unittest.main()
