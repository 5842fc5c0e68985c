"""
Tests for the kept-duration accumulator.
Run with: python3 -m pytest tests/test_duration.py -v
"""
import unittest

from duration import MUTE_REGION_LENGTH, DurationAccumulator
from models import EditorConfig, EventKind, Mark, Region


def marks(*records):
    return [Mark(EventKind(code), t) for code, t in records]


class TestTotals(unittest.TestCase):
    def setUp(self) -> None:
        self.acc = DurationAccumulator(EditorConfig(ff_chunk_length=8, min_ff_speed=4))

    def test_short_fast_forward_runs_at_minimum_speed(self) -> None:
        result = self.acc.run(marks(("i", 0), ("f", 10), ("n", 40)), 0)
        self.assertAlmostEqual(result.total, 17.5)

    def test_long_fast_forward_is_one_chunk(self) -> None:
        result = self.acc.run(marks(("i", 0), ("f", 0), ("n", 100)), 0)
        self.assertAlmostEqual(result.total, 8.0)
        self.assertAlmostEqual(self.acc.credit_fast_forward(32), 8.0)
        self.assertAlmostEqual(self.acc.credit_fast_forward(40), 8.0)

    def test_kept_spans(self) -> None:
        seq = marks(("i", 0), ("o", 10), ("i", 20), ("o", 30))
        result = self.acc.run(seq, 0)
        self.assertAlmostEqual(result.total, 20)
        self.assertEqual(result.regions, [Region("keep", 0, 10), Region("keep", 20, 30)])
        self.assertEqual([m.kept_time for m in seq], [0, 10, 10, 20])

    def test_more_kept_time_never_shrinks_the_total(self) -> None:
        shorter = self.acc.run(marks(("i", 0), ("o", 10), ("i", 20), ("o", 30)), 0).total
        longer = self.acc.run(marks(("i", 0), ("o", 10), ("i", 20), ("o", 45)), 0).total
        self.assertGreater(longer, shorter)

    def test_reset_counts_only_after_itself(self) -> None:
        seq = marks(("i", 0), ("o", 10), ("r", 15), ("i", 20), ("o", 30))
        after = self.acc.run(seq, 16)
        self.assertAlmostEqual(after.total, 10)
        self.assertEqual(after.reset_baseline, 15)

        before = self.acc.run(seq, 5)
        self.assertAlmostEqual(before.total, 20)
        self.assertEqual(before.reset_baseline, 0)

    def test_voided_marks_do_not_count(self) -> None:
        result = self.acc.run(marks(("i", 0), ("o", 10), ("xo", 50)), 0)
        self.assertAlmostEqual(result.total, 10)

    def test_regions(self) -> None:
        result = self.acc.run(marks(("i", 0), ("f", 10), ("n", 40), ("m", 45), ("o", 50)), 0)
        self.assertEqual(result.regions, [
            Region("fast_forward", 10, 40),
            Region("mute", 45, 45 + MUTE_REGION_LENGTH),
            Region("keep", 0, 50),
        ])


class TestElapsedKept(unittest.TestCase):
    def setUp(self) -> None:
        self.acc = DurationAccumulator(EditorConfig(ff_chunk_length=8, min_ff_speed=4))

    def test_before_the_first_mark_nothing_is_kept(self) -> None:
        self.assertEqual(self.acc.elapsed_kept(None, 12.5), 0.0)

    def test_unmarked_recording_counts_the_raw_position(self) -> None:
        self.assertEqual(self.acc.elapsed_kept(None, 12.5, unmarked=True), 12.5)

    def test_inside_a_kept_span(self) -> None:
        seq = marks(("i", 0), ("o", 10), ("i", 20), ("o", 30))
        self.acc.run(seq, 0)
        self.assertAlmostEqual(self.acc.elapsed_kept(seq[2], 25), 15)
        self.assertAlmostEqual(self.acc.elapsed_kept(seq[1], 15), 10)

    def test_inside_a_fast_forward(self) -> None:
        seq = marks(("i", 0), ("f", 10), ("n", 40))
        self.acc.run(seq, 0)
        self.assertAlmostEqual(self.acc.elapsed_kept(seq[1], 18), 12)


if __name__ == "__main__":
    unittest.main()
