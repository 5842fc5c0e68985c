"""
Tests for reading and writing mark files.
Run with: python3 -m pytest tests/test_mark_codec.py -v
"""
import os
import tempfile
import unittest

import mark_codec
from models import EventKind, Mark


class TestDecode(unittest.TestCase):
    def test_round_trip(self) -> None:
        text = "i5\no20\n"
        self.assertEqual(mark_codec.encode(mark_codec.decode(text)), text)

    def test_fractional_times(self) -> None:
        text = "i0.1\nf12.25\nn30\no31.5\nm40.125\nr41\n"
        self.assertEqual(mark_codec.encode(mark_codec.decode(text)), text)

    def test_skips_blank_and_malformed_lines(self) -> None:
        text = "i5\n\nzz\nq3\no-2\nonan\nxm3\nx\ni\nxo7\nm1.5\n"
        decoded = mark_codec.decode(text)
        self.assertEqual([(m.kind, m.time) for m in decoded], [
            (EventKind.CUT_IN, 5.0),
            (EventKind.VOID_CUT_OUT, 7.0),
            (EventKind.MUTE, 1.5),
        ])

    def test_parse_line(self) -> None:
        mark = mark_codec.parse_line("  xf12.5 ")
        self.assertEqual(mark.kind, EventKind.VOID_FAST_FORWARD_START)
        self.assertEqual(mark.time, 12.5)
        self.assertIsNone(mark_codec.parse_line("oinf"))


class TestEncode(unittest.TestCase):
    def test_voided_marks_are_not_written(self) -> None:
        marks = [Mark(EventKind.CUT_IN, 0), Mark(EventKind.VOID_CUT_OUT, 5), Mark(EventKind.CUT_OUT, 9)]
        self.assertEqual(mark_codec.encode(marks), "i0\no9\n")

    def test_format_time(self) -> None:
        self.assertEqual(mark_codec.format_time(5.0), "5")
        self.assertEqual(mark_codec.format_time(1.5), "1.5")
        self.assertEqual(mark_codec.format_time(0.1), "0.1")

    def test_format_time_never_uses_exponents(self) -> None:
        self.assertEqual(mark_codec.format_time(1e-05), "0.00001")
        self.assertEqual(mark_codec.format_time(1.5e-07), "0.00000015")
        self.assertEqual(mark_codec.format_time(1e16), "10000000000000000")
        self.assertEqual(mark_codec.encode(mark_codec.decode("i0.00001\n")), "i0.00001\n")

    def test_whole_seconds_are_normalised(self) -> None:
        self.assertEqual(mark_codec.encode(mark_codec.decode("i5.0\no20.50\n")), "i5\no20.5\n")


class TestFiles(unittest.TestCase):
    def test_missing_file_is_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(mark_codec.load_marks(os.path.join(tmp, "none.mark")), [])

    def test_save_then_load(self) -> None:
        marks = [Mark(EventKind.CUT_IN, 1.25), Mark(EventKind.MUTE, 2), Mark(EventKind.CUT_OUT, 3)]
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "out.mark")
            mark_codec.save_marks(path, marks)
            loaded = mark_codec.load_marks(path)
        self.assertEqual([(m.kind, m.time) for m in loaded], [(m.kind, m.time) for m in marks])

    def test_save_errors_propagate(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(OSError):
                mark_codec.save_marks(os.path.join(tmp, "missing", "out.mark"), [])


if __name__ == "__main__":
    unittest.main()
