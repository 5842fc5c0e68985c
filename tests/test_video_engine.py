"""
Tests for export planning, ffmpeg filter graphs and command lines.
Run with: python3 -m pytest tests/test_video_engine.py -v
"""
import os
import tempfile
import unittest

from models import EditorConfig, EventKind, ExportSettings, Mark, Segment
from video_engine import (WHOLE_DAY, FFmpegCommandBuilder, FilterGraphBuilder, count_restarts,
                          format_mark_list, output_mark_times, plan_segments)


def marks(*records):
    return [Mark(EventKind(code), t) for code, t in records]


class TestPlan(unittest.TestCase):
    def setUp(self) -> None:
        self.config = EditorConfig(ff_chunk_length=8, min_ff_speed=4)

    def test_segments(self) -> None:
        segments = plan_segments(marks(("i", 0), ("o", 10), ("i", 20), ("f", 25), ("n", 65), ("o", 70)), self.config)
        self.assertEqual(segments, [
            Segment(0, 10),
            Segment(20, 25),
            Segment(25, 65, 5.0, 8.0, fast_forward=True),
            Segment(65, 70),
        ])

    def test_short_fast_forward_uses_minimum_speed(self) -> None:
        segments = plan_segments(marks(("i", 0), ("f", 10), ("n", 30), ("o", 40)), self.config)
        ff = segments[1]
        self.assertTrue(ff.fast_forward)
        self.assertEqual(ff.speed, 4)
        self.assertAlmostEqual(ff.output_length, 5)

    def test_zero_length_segment_is_widened(self) -> None:
        segments = plan_segments(marks(("i", 0), ("f", 0), ("n", 20), ("o", 30)), self.config)
        self.assertAlmostEqual(segments[0].end - segments[0].start, 0.001)

    def test_restarts(self) -> None:
        seq = marks(("i", 0), ("o", 10), ("r", 15), ("i", 20), ("o", 30))
        self.assertEqual(count_restarts(seq), 1)
        self.assertEqual(plan_segments(seq, self.config, restart=1), [Segment(0, 10)])
        self.assertEqual(plan_segments(seq, self.config, restart=2), [Segment(20, 30)])
        self.assertEqual(plan_segments(seq, self.config, restart=3), [])

    def test_no_marks_keeps_everything(self) -> None:
        self.assertEqual(plan_segments([], self.config, duration=50), [Segment(0, 50)])
        self.assertEqual(plan_segments([], self.config), [Segment(0, WHOLE_DAY)])

    def test_mutes_alone_keep_everything(self) -> None:
        seq = marks(("m", 12))
        self.assertEqual(plan_segments(seq, self.config, duration=50), [Segment(0, 50)])
        self.assertEqual(output_mark_times(seq, self.config), [12.0])

    def test_voided_marks_are_skipped(self) -> None:
        self.assertEqual(plan_segments(marks(("i", 0), ("o", 10), ("xo", 40)), self.config), [Segment(0, 10)])

    def test_mute_output_times(self) -> None:
        seq = marks(("i", 0), ("o", 10), ("i", 20), ("m", 25), ("o", 30))
        self.assertEqual(output_mark_times(seq, self.config), [15.0])
        self.assertEqual(format_mark_list([15.0, 75.0, 3725]), "m 15\nm 01:15\nm 1:02:05\n")


class TestFilterGraph(unittest.TestCase):
    def setUp(self) -> None:
        self.config = EditorConfig(ff_chunk_length=8, min_ff_speed=4, max_ff_pitch=2)
        self.segments = [Segment(0, 10), Segment(25, 65, 5.0, 8.0, fast_forward=True)]

    def test_video_and_audio_chains(self) -> None:
        parts, map_v, map_a = FilterGraphBuilder(self.config).build(self.segments)
        self.assertEqual(parts[0], "[0:v]trim=0.000000:10.000000,setpts=PTS-STARTPTS[v0]")
        self.assertEqual(parts[1], "[0:a]atrim=0.000000:10.000000,asetpts=PTS-STARTPTS[a0]")
        self.assertIn("setpts=(PTS-STARTPTS)/5.000000", parts[2])
        self.assertIn("fps=30:start_time=0,trim=0:8.000000,null[v1]", parts[2])
        self.assertIn("asetrate=96000.000000", parts[3])
        self.assertIn(",atempo=2,atempo=1.250000,", parts[3])
        self.assertEqual(parts[4], "[v0][v1]concat=n=2:v=1:a=0,fps=30:start_time=0[outv]")
        self.assertEqual(parts[5], "[a0][a1]concat=n=2:v=0:a=1[outa]")
        self.assertEqual((map_v, map_a), ("[outv]", "[outa]"))

    def test_discarded_and_kept_audio(self) -> None:
        parts, _, _ = FilterGraphBuilder(self.config, "discard").build(self.segments, video=None)
        self.assertEqual(parts[1], "aevalsrc=0:s=48000,atrim=0:8.000000[a1]")

        parts, map_v, _ = FilterGraphBuilder(self.config, "keep").build(self.segments, video=None, audio="1:a")
        self.assertEqual(parts[1], "[1:a]atrim=25.000000:33.000000,asetpts=PTS-STARTPTS[a1]")
        self.assertIsNone(map_v)

    def test_errors(self) -> None:
        with self.assertRaises(ValueError):
            FilterGraphBuilder(self.config, "loud")
        with self.assertRaises(ValueError):
            FilterGraphBuilder(self.config).build([])


class TestCommand(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.input_path = os.path.join(self.tmp.name, "in.mkv")
        with open(self.input_path, "wb") as f:
            f.write(b"\0")
        self.builder = FFmpegCommandBuilder()
        self.builder.set_ffmpeg_path("ffmpeg")
        self.marks = marks(("i", 0), ("o", 10))

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_mp4(self) -> None:
        cmd = self.builder.build_command(self.input_path, self.marks, ExportSettings("out.mp4"))
        self.assertEqual(cmd[:4], ["ffmpeg", "-y", "-i", self.input_path])
        self.assertIn("-filter_complex", cmd)
        self.assertIn("libx264", cmd)
        self.assertIn("aac", cmd)
        self.assertEqual(cmd[cmd.index("-crf") + 1], "16")
        self.assertEqual(cmd[-1], "out.mp4")

    def test_webm_with_bitrate(self) -> None:
        cmd = self.builder.build_command(self.input_path, self.marks, ExportSettings("out.webm", bitrate_mbps=10))
        self.assertIn("libvpx-vp9", cmd)
        self.assertEqual(cmd[cmd.index("-maxrate") + 1], "15M")
        self.assertEqual(cmd[cmd.index("-bufsize") + 1], "20M")
        self.assertNotIn("-crf", cmd)

    def test_missing_ffmpeg_or_input(self) -> None:
        with self.assertRaises(FileNotFoundError):
            self.builder.build_command(os.path.join(self.tmp.name, "none.mkv"), self.marks, ExportSettings("o.mkv"))
        self.builder.set_ffmpeg_path(None)
        with self.assertRaises(FileNotFoundError):
            self.builder.build_command(self.input_path, self.marks, ExportSettings("o.mkv"))

    def test_nothing_to_export(self) -> None:
        with self.assertRaises(ValueError):
            self.builder.build_command(self.input_path, self.marks, ExportSettings("o.mkv", restart=2))


if __name__ == "__main__":
    unittest.main()
