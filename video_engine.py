import os
import shutil
from typing import Iterable, List, Optional, Tuple

from loguru import logger

from models import EditorConfig, EventKind, ExportSettings, Mark, Segment
from timecode import clock_time

# Rendered when there are no marks at all: keep everything
WHOLE_DAY = 86400.0
# ffmpeg refuses to trim to a length of 0
MIN_SEGMENT = 0.001


def count_restarts(marks: Iterable[Mark]) -> int:
    return sum(1 for mark in marks if mark.kind is EventKind.RESET)


def plan_export(marks: Iterable[Mark], config: EditorConfig, restart: int = 1,
                duration: Optional[float] = None) -> Tuple[List[Segment], List[float]]:
    """
    Walks the marks of one restart (1 = before the first reset, 2 = between the
    first and second, ...) and returns the segments to render plus the output
    times of the mute marks in that restart.
    """
    marks = [m for m in marks if not m.kind.is_voided]
    if not any(m.is_significant for m in marks):
        # Unmarked recordings are kept whole; mutes still apply
        marks = [Mark(EventKind.CUT_IN, 0.0)] + marks + [Mark(EventKind.CUT_OUT, duration or WHOLE_DAY)]

    chosen = restart - 1
    last_in = 0.0
    inside = False
    output_length = 0.0
    segments: List[Segment] = []
    mutes: List[float] = []

    for mark in marks:
        t = mark.time
        kind = mark.kind

        if kind is EventKind.RESET:
            chosen -= 1

        elif kind is EventKind.CUT_IN:
            inside = True
            last_in = t

        elif kind in (EventKind.CUT_OUT, EventKind.FAST_FORWARD_START):
            if chosen == 0:
                end = t if t > last_in else last_in + MIN_SEGMENT
                segments.append(Segment(last_in, end))
                output_length += end - last_in
                inside = False
                last_in = end

        elif kind is EventKind.FAST_FORWARD_STOP:
            if chosen == 0:
                length = t - last_in
                if length <= 0:
                    length = MIN_SEGMENT
                if length <= config.ff_chunk_length * config.min_ff_speed:
                    speed = config.min_ff_speed
                    out = length / config.min_ff_speed
                else:
                    speed = length / config.ff_chunk_length
                    out = config.ff_chunk_length
                segments.append(Segment(last_in, last_in + length, speed, out, fast_forward=True))
                output_length += out
                inside = True
                last_in = t

        elif kind is EventKind.MUTE:
            if chosen == 0:
                at = output_length
                if inside:
                    at += t - last_in
                mutes.append(at)

    return segments, mutes


def plan_segments(marks: Iterable[Mark], config: EditorConfig, restart: int = 1,
                  duration: Optional[float] = None) -> List[Segment]:
    return plan_export(marks, config, restart, duration)[0]


def output_mark_times(marks: Iterable[Mark], config: EditorConfig, restart: int = 1) -> List[float]:
    """Where the mute marks land in the rendered output, in seconds."""
    return plan_export(marks, config, restart)[1]


def format_mark_list(times: Iterable[float]) -> str:
    return "".join(f"m {clock_time(t)}\n" for t in times)


class FilterGraphBuilder:
    """
    Turns a segment plan into ffmpeg filter_complex chains.
    Fast-forwarded video is sped up and resampled to the output frame rate;
    its audio is either sped up (pitch limited by max_ff_pitch, the rest made
    up with atempo), kept at normal speed for the output length, or replaced
    by silence.
    """

    def __init__(self, config: EditorConfig, ff_audio: str = "speedup"):
        if ff_audio not in ("speedup", "keep", "discard"):
            raise ValueError(f"Unknown fast-forward audio mode: {ff_audio}")
        self.config = config
        self.ff_audio = ff_audio

    def _video_chain(self, source: str, seg: Segment, i: int) -> str:
        if not seg.fast_forward:
            return f"[{source}]trim={seg.start:f}:{seg.end:f},setpts=PTS-STARTPTS[v{i}]"
        return (f"[{source}]trim={seg.start:f}:{seg.end:f},setpts=(PTS-STARTPTS)/{seg.speed:f},"
                f"fps={self.config.fps}:start_time=0,trim=0:{seg.output_length:f},"
                f"{self.config.ff_filter}[v{i}]")

    def _audio_chain(self, source: str, seg: Segment, i: int) -> str:
        rate = self.config.audio_rate
        if not seg.fast_forward:
            return f"[{source}]atrim={seg.start:f}:{seg.end:f},asetpts=PTS-STARTPTS[a{i}]"

        if self.ff_audio == "discard":
            return f"aevalsrc=0:s={rate},atrim=0:{seg.output_length:f}[a{i}]"

        if self.ff_audio == "keep":
            return (f"[{source}]atrim={seg.start:f}:{seg.start + seg.output_length:f},"
                    f"asetpts=PTS-STARTPTS[a{i}]")

        pitch = seg.speed
        tempo = 1.0
        if pitch > self.config.max_ff_pitch:
            tempo = pitch / self.config.max_ff_pitch
            pitch = self.config.max_ff_pitch

        chain = (f"[{source}]atrim={seg.start:f}:{seg.end:f},asetpts=PTS-STARTPTS,"
                 f"aresample={rate},asetrate={rate * pitch:f},aresample={rate}")
        # atempo only accepts factors up to 2
        while tempo > 2:
            chain += ",atempo=2"
            tempo /= 2
        if tempo != 1:
            chain += f",atempo={tempo:f}"
        return chain + f",aresample={rate},atrim=0:{seg.output_length:f}[a{i}]"

    def build(self, segments: List[Segment], video: Optional[str] = "0:v",
              audio: Optional[str] = "0:a") -> Tuple[List[str], Optional[str], Optional[str]]:
        """Returns the filter parts and the output video/audio labels (None if not requested)."""
        if not segments:
            raise ValueError("No segments provided for export.")

        filter_parts = []
        for i, seg in enumerate(segments):
            if video:
                filter_parts.append(self._video_chain(video, seg, i))
            if audio:
                filter_parts.append(self._audio_chain(audio, seg, i))

        n_segs = len(segments)
        map_v = map_a = None
        if video:
            inputs = "".join(f"[v{i}]" for i in range(n_segs))
            filter_parts.append(f"{inputs}concat=n={n_segs}:v=1:a=0,fps={self.config.fps}:start_time=0[outv]")
            map_v = "[outv]"
        if audio:
            inputs = "".join(f"[a{i}]" for i in range(n_segs))
            filter_parts.append(f"{inputs}concat=n={n_segs}:v=0:a=1[outa]")
            map_a = "[outa]"

        return filter_parts, map_v, map_a


class FFmpegCommandBuilder:
    """
    Handles the generation of FFmpeg commands for rendering marked media.
    Independent of UI libraries (PyQt); it builds commands and never runs them.
    """

    def __init__(self, config: Optional[EditorConfig] = None):
        self.config = config or EditorConfig()
        self.ffmpeg_exec = self._find_ffmpeg()

    def _find_ffmpeg(self) -> Optional[str]:
        """
        Attempts to locate the ffmpeg executable.
        Checks system PATH and the current working directory.
        """
        ffmpeg_path = shutil.which("ffmpeg")
        if ffmpeg_path:
            return ffmpeg_path

        local_ffmpeg = os.path.join(os.getcwd(), "ffmpeg.exe")
        if os.path.exists(local_ffmpeg):
            return local_ffmpeg

        return None

    def get_ffmpeg_path(self) -> Optional[str]:
        return self.ffmpeg_exec

    def set_ffmpeg_path(self, path: str):
        self.ffmpeg_exec = path

    def build_command(self, input_path: str, marks: List[Mark], settings: ExportSettings,
                      duration: Optional[float] = None) -> List[str]:
        """
        Generates the FFmpeg command list for the chosen restart of the marks.
        """
        if not self.ffmpeg_exec:
            raise FileNotFoundError("FFmpeg executable not found.")

        if not input_path or not os.path.exists(input_path):
            raise FileNotFoundError(f"Input file not found: {input_path}")

        segments = plan_segments(marks, self.config, settings.restart, duration)
        if not segments:
            raise ValueError(f"Nothing to export in restart {settings.restart}.")

        graph = FilterGraphBuilder(self.config, settings.ff_audio)
        filter_parts, map_v, map_a = graph.build(segments)

        cmd = [self.ffmpeg_exec, "-y", "-i", input_path]
        cmd.extend(["-filter_complex", ";".join(filter_parts)])
        cmd.extend(["-map", map_v])
        cmd.extend(["-map", map_a])

        ext = os.path.splitext(settings.output_path)[1].lower()
        if not ext:
            ext = f".{settings.format}"

        if ext == '.mp4':
            v_codec, a_codec = 'libx264', 'aac'
            extra_flags = ['-preset', 'medium', '-pix_fmt', 'yuv420p']
        elif ext == '.webm':
            v_codec, a_codec = 'libvpx-vp9', 'libopus'
            extra_flags = ['-deadline', 'realtime', '-cpu-used', '4']
        else:
            v_codec, a_codec = 'libx264', 'flac'
            extra_flags = []

        mbps = settings.bitrate_mbps
        if mbps:
            extra_flags += ['-b:v', f'{mbps}M',
                            '-maxrate', f'{mbps + 5}M',
                            '-bufsize', f'{mbps * 2}M']
        else:
            extra_flags += ['-crf', str(settings.crf)]
            if v_codec == 'libvpx-vp9':
                extra_flags += ['-b:v', '0']

        cmd.extend(["-c:v", v_codec])
        cmd.extend(extra_flags)
        cmd.extend(["-c:a", a_codec])
        cmd.append(settings.output_path)

        logger.info(f"Built ffmpeg command with {len(segments)} segment(s) for {settings.output_path}")
        return cmd
