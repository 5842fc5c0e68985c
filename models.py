import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping, Optional


class EventKind(Enum):
    """Kinds of timeline marks, valued by their mark-file character(s)."""
    CUT_IN = "i"
    CUT_OUT = "o"
    FAST_FORWARD_START = "f"
    FAST_FORWARD_STOP = "n"
    MUTE = "m"
    RESET = "r"
    VOID_CUT_IN = "xi"
    VOID_CUT_OUT = "xo"
    VOID_FAST_FORWARD_START = "xf"
    VOID_FAST_FORWARD_STOP = "xn"
    VOID_RESET = "xr"

    @property
    def is_voided(self) -> bool:
        return self.value.startswith("x")

    @property
    def is_mute(self) -> bool:
        return self is EventKind.MUTE

    def voided(self) -> "EventKind":
        """Returns the soft-deleted variant of this kind."""
        if self.is_voided:
            return self
        if self is EventKind.MUTE:
            raise ValueError("Mute marks have no voided variant")
        return EventKind("x" + self.value)


@dataclass(eq=False)
class Mark:
    """A timestamped event on the timeline.

    Marks are compared by identity: the editing session holds references to
    the marks bracketing the playback position.
    """
    kind: EventKind
    time: float
    kept_time: float = 0.0

    @property
    def is_significant(self) -> bool:
        """True for marks that take part in the keep/cut state machine."""
        return not (self.kind.is_mute or self.kind.is_voided)

    def __repr__(self):
        return f"Mark({self.kind.value}@{self.time:g})"


@dataclass
class Region:
    """A span of the timeline to draw: 'keep', 'fast_forward' or 'mute'."""
    kind: str
    start: float
    end: float


@dataclass
class Segment:
    """A span of the source to keep in the output, sped up if fast-forwarded."""
    start: float
    end: float
    speed: float = 1.0
    output_length: Optional[float] = None
    fast_forward: bool = False

    def __post_init__(self):
        if self.output_length is None:
            self.output_length = self.end - self.start


@dataclass
class ExportSettings:
    """Class representing export settings."""
    output_path: str
    format: str = "mkv"  # 'mkv', 'mp4', 'webm'
    crf: int = 16
    bitrate_mbps: Optional[int] = None
    ff_audio: str = "speedup"  # 'speedup', 'keep' or 'discard' in fast-forwards
    restart: int = 1


@dataclass
class EditorConfig:
    """Fast-forward accounting and export parameters for one editing session."""
    ff_chunk_length: float = 8.0
    min_ff_speed: float = 4.0
    max_ff_pitch: float = math.inf
    ff_filter: str = "null"
    fps: int = 30
    audio_rate: int = 48000
    incremental_repair: bool = False

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], base: Optional["EditorConfig"] = None) -> "EditorConfig":
        """
        Builds a config from flat 'section.key' settings, e.g. as read from the
        [marktofilter] section of the processing config.
        Zero chunk length or speed keeps the default; a pitch limit below 1 means unlimited.
        """
        config = replace(base) if base is not None else cls()

        fflen = float(values.get("marktofilter.fflen") or 0)
        if fflen != 0:
            config.ff_chunk_length = fflen

        minffspeed = float(values.get("marktofilter.minffspeed") or 0)
        if minffspeed != 0:
            config.min_ff_speed = minffspeed

        if "marktofilter.maxffpitch" in values:
            maxffpitch = float(values.get("marktofilter.maxffpitch") or 0)
            config.max_ff_pitch = maxffpitch if maxffpitch >= 1 else math.inf

        fffilter = values.get("marktofilter.fffilter")
        if fffilter:
            config.ff_filter = str(fffilter)

        return config
