from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from models import EditorConfig, EventKind, Mark, Region

MUTE_REGION_LENGTH = 0.125


@dataclass
class DurationResult:
    """Output of one accumulator pass."""
    total: float = 0.0
    reset_baseline: float = 0.0
    regions: List[Region] = field(default_factory=list)


class DurationAccumulator:
    """
    Computes how long the edited output will run.

    Normal-speed spans count in full. A fast-forward of length d counts as
    d / min_ff_speed, capped at ff_chunk_length once d exceeds
    ff_chunk_length * min_ff_speed. Resets at or before the playback position
    restart the count.
    """

    def __init__(self, config: EditorConfig):
        self.config = config

    def credit_fast_forward(self, length: float) -> float:
        chunk = self.config.ff_chunk_length
        if length > chunk * self.config.min_ff_speed:
            return min(length, chunk)
        return length / self.config.min_ff_speed

    def run(self, marks: Iterable[Mark], position: float) -> DurationResult:
        """Stamps every mark with its kept_time and returns the totals and regions."""
        result = DurationResult()
        total = 0.0
        last_in: Optional[Mark] = None
        last_fast: Optional[Mark] = None
        last_normal: Optional[Mark] = None

        for mark in marks:
            kind = mark.kind
            counting = position >= result.reset_baseline

            if kind is EventKind.CUT_IN:
                last_in = last_normal = mark

            elif kind is EventKind.FAST_FORWARD_START:
                last_fast = mark
                if counting and last_normal:
                    total += mark.time - last_normal.time

            elif kind is EventKind.CUT_OUT:
                if last_in:
                    result.regions.append(Region("keep", last_in.time, mark.time))
                if counting and last_normal:
                    total += mark.time - last_normal.time
                last_in = last_fast = last_normal = None

            elif kind is EventKind.FAST_FORWARD_STOP:
                if last_fast:
                    result.regions.append(Region("fast_forward", last_fast.time, mark.time))
                    if counting:
                        total += self.credit_fast_forward(mark.time - last_fast.time)
                        last_normal = mark
                last_fast = None

            elif kind is EventKind.MUTE:
                result.regions.append(Region("mute", mark.time, mark.time + MUTE_REGION_LENGTH))

            elif kind is EventKind.RESET:
                last_in = last_fast = last_normal = None
                if position >= mark.time:
                    result.reset_baseline = mark.time
                    total = 0.0

            mark.kept_time = total

        result.total = total
        return result

    def elapsed_kept(self, previous: Optional[Mark], position: float, unmarked: bool = False) -> float:
        """
        Kept time up to the playback position, given the bracketing previous mark.
        Before the first mark nothing is kept yet, unless the recording has no
        marks at all and is kept whole.
        """
        if previous is None:
            return position if unmarked else 0.0
        if previous.kind in (EventKind.CUT_IN, EventKind.FAST_FORWARD_STOP):
            return previous.kept_time + (position - previous.time)
        if previous.kind is EventKind.FAST_FORWARD_START:
            return previous.kept_time + self.credit_fast_forward(position - previous.time)
        return previous.kept_time
