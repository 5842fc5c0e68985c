from dataclasses import dataclass
from typing import List, Optional

from mark_store import MarkStore
from models import EventKind, Mark, Region

JUMPABLE = (EventKind.CUT_IN, EventKind.FAST_FORWARD_STOP)


@dataclass
class Bracket:
    """Where the playback position sits among the marks."""
    previous: Optional[Mark] = None
    next: Optional[Mark] = None
    index: int = 0  # insertion index for a mark at the position


class PositionTracker:
    """Finds the marks around the playback position."""

    def __init__(self, store: MarkStore):
        self.store = store

    def locate(self, position: float) -> Bracket:
        """
        The previous mark is the nearest mute-free, non-voided mark at or
        before the position; the next mark is whatever comes after it.
        """
        index = self.store.bisect(position)
        previous = None
        for idx in range(index - 1, -1, -1):
            if self.store[idx].is_significant:
                previous = self.store[idx]
                break
        following = self.store[index] if index < len(self.store) else None
        return Bracket(previous, following, index)

    def still_inside(self, bracket: Bracket, position: float) -> bool:
        """True if moving to the position crosses no mark since the bracket was taken."""
        return self.store.bisect(position) == bracket.index


class JumpIndex:
    """Cut-in and resume marks, numbered from 1 for direct navigation."""

    def __init__(self, store: MarkStore):
        self.store = store
        self._revision = -1
        self._jumps: List[Mark] = []

    def jumps(self) -> List[Mark]:
        if self._revision != self.store.revision:
            self._jumps = [m for m in self.store if m.kind in JUMPABLE]
            self._revision = self.store.revision
        return self._jumps

    def __len__(self) -> int:
        return len(self.jumps())

    def lookup(self, number: int) -> Optional[Mark]:
        jumps = self.jumps()
        if 1 <= number <= len(jumps):
            return jumps[number - 1]
        return None


class ViewWindow:
    """
    The part of the timeline shown at once. The window moves in 100 second
    steps, keeping 100 seconds of context before the playback position.
    """
    BASE_LENGTH = 600.0
    DEFAULT_ZOOM = 64
    MIN_ZOOM = 8
    MAX_ZOOM = 512
    STEP = 100.0

    def __init__(self):
        self.offset: Optional[float] = None
        self.zoom = self.DEFAULT_ZOOM

    @property
    def length(self) -> float:
        return self.BASE_LENGTH * self.DEFAULT_ZOOM / self.zoom

    @property
    def end(self) -> float:
        return (self.offset or 0.0) + self.length

    def follow(self, position: float) -> bool:
        """Moves the window to the position; returns True if it moved."""
        offset = (position // self.STEP) * self.STEP - self.STEP
        if offset < 0:
            offset = 0.0
        if offset == self.offset:
            return False
        self.offset = offset
        return True

    def zoom_in(self):
        self.zoom = min(self.zoom * 2, self.MAX_ZOOM)
        self.offset = None

    def zoom_out(self):
        self.zoom = max(self.zoom // 2, self.MIN_ZOOM)
        self.offset = None

    def clip(self, regions: List[Region]) -> List[Region]:
        """Regions intersecting the window, trimmed to it (absolute times)."""
        start = self.offset or 0.0
        end = start + self.length
        clipped = []
        for region in regions:
            if region.end < start or region.start > end:
                continue
            clipped.append(Region(region.kind, max(region.start, start), min(region.end, end)))
        return clipped
