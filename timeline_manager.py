from typing import Callable, Collection, List, Optional, Tuple

from loguru import logger

import mark_codec
from duration import DurationAccumulator
from mark_store import MarkStore
from models import EditorConfig, EventKind, Mark, Region
from navigation import Bracket, JumpIndex, PositionTracker, ViewWindow
from validator import MarkValidator

# Marks a cut-out ender may skip over: fast-forwards live inside a kept span.
FAST_FORWARDING = frozenset({
    EventKind.FAST_FORWARD_START,
    EventKind.FAST_FORWARD_STOP,
    EventKind.VOID_FAST_FORWARD_STOP,
})

ChangeCallback = Callable[[List[Mark], List[Region]], None]


class TimelineManager:
    """
    Editing session over the marks of one recording.
    Turns edit intents at the playback position into mark changes, keeps the
    sequence consistent, and keeps kept duration, regions and jumps current.
    Edit operations return True if they changed the marks; they never raise.
    """
    def __init__(self, config: Optional[EditorConfig] = None,
                 marks: Optional[List[Mark]] = None, duration: float = 0.0):
        self.config = config or EditorConfig()
        self.store = MarkStore(marks)
        self.validator = MarkValidator()
        self.accumulator = DurationAccumulator(self.config)
        self.tracker = PositionTracker(self.store)
        self.jump_index = JumpIndex(self.store)
        self.view = ViewWindow()

        self.duration = duration
        self.position = 0.0
        self.bracket = Bracket()
        self.total_kept = 0.0
        self.unmarked = True
        self.regions: List[Region] = []
        self.change_callbacks: List[ChangeCallback] = []
        self._dirty: Optional[Tuple[int, int]] = None
        self._refreshed_revision = -1

        self.validator.repair(self.store)
        self.refresh()

    @classmethod
    def from_file(cls, path: str, config: Optional[EditorConfig] = None,
                  duration: float = 0.0) -> "TimelineManager":
        return cls(config, mark_codec.load_marks(path), duration)

    # --- State ---

    @property
    def marks(self) -> List[Mark]:
        return self.store.all()

    @property
    def previous_mark(self) -> Optional[Mark]:
        return self.bracket.previous

    @property
    def next_mark(self) -> Optional[Mark]:
        return self.bracket.next

    @property
    def elapsed_kept(self) -> float:
        """Kept time up to the playback position, for the running counter."""
        return self.accumulator.elapsed_kept(self.bracket.previous, self.position, self.unmarked)

    def visible_regions(self) -> List[Region]:
        return self.view.clip(self.regions)

    def register_change_callback(self, callback: ChangeCallback):
        """Registers a listener for the validated marks and regions after each refresh."""
        self.change_callbacks.append(callback)

    def set_duration(self, duration: float):
        self.duration = duration

    # --- Refresh pipeline ---

    def refresh(self):
        """Recomputes totals, regions and the position bracket, then notifies listeners."""
        self.view.follow(self.position)
        result = self.accumulator.run(self.store, self.position)
        self.total_kept = result.total
        self.regions = result.regions
        self.bracket = self.tracker.locate(self.position)
        self.unmarked = not any(m.is_significant for m in self.store)
        self._refreshed_revision = self.store.revision

        visible = [m for m in self.store if not m.kind.is_voided]
        for callback in self.change_callbacks:
            callback(visible, self.regions)

    def set_position(self, position: float) -> bool:
        """
        Follows the playback position. Only runs the full refresh if a mark was
        crossed, the marks changed or the view window moved; returns whether it did.
        """
        self.position = max(0.0, position)
        moved = self.view.follow(self.position)
        if (not moved
                and self._refreshed_revision == self.store.revision
                and self.tracker.still_inside(self.bracket, self.position)):
            return False
        self.refresh()
        return True

    def zoom_in(self):
        self.view.zoom_in()
        self.refresh()

    def zoom_out(self):
        self.view.zoom_out()
        self.refresh()

    def _commit(self) -> bool:
        if self.config.incremental_repair and self._dirty is not None:
            lo, hi = self._dirty
            self.validator.repair_near(self.store, lo, hi)
        else:
            self.validator.repair(self.store)
        self._dirty = None
        self.refresh()
        return True

    # --- Store mutations, tracking the edited index range ---

    def _mark_dirty(self, index: int, shift: int = 0):
        if self._dirty is None:
            self._dirty = (index, index)
            return
        lo, hi = self._dirty
        if shift > 0:
            lo = lo + shift if lo >= index else lo
            hi = hi + shift if hi >= index else hi
        elif shift < 0:
            lo = lo + shift if lo > index else lo
            hi = hi + shift if hi > index else hi
        self._dirty = (min(lo, index), max(hi, index))

    def _insert_at(self, index: int, mark: Mark):
        self.store.insert_at(index, mark)
        self._mark_dirty(index, 1)

    def _replace_at(self, index: int, mark: Mark):
        self.store.replace_at(index, mark)
        self._mark_dirty(index)

    def _void_at(self, index: int):
        self.store.void_at(index)
        self._mark_dirty(index)

    def _remove_at(self, index: int):
        self.store.remove_at(index)
        self._mark_dirty(index, -1)

    # --- Edit building blocks ---

    def _locate(self):
        self.bracket = self.tracker.locate(self.position)

    def _next_mark(self, ignore: Collection[EventKind] = ()) -> Tuple[int, Optional[Mark]]:
        """The next mark after the position, skipping mutes and ignored kinds."""
        for idx in range(self.bracket.index, len(self.store)):
            mark = self.store[idx]
            if mark.kind.is_mute or mark.kind in ignore:
                continue
            return idx, mark
        return len(self.store), None

    def eliminate(self, kind: EventKind, ignore: Collection[EventKind] = ()):
        """
        Gets rid of the next mark if it is of the given kind. It is only voided,
        so a later edit can abut it, unless another mark already sits at its time.
        """
        idx, mark = self._next_mark(ignore)
        if mark is None or mark.kind is not kind:
            return
        follow = self.store[idx + 1] if idx + 1 < len(self.store) else None
        if follow is not None and follow.time == mark.time:
            self._remove_at(idx)
        else:
            self._void_at(idx)

    def insert_ender(self, kind: EventKind, ignore: Collection[EventKind] = ()):
        """Closes a newly opened span just before the next mark, or at the end of the media."""
        idx, mark = self._next_mark(ignore)
        if mark is not None:
            ender = Mark(kind, mark.time)
            if mark.kind is kind.voided():
                self._replace_at(idx, ender)
            else:
                self._insert_at(idx, ender)
        else:
            end = max(self.duration, self.position)
            self._insert_at(len(self.store), Mark(kind, end))

    def _insert_mark(self, kind: EventKind, ender: Optional[EventKind] = None,
                     ignore: Collection[EventKind] = ()):
        if ender is not None:
            self.insert_ender(ender, ignore)
        self._insert_at(self.bracket.index, Mark(kind, self.position))

    # --- Edit operations ---

    def cut(self) -> bool:
        """Cuts out after a kept span, resumes from a fast-forward, or cuts in."""
        self._locate()
        previous = self.bracket.previous
        if previous is not None and previous.kind in (EventKind.CUT_IN, EventKind.FAST_FORWARD_STOP):
            self.eliminate(EventKind.CUT_OUT, FAST_FORWARDING)
            self._insert_mark(EventKind.CUT_OUT)
        elif previous is not None and previous.kind is EventKind.FAST_FORWARD_START:
            self.eliminate(EventKind.FAST_FORWARD_STOP)
            self._insert_mark(EventKind.FAST_FORWARD_STOP)
        else:
            self._insert_mark(EventKind.CUT_IN, EventKind.CUT_OUT, FAST_FORWARDING)
        logger.debug(f"cut at {self.position:.3f}")
        return self._commit()

    def fast_forward(self) -> bool:
        """Starts or stops a fast-forward inside a kept span, or resets the count after a cut-out."""
        self._locate()
        previous = self.bracket.previous
        if previous is None:
            return False

        if previous.kind in (EventKind.CUT_IN, EventKind.FAST_FORWARD_STOP):
            self._insert_mark(EventKind.FAST_FORWARD_START, EventKind.FAST_FORWARD_STOP)
        elif previous.kind is EventKind.FAST_FORWARD_START:
            self.eliminate(EventKind.FAST_FORWARD_STOP)
            self._insert_mark(EventKind.FAST_FORWARD_STOP)
        elif previous.kind is EventKind.CUT_OUT:
            self._insert_mark(EventKind.RESET)
        else:
            return False
        logger.debug(f"fast-forward at {self.position:.3f}")
        return self._commit()

    def mute(self) -> bool:
        self._locate()
        self._insert_mark(EventKind.MUTE)
        return self._commit()

    def delete(self) -> bool:
        """Deletes the mark just before the position, along with what it implied ahead."""
        self._locate()
        index = self.bracket.index - 1
        if index < 0:
            return False

        kind = self.store[index].kind
        if kind is EventKind.CUT_IN:
            self.eliminate(EventKind.CUT_OUT, FAST_FORWARDING)
        elif kind is EventKind.FAST_FORWARD_START:
            self.eliminate(EventKind.FAST_FORWARD_STOP)
        elif kind is EventKind.CUT_OUT:
            self.insert_ender(EventKind.CUT_OUT, FAST_FORWARDING)
        elif kind is EventKind.FAST_FORWARD_STOP:
            self.insert_ender(EventKind.FAST_FORWARD_STOP)

        self._remove_at(index)
        logger.debug(f"deleted {kind.value} mark before {self.position:.3f}")
        return self._commit()

    def validate(self) -> int:
        """Full user-invoked repair; voided placeholders are dropped too."""
        changes = self.validator.repair(self.store, purge_voided=True)
        self._dirty = None
        self.refresh()
        logger.info(f"Validated marks: {changes} change(s)")
        return changes

    # --- Navigation targets ---

    def previous_mark_target(self) -> float:
        if self.bracket.previous is not None:
            return max(0.0, self.bracket.previous.time - 0.1)
        return 0.0

    def next_mark_target(self) -> float:
        if self.bracket.next is not None:
            return self.bracket.next.time
        return self.duration

    def fraction_target(self, digit: int) -> float:
        return (self.duration / 10) * digit

    def jump_target(self, number: int) -> Optional[float]:
        mark = self.jump_index.lookup(number)
        return mark.time if mark is not None else None

    # --- Persistence ---

    def save(self, path: str):
        """
        Writes the marks to path. On success voided placeholders are discarded;
        on failure the OSError propagates and the marks stay as they were.
        """
        mark_codec.save_marks(path, self.store)
        if self.store.purge_voided():
            self.refresh()

    def checkpoint(self, path: str):
        """Writes the marks after an edit; voided placeholders stay in memory."""
        mark_codec.save_marks(path, self.store)
