from enum import Enum
from typing import Dict, Iterable, NamedTuple, Optional, Tuple

from loguru import logger

from mark_store import MarkStore
from models import EventKind, Mark


class Mode(Enum):
    """Where the playback head is with respect to the keep/cut state machine."""
    OUTSIDE = "o"
    INSIDE = "i"
    FAST_FORWARD = "f"


class Repair(NamedTuple):
    action: str  # 'delete', 'insert' or 'replace'
    kinds: Tuple[EventKind, ...] = ()


def _delete() -> Repair:
    return Repair("delete")


def _synthesize(*kinds: EventKind) -> Repair:
    return Repair("insert", kinds)


def _replace_with(kind: EventKind) -> Repair:
    return Repair("replace", (kind,))


TRANSITIONS: Dict[Tuple[Mode, EventKind], Mode] = {
    (Mode.OUTSIDE, EventKind.CUT_IN): Mode.INSIDE,
    (Mode.OUTSIDE, EventKind.RESET): Mode.OUTSIDE,
    (Mode.INSIDE, EventKind.CUT_OUT): Mode.OUTSIDE,
    (Mode.INSIDE, EventKind.FAST_FORWARD_START): Mode.FAST_FORWARD,
    (Mode.FAST_FORWARD, EventKind.FAST_FORWARD_STOP): Mode.INSIDE,
}

# Every (mode, kind) pair that is not a transition has exactly one repair.
# Synthesized marks go in front of the offending mark, at its time.
REPAIRS: Dict[Tuple[Mode, EventKind], Repair] = {
    (Mode.INSIDE, EventKind.CUT_IN): _delete(),
    (Mode.INSIDE, EventKind.FAST_FORWARD_STOP): _delete(),
    (Mode.INSIDE, EventKind.RESET): _synthesize(EventKind.CUT_OUT),
    (Mode.OUTSIDE, EventKind.FAST_FORWARD_START): _synthesize(EventKind.CUT_IN),
    (Mode.OUTSIDE, EventKind.FAST_FORWARD_STOP): _delete(),
    (Mode.OUTSIDE, EventKind.CUT_OUT): _delete(),
    (Mode.FAST_FORWARD, EventKind.CUT_IN): _replace_with(EventKind.FAST_FORWARD_STOP),
    (Mode.FAST_FORWARD, EventKind.CUT_OUT): _synthesize(EventKind.FAST_FORWARD_STOP),
    (Mode.FAST_FORWARD, EventKind.FAST_FORWARD_START): _delete(),
    (Mode.FAST_FORWARD, EventKind.RESET): _synthesize(EventKind.FAST_FORWARD_STOP, EventKind.CUT_OUT),
}

# In a consistent sequence the mode after a mark depends only on its kind.
MODE_AFTER: Dict[EventKind, Mode] = {
    EventKind.CUT_IN: Mode.INSIDE,
    EventKind.CUT_OUT: Mode.OUTSIDE,
    EventKind.FAST_FORWARD_START: Mode.FAST_FORWARD,
    EventKind.FAST_FORWARD_STOP: Mode.INSIDE,
    EventKind.RESET: Mode.OUTSIDE,
}


def first_violation(marks: Iterable[Mark]) -> Optional[int]:
    """Returns the index of the first mark the state machine rejects, or None."""
    mode = Mode.OUTSIDE
    for idx, mark in enumerate(marks):
        if not mark.is_significant:
            continue
        key = (mode, mark.kind)
        if key not in TRANSITIONS:
            return idx
        mode = TRANSITIONS[key]
    return None


class MarkValidator:
    """
    Restores the legal-sequence invariant of a MarkStore.

    repair() walks the whole sequence and keeps voided marks as placeholders,
    repair(purge_voided=True) is the explicit user repair that also drops them,
    and repair_near() re-examines only the neighbourhood of an edit.
    """

    def repair(self, store: MarkStore, purge_voided: bool = False) -> int:
        """Repairs the whole sequence, returning the number of changes made."""
        store.sort()
        changes, _, _ = self._scan(store, 0, len(store), Mode.OUTSIDE, purge_voided)
        if changes:
            logger.debug(f"Repaired mark sequence with {changes} change(s)")
        return changes

    def repair_near(self, store: MarkStore, lo: int, hi: int) -> int:
        """
        Repairs only the marks around indices lo..hi, assuming everything
        outside that range was consistent before the edit. Falls back to a
        whole-sequence pass if the first mark after the window does not fit.
        """
        start = max(0, lo - 1)
        mode = self._mode_before(store, start)
        end = min(len(store), hi + 2)
        changes, mode, end = self._scan(store, start, end, mode, False)

        following = self._next_significant(store, end)
        if following is not None and (mode, following.kind) not in TRANSITIONS:
            logger.debug(f"Partial repair cannot settle at {following!r}, running a full pass")
            return changes + self.repair(store)
        return changes

    def _mode_before(self, store: MarkStore, index: int) -> Mode:
        for idx in range(index - 1, -1, -1):
            mark = store[idx]
            if mark.is_significant:
                return MODE_AFTER[mark.kind]
        return Mode.OUTSIDE

    def _next_significant(self, store: MarkStore, index: int) -> Optional[Mark]:
        for idx in range(index, len(store)):
            if store[idx].is_significant:
                return store[idx]
        return None

    def _scan(self, store: MarkStore, index: int, end: int, mode: Mode,
              purge_voided: bool) -> Tuple[int, Mode, int]:
        changes = 0
        while index < end:
            mark = store[index]

            if mark.kind.is_mute:
                index += 1
                continue

            if mark.kind.is_voided:
                if purge_voided:
                    store.remove_at(index)
                    end -= 1
                    changes += 1
                else:
                    index += 1
                continue

            key = (mode, mark.kind)
            if key in TRANSITIONS:
                mode = TRANSITIONS[key]
                index += 1
                continue

            # Repair, then look at the same index again
            repair = REPAIRS[key]
            if repair.action == "delete":
                store.remove_at(index)
                end -= 1
            elif repair.action == "replace":
                store.replace_at(index, Mark(repair.kinds[0], mark.time))
            else:
                for offset, kind in enumerate(repair.kinds):
                    store.insert_at(index + offset, Mark(kind, mark.time))
                end += len(repair.kinds)
            changes += 1

        return changes, mode, end
