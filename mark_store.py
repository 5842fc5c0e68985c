from bisect import bisect_left, bisect_right
from typing import Iterable, Iterator, List, Optional, Tuple

from models import Mark


class MarkStore:
    """
    Ordered sequence of marks, sorted by time with ties kept in insertion order.
    Index arguments must be in range; callers derive them from the store itself.
    """
    def __init__(self, marks: Optional[Iterable[Mark]] = None):
        self._marks: List[Mark] = list(marks or [])
        self.sort()
        self.revision = 0

    def __len__(self) -> int:
        return len(self._marks)

    def __iter__(self) -> Iterator[Mark]:
        return iter(self._marks)

    def __getitem__(self, index):
        return self._marks[index]

    def _touch(self):
        self.revision += 1

    def all(self) -> List[Mark]:
        """Returns a snapshot of the ordered sequence."""
        return list(self._marks)

    def sort(self):
        # list.sort is stable, so equal times keep their insertion order
        self._marks.sort(key=lambda m: m.time)

    def bisect(self, time: float) -> int:
        """Index of the first mark strictly after the given time."""
        return bisect_right(self._marks, time, key=lambda m: m.time)

    def insert(self, mark: Mark, before_equal: bool = False) -> int:
        """Inserts a mark in time order, after marks at the same time unless before_equal."""
        if before_equal:
            index = bisect_left(self._marks, mark.time, key=lambda m: m.time)
        else:
            index = self.bisect(mark.time)
        self._marks.insert(index, mark)
        self._touch()
        return index

    def insert_at(self, index: int, mark: Mark):
        self._marks.insert(index, mark)
        self._touch()

    def replace_at(self, index: int, mark: Mark):
        self._marks[index] = mark
        self._touch()

    def void_at(self, index: int):
        """Soft-deletes the mark in place so later inserts can still abut it."""
        mark = self._marks[index]
        mark.kind = mark.kind.voided()
        self._touch()

    def remove_at(self, index: int) -> Mark:
        mark = self._marks.pop(index)
        self._touch()
        return mark

    def index_of(self, mark: Mark) -> int:
        """Identity lookup; returns -1 if the mark is not in the store."""
        for idx, other in enumerate(self._marks):
            if other is mark:
                return idx
        return -1

    def find(self, time: float) -> Tuple[Optional[Mark], Optional[Mark]]:
        """Returns the nearest mark at or before the time and the nearest one after it."""
        index = self.bisect(time)
        before = self._marks[index - 1] if index > 0 else None
        after = self._marks[index] if index < len(self._marks) else None
        return before, after

    def purge_voided(self) -> int:
        """Drops every voided mark, returning how many were removed."""
        kept = [m for m in self._marks if not m.kind.is_voided]
        removed = len(self._marks) - len(kept)
        if removed:
            self._marks = kept
            self._touch()
        return removed

    def clear(self):
        self._marks = []
        self._touch()
