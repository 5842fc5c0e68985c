"""
Tests for the ordered mark store.
Run with: python3 -m pytest tests/ -v
"""
import unittest

from mark_store import MarkStore
from models import EventKind, Mark


def kinds(store):
    return [(m.kind.value, m.time) for m in store]


class TestOrdering(unittest.TestCase):
    def test_constructor_sorts_and_keeps_ties_in_order(self) -> None:
        store = MarkStore([Mark(EventKind.CUT_OUT, 5), Mark(EventKind.CUT_IN, 2), Mark(EventKind.MUTE, 5)])
        self.assertEqual(kinds(store), [("i", 2), ("o", 5), ("m", 5)])
        self.assertEqual(store.revision, 0)

    def test_bisect_is_strictly_after(self) -> None:
        store = MarkStore([Mark(EventKind.CUT_IN, 2), Mark(EventKind.CUT_OUT, 5)])
        self.assertEqual(store.bisect(5), 2)
        self.assertEqual(store.bisect(4.9), 1)
        self.assertEqual(store.bisect(0), 0)

    def test_insert_after_or_before_equal_times(self) -> None:
        store = MarkStore([Mark(EventKind.CUT_IN, 2), Mark(EventKind.CUT_OUT, 5)])
        self.assertEqual(store.insert(Mark(EventKind.MUTE, 5)), 2)
        self.assertEqual(store.insert(Mark(EventKind.RESET, 5), before_equal=True), 1)
        self.assertEqual(kinds(store), [("i", 2), ("r", 5), ("o", 5), ("m", 5)])
        self.assertEqual(store.revision, 2)


class TestMutation(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MarkStore([Mark(EventKind.CUT_IN, 0), Mark(EventKind.CUT_OUT, 10)])

    def test_void_at_soft_deletes(self) -> None:
        self.store.void_at(1)
        self.assertIs(self.store[1].kind, EventKind.VOID_CUT_OUT)
        self.assertEqual(len(self.store), 2)

    def test_mute_cannot_be_voided(self) -> None:
        self.store.insert(Mark(EventKind.MUTE, 3))
        with self.assertRaises(ValueError):
            self.store.void_at(1)

    def test_index_of_uses_identity(self) -> None:
        mark = self.store[1]
        self.assertEqual(self.store.index_of(mark), 1)
        self.assertEqual(self.store.index_of(Mark(EventKind.CUT_OUT, 10)), -1)

    def test_find_neighbours(self) -> None:
        before, after = self.store.find(5)
        self.assertEqual(before.kind, EventKind.CUT_IN)
        self.assertEqual(after.kind, EventKind.CUT_OUT)
        self.assertEqual(self.store.find(10), (self.store[1], None))

    def test_purge_voided(self) -> None:
        revision = self.store.revision
        self.assertEqual(self.store.purge_voided(), 0)
        self.assertEqual(self.store.revision, revision)

        self.store.void_at(1)
        self.assertEqual(self.store.purge_voided(), 1)
        self.assertEqual(kinds(self.store), [("i", 0)])

    def test_all_is_a_snapshot(self) -> None:
        snapshot = self.store.all()
        self.store.clear()
        self.assertEqual(len(snapshot), 2)
        self.assertEqual(len(self.store), 0)


if __name__ == "__main__":
    unittest.main()
