#!/usr/bin/env python3
"""
Tests for deriving a parent's completion from its subtasks.
"""

import unittest
from datetime import timedelta

from deku_tracker.core.propagation import derive_parent_completion, propagate_completion
from deku_tracker.models import Task

from conftest import T0


def make_task(task_id, completed_at=None, parent_id=None):
    return Task(id=task_id, text=task_id, created_at=T0, completed_at=completed_at, parent_id=parent_id)


class TestDeriveParentCompletion(unittest.TestCase):

    def setUp(self):
        self.now = T0 + timedelta(hours=1)
        self.earlier = T0 + timedelta(minutes=5)

    def test_no_subtasks_keeps_current(self):
        self.assertIsNone(derive_parent_completion(None, [], self.now))
        self.assertEqual(derive_parent_completion(self.earlier, [], self.now), self.earlier)

    def test_all_complete_sets_now(self):
        subs = [make_task("a", self.earlier, "p"), make_task("b", self.earlier, "p")]
        self.assertEqual(derive_parent_completion(None, subs, self.now), self.now)

    def test_all_complete_keeps_existing_timestamp(self):
        subs = [make_task("a", self.earlier, "p")]
        self.assertEqual(derive_parent_completion(self.earlier, subs, self.now), self.earlier)

    def test_any_incomplete_clears(self):
        subs = [make_task("a", self.earlier, "p"), make_task("b", None, "p")]
        self.assertIsNone(derive_parent_completion(self.earlier, subs, self.now))


class TestPropagateCompletion(unittest.TestCase):

    def test_reports_change(self):
        parent = make_task("p")
        subs = [make_task("a", T0, "p")]

        self.assertTrue(propagate_completion(parent, subs, T0))
        self.assertEqual(parent.completed_at, T0)
        self.assertFalse(propagate_completion(parent, subs, T0 + timedelta(days=1)))
        self.assertEqual(parent.completed_at, T0)

    def test_uncompleting_subtask_uncompletes_parent(self):
        parent = make_task("p", completed_at=T0)
        subs = [make_task("a", None, "p")]

        self.assertTrue(propagate_completion(parent, subs, T0))
        self.assertIsNone(parent.completed_at)


if __name__ == "__main__":
    unittest.main()
