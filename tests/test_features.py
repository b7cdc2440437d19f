"""
Tests for the feature registry: name resolution, groups and pause deadlines.
"""

import math
import os
import sys
import unittest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from delta.errors import DeltaError, FeatureNameNotFound
from delta.features import FeatureRegistry


class TestNameResolution(unittest.TestCase):

    def setUp(self):
        self.registry = FeatureRegistry(
            ["hp", "mp", "boss", "fade"],
            groups={"bars": ["hp", "mp"], "everything": ["bars", "boss", 3]},
        )

    def test_single_names(self):
        self.assertEqual(self.registry.resolve("hp"), (0,))
        self.assertEqual(self.registry.resolve("fade"), (3,))
        self.assertEqual(self.registry.feature_count, 4)

    def test_groups(self):
        self.assertEqual(self.registry.resolve("bars"), (0, 1))
        self.assertEqual(self.registry.resolve("everything"), (0, 1, 2, 3))

    def test_unknown_name(self):
        with self.assertRaises(FeatureNameNotFound) as ctx:
            self.registry.resolve("mana")
        self.assertEqual(ctx.exception.name, "mana")
        self.assertIsInstance(ctx.exception, DeltaError)
        self.assertIsInstance(ctx.exception, LookupError)

    def test_resolve_many_drops_duplicates_in_first_seen_order(self):
        self.assertEqual(self.registry.resolve_many(["boss", "bars", "hp"]), (2, 0, 1))

    def test_check_index(self):
        self.assertEqual(self.registry.check_index(2), 2)
        with self.assertRaises(IndexError):
            self.registry.check_index(4)
        with self.assertRaises(IndexError):
            self.registry.check_index(-1)

    def test_invalid_layouts(self):
        with self.assertRaises(ValueError):
            FeatureRegistry([])
        with self.assertRaises(ValueError):
            FeatureRegistry(["a", "a"])
        with self.assertRaises(ValueError):
            FeatureRegistry(["a", "b"], groups={"a": ["b"]})
        with self.assertRaises(FeatureNameNotFound):
            FeatureRegistry(["a"], groups={"g": ["missing"]})


class TestPauseDeadlines(unittest.TestCase):

    def setUp(self):
        self.registry = FeatureRegistry(["a", "b", "c"])

    def test_initially_not_paused(self):
        for index in range(3):
            self.assertIsNone(self.registry.paused_until(index))
        self.assertTrue((self.registry.deadlines([0, 1, 2]) == -math.inf).all())

    def test_pause_is_per_feature(self):
        self.registry.pause(1, 10.0)
        self.assertIsNone(self.registry.paused_until(0))
        self.assertEqual(self.registry.paused_until(1), 10.0)

    def test_last_pause_wins(self):
        self.registry.pause(0, 10.0)
        self.registry.pause(0, 5.0)
        self.assertEqual(self.registry.paused_until(0), 5.0)
        self.registry.pause(0, math.inf)
        self.assertEqual(self.registry.paused_until(0), math.inf)

    def test_resume_with_elapsed_deadline_clears(self):
        self.registry.pause(2, math.inf)
        self.registry.resume(2, until=4.0, reference=4.0)
        self.assertIsNone(self.registry.paused_until(2))

    def test_resume_with_future_deadline_installs_it(self):
        self.registry.pause(2, math.inf)
        self.registry.resume(2, until=6.0, reference=4.0)
        self.assertEqual(self.registry.paused_until(2), 6.0)

    def test_deadlines_array(self):
        self.registry.pause(2, 3.0)
        deadlines = self.registry.deadlines([2, 0])
        self.assertEqual(deadlines[0], 3.0)
        self.assertEqual(deadlines[1], -math.inf)

    def test_clear_pauses(self):
        self.registry.pause(0, math.inf)
        self.registry.pause(1, 2.0)
        self.registry.clear_pauses()
        self.assertIsNone(self.registry.paused_until(0))
        self.assertIsNone(self.registry.paused_until(1))


if __name__ == "__main__":
    unittest.main()
