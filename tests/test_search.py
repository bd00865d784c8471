"""Nearest-pair search: ordering, tie-break and small palettes."""
import unittest

import numpy as np

from glyph_map.core_types import ConfigurationError
from glyph_map.metrics import cie76_distance, cie76_matrix, cie94_distance, resolve_distance
from glyph_map.search import nearest_pair, nearest_pairs


def lab(rows):
    return np.array(rows, dtype=np.float32)


class TestNearestPair(unittest.TestCase):
    def test_black_white_scenario(self):
        match = nearest_pair((25.0, 0.0, 0.0), lab([[0, 0, 0], [100, 0, 0]]), cie76_distance)
        self.assertEqual((match.closest, match.second), (0, 1))
        self.assertAlmostEqual(match.d1, 25.0)
        self.assertAlmostEqual(match.d2, 75.0)

    def test_two_entries_either_order(self):
        pal = lab([[0, 0, 0], [100, 0, 0]])
        match = nearest_pair((90.0, 0.0, 0.0), pal, cie76_distance)
        self.assertEqual((match.closest, match.second), (1, 0))
        self.assertAlmostEqual(match.d1, 10.0)
        self.assertAlmostEqual(match.d2, 90.0)

    def test_first_entry_closest_still_gets_distinct_second(self):
        pal = lab([[0, 0, 0], [100, 0, 0], [50, 0, 0]])
        match = nearest_pair((0.0, 0.0, 0.0), pal, cie76_distance)
        self.assertEqual((match.closest, match.second), (0, 2))
        self.assertEqual(match.d1, 0.0)
        self.assertAlmostEqual(match.d2, 50.0)

    def test_tie_prefers_lower_index(self):
        pal = lab([[10, 0, 0], [30, 0, 0]])
        match = nearest_pair((20.0, 0.0, 0.0), pal, cie76_distance)
        self.assertEqual((match.closest, match.second), (0, 1))
        self.assertEqual(match.d1, match.d2)

    def test_tie_after_first_entry(self):
        pal = lab([[90, 0, 0], [10, 0, 0], [30, 0, 0], [10, 0, 0]])
        match = nearest_pair((20.0, 0.0, 0.0), pal, cie76_distance)
        self.assertEqual((match.closest, match.second), (1, 2))

    def test_ordering_property(self):
        rng = np.random.default_rng(1234)
        for metric in (cie76_distance, cie94_distance):
            for n in (2, 3, 5, 16):
                for _ in range(40):
                    pal = rng.uniform([0, -100, -100], [100, 100, 100], size=(n, 3)).astype(
                        np.float32
                    )
                    goal = rng.uniform([0, -100, -100], [100, 100, 100])
                    match = nearest_pair(goal, pal, metric)
                    self.assertNotEqual(match.closest, match.second)
                    self.assertLessEqual(match.d1, match.d2)
                    for i in range(n):
                        if i in (match.closest, match.second):
                            continue
                        self.assertLessEqual(match.d2, metric(goal, pal[i]))

    def test_needs_two_entries(self):
        with self.assertRaises(ConfigurationError):
            nearest_pair((0.0, 0.0, 0.0), lab([[0, 0, 0]]), cie76_distance)


class TestNearestPairs(unittest.TestCase):
    """The vectorised search agrees with the scalar loop, ties included."""

    def _check(self, samples, pal):
        for metric, distance in (("cie76", cie76_distance), ("cie94", cie94_distance)):
            closest, second, d1, d2 = nearest_pairs(samples, pal, resolve_distance(metric))
            for k, goal in enumerate(samples.tolist()):
                match = nearest_pair(goal, pal.tolist(), distance)
                self.assertEqual((int(closest[k]), int(second[k])), (match.closest, match.second))
                self.assertEqual(float(d1[k]), match.d1)
                self.assertEqual(float(d2[k]), match.d2)

    def test_matches_scalar_search(self):
        rng = np.random.default_rng(77)
        for n in (2, 3, 7, 16):
            pal = rng.uniform([0, -100, -100], [100, 100, 100], size=(n, 3)).astype(np.float32)
            samples = rng.uniform([0, -100, -100], [100, 100, 100], size=(25, 3)).astype(
                np.float32
            )
            self._check(samples, pal)

    def test_matches_scalar_search_on_ties(self):
        # integer grid values give many equal distances
        rng = np.random.default_rng(5)
        pal = rng.integers(0, 4, size=(6, 3)).astype(np.float32) * 10
        samples = rng.integers(0, 4, size=(40, 3)).astype(np.float32) * 10
        self._check(samples, pal)

    def test_tie_prefers_lower_index(self):
        closest, second, d1, d2 = nearest_pairs(
            lab([[20, 0, 0]]),
            lab([[90, 0, 0], [10, 0, 0], [30, 0, 0], [10, 0, 0]]),
            cie76_matrix,
        )
        self.assertEqual((int(closest[0]), int(second[0])), (1, 2))
        self.assertEqual(float(d1[0]), float(d2[0]))

    def test_needs_two_entries(self):
        with self.assertRaises(ConfigurationError):
            nearest_pairs(lab([[0, 0, 0]]), lab([[0, 0, 0]]), cie76_matrix)


if __name__ == "__main__":
    unittest.main()
