#!/usr/bin/env python3
"""
Unit tests for the indexed priority queue
"""

import random
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from usv_nav.navigation import IndexedPriorityQueue


class TestIndexedPriorityQueue(unittest.TestCase):
    """Tests for IndexedPriorityQueue."""

    def setUp(self):
        self.pq = IndexedPriorityQueue()

    def test_empty(self):
        """Test empty queue."""
        self.assertEqual(len(self.pq), 0)
        self.assertFalse(self.pq)
        with self.assertRaises(IndexError):
            self.pq.pop()
        with self.assertRaises(IndexError):
            self.pq.peek()

    def test_pop_order(self):
        """Test items come out by increasing priority."""
        for key, priority in [((0, 0), 5.0), ((1, 0), 1.0), ((2, 0), 3.0), ((3, 0), 4.0)]:
            self.pq.push(key, priority)

        order = [self.pq.pop()[0] for _ in range(4)]
        self.assertEqual(order, [(1, 0), (2, 0), (3, 0), (0, 0)])

    def test_contains_and_priority(self):
        """Test membership and priority lookup."""
        self.pq.push('a', 2.0)
        self.assertIn('a', self.pq)
        self.assertNotIn('b', self.pq)
        self.assertEqual(self.pq.priority('a'), 2.0)

        self.pq.pop()
        self.assertNotIn('a', self.pq)
        with self.assertRaises(KeyError):
            self.pq.priority('a')

    def test_decrease_key(self):
        """Test lowering a priority moves the key to the front."""
        self.pq.push('a', 1.0)
        self.pq.push('b', 2.0)
        self.pq.push('c', 3.0)

        self.pq.decrease_key('c', 0.5)
        self.assertEqual(self.pq.peek(), ('c', 0.5))
        self.assertEqual(len(self.pq), 3)

    def test_decrease_key_rejects_increase(self):
        """Test decrease_key refuses a higher priority."""
        self.pq.push('a', 1.0)
        with self.assertRaises(ValueError):
            self.pq.decrease_key('a', 2.0)

    def test_push_existing_key(self):
        """Test pushing a queued key keeps the lower priority."""
        self.pq.push('a', 3.0)
        self.pq.push('a', 1.0)
        self.assertEqual(len(self.pq), 1)
        self.assertEqual(self.pq.priority('a'), 1.0)

        self.pq.push('a', 5.0)
        self.assertEqual(self.pq.priority('a'), 1.0)

    def test_clear(self):
        """Test clear empties the queue and the index."""
        self.pq.push('a', 1.0)
        self.pq.clear()
        self.assertEqual(len(self.pq), 0)
        self.assertNotIn('a', self.pq)

    def test_random_sequence(self):
        """Test heap order under random pushes and decreases."""
        rng = random.Random(3)
        expected = {}
        for i in range(200):
            priority = rng.uniform(0, 100)
            self.pq.push(i, priority)
            expected[i] = priority

        for i in rng.sample(range(200), 50):
            expected[i] -= rng.uniform(0, 10)
            self.pq.decrease_key(i, expected[i])

        popped = []
        while self.pq:
            key, priority = self.pq.pop()
            self.assertEqual(priority, expected[key])
            popped.append(priority)

        self.assertEqual(popped, sorted(expected.values()))


if __name__ == '__main__':
    unittest.main()
