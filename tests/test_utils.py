"""Tests for jellyfish_metrics.utils."""

import math
import unittest

from jellyfish_metrics.utils import exponential_buckets, parse_type, to_seconds


class TestToSeconds(unittest.TestCase):

    def test_converts_milliseconds(self):
        self.assertEqual(to_seconds(3500), 3.5)
        self.assertEqual(to_seconds(1000), 1.0)
        self.assertEqual(to_seconds(1234), 1.234)

    def test_rounds_to_four_decimals(self):
        self.assertEqual(to_seconds(1.23456), 0.0012)
        self.assertEqual(to_seconds(12.34), 0.0123)

    def test_accepts_negative_and_zero(self):
        self.assertEqual(to_seconds(0), 0.0)
        self.assertEqual(to_seconds(-2500), -2.5)


class TestExponentialBuckets(unittest.TestCase):

    def test_doubling(self):
        self.assertEqual(exponential_buckets(1, 2, 5), [1, 2, 4, 8, 16])

    def test_count_and_ordering(self):
        buckets = exponential_buckets(4, math.sqrt(2), 28)
        self.assertEqual(len(buckets), 28)
        self.assertEqual(buckets[0], 4)
        self.assertEqual(buckets, sorted(buckets))
        self.assertAlmostEqual(buckets[2], 8)

    def test_rejects_bad_arguments(self):
        with self.assertRaises(ValueError):
            exponential_buckets(0, 2, 3)
        with self.assertRaises(ValueError):
            exponential_buckets(1, 1, 3)
        with self.assertRaises(ValueError):
            exponential_buckets(1, 2, 0)


class TestParseType(unittest.TestCase):

    def test_strips_version(self):
        self.assertEqual(parse_type({"type": "user@1.0.0"}), "user")
        self.assertEqual(parse_type({"type": "X@1.0.0"}), "X")

    def test_type_without_version(self):
        self.assertEqual(parse_type({"type": "card"}), "card")

    def test_missing_or_invalid_type(self):
        self.assertEqual(parse_type({}), "unknown")
        self.assertEqual(parse_type({"type": 42}), "unknown")
        self.assertEqual(parse_type({"type": None}), "unknown")

    def test_missing_contract(self):
        self.assertEqual(parse_type(None), "unknown")
        self.assertEqual(parse_type("user@1.0.0"), "unknown")


if __name__ == "__main__":
    unittest.main()
