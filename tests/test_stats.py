"""Unit tests for client.stats -- pure functions."""

import unittest

from client.stats import (
    bytes_to_mbps,
    calculate_jitter,
    format_bytes,
    format_latency,
    format_speed,
    trimmed_mean,
)


class TestTrimmedMean(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(trimmed_mean([]), 0.0)

    def test_single(self):
        self.assertAlmostEqual(trimmed_mean([42.0]), 42.0)

    def test_two_samples_plain_mean(self):
        self.assertAlmostEqual(trimmed_mean([5, 1]), 3.0)

    def test_three_samples_keeps_middle(self):
        self.assertAlmostEqual(trimmed_mean([10, 20, 30]), 20.0)

    def test_order_irrelevant(self):
        self.assertAlmostEqual(trimmed_mean([30, 10, 20]), 20.0)

    def test_drops_one_min_and_one_max_only(self):
        # sorted: [1, 1, 5, 9, 9] -> [1, 5, 9] -> 5
        self.assertAlmostEqual(trimmed_mean([9, 1, 5, 1, 9]), 5.0)

    def test_outliers_removed(self):
        samples = [20.0, 21.0, 19.0, 20.0, 500.0, 0.1, 20.0]
        self.assertAlmostEqual(trimmed_mean(samples), 20.0)

    def test_accepts_generator(self):
        self.assertAlmostEqual(trimmed_mean(x for x in (1.0, 2.0, 3.0, 4.0)), 2.5)


class TestBytesToMbps(unittest.TestCase):
    def test_one_mebibyte_per_second(self):
        self.assertAlmostEqual(bytes_to_mbps(1_048_576, 1.0), 8.0)

    def test_zero_duration(self):
        self.assertEqual(bytes_to_mbps(123_456, 0), 0.0)

    def test_negative_duration(self):
        self.assertEqual(bytes_to_mbps(123_456, -1.0), 0.0)

    def test_zero_bytes(self):
        self.assertEqual(bytes_to_mbps(0, 2.0), 0.0)

    def test_ten_mbps(self):
        # 10 Mbps == 1.25 MiB/s
        self.assertAlmostEqual(bytes_to_mbps(1.25 * 1024 * 1024 * 4, 4.0), 10.0)


class TestCalculateJitter(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(calculate_jitter([]), 0.0)

    def test_single(self):
        self.assertEqual(calculate_jitter([10.0]), 0.0)

    def test_constant(self):
        self.assertAlmostEqual(calculate_jitter([5.0, 5.0, 5.0]), 0.0)

    def test_varying(self):
        # |15-10| + |10-15| + |20-10| = 5 + 5 + 10 = 20 / 3
        result = calculate_jitter([10.0, 15.0, 10.0, 20.0])
        self.assertAlmostEqual(result, 20.0 / 3, places=3)


class TestFormatting(unittest.TestCase):
    def test_speed_mbps(self):
        self.assertEqual(format_speed(50.0), "50.00 Mbps")

    def test_speed_gbps(self):
        self.assertEqual(format_speed(1500.0), "1.50 Gbps")

    def test_latency_ms(self):
        self.assertEqual(format_latency(25.3), "25.3 ms")

    def test_latency_seconds(self):
        self.assertEqual(format_latency(1500.0), "1.50 s")

    def test_bytes(self):
        self.assertEqual(format_bytes(512), "512 B")
        self.assertEqual(format_bytes(64 * 1024), "64.0 KiB")
        self.assertEqual(format_bytes(5 * 1024 * 1024), "5.0 MiB")


if __name__ == "__main__":
    unittest.main()
