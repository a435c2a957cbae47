"""Tests for client.latency -- the /ping prober."""

import unittest

from client.api import Endpoint
from client.errors import TransportError
from client.latency import LatencyProber, LatencyResult

from fakes import FakeClock, FakeLink, FakeSession


ENDPOINT = Endpoint.from_url("http://speed.test:8080")


class TestLatencyResult(unittest.TestCase):
    def test_calculate_trimmed(self):
        r = LatencyResult(samples=[10.0, 20.0, 30.0, 25.0, 15.0])
        r.calculate()
        self.assertAlmostEqual(r.latency_ms, 20.0)
        self.assertAlmostEqual(r.min_ms, 10.0)
        self.assertAlmostEqual(r.max_ms, 30.0)
        self.assertGreater(r.jitter_ms, 0)

    def test_empty(self):
        r = LatencyResult()
        r.calculate()
        self.assertEqual(r.latency_ms, 0.0)

    def test_to_dict(self):
        r = LatencyResult(samples=[5.0, 10.0])
        r.calculate()
        d = r.to_dict()
        self.assertEqual(d["count"], 2)
        self.assertAlmostEqual(d["latency_ms"], 7.5)
        self.assertIn("jitter_ms", d)


class TestLatencyProber(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.clock = FakeClock()
        latencies = [18.0, 22.0, 20.0, 19.0, 21.0, 45.0, 20.0]
        self.session = FakeSession(FakeLink(self.clock, latencies_ms=latencies))

    async def test_seven_samples_trimmed(self):
        prober = LatencyProber(ENDPOINT, ping_count=7, clock=self.clock)
        result = await prober.probe(self.session)
        self.assertEqual(len(result.samples), 7)
        # 18 and 45 are trimmed -> mean(22, 20, 19, 21, 20) = 20.4
        self.assertAlmostEqual(result.latency_ms, 20.4, places=3)
        self.assertAlmostEqual(result.latency_ms, 20.0, delta=5.0)

    async def test_each_sample_published(self):
        seen = []
        prober = LatencyProber(ENDPOINT, ping_count=5, clock=self.clock)
        prober.on_sample = seen.append
        await prober.probe(self.session)
        self.assertEqual(len(seen), 5)
        self.assertAlmostEqual(seen[0], 18.0, places=3)

    async def test_requests_are_sequential_pings(self):
        prober = LatencyProber(ENDPOINT, ping_count=5, clock=self.clock)
        await prober.probe(self.session)
        self.assertEqual([c[1] for c in self.session.calls], [ENDPOINT.ping_url] * 5)

    async def test_failure_aborts_probe(self):
        self.session.fail_on = "/ping"
        self.session.fail_after = 3
        seen = []
        prober = LatencyProber(ENDPOINT, ping_count=7, clock=self.clock)
        prober.on_sample = seen.append
        with self.assertRaises(TransportError):
            await prober.probe(self.session)
        self.assertEqual(len(seen), 3)

    async def test_bad_status_aborts_probe(self):
        self.session.status = 404
        prober = LatencyProber(ENDPOINT, ping_count=5, clock=self.clock)
        with self.assertRaises(TransportError):
            await prober.probe(self.session)

    def test_too_few_pings_rejected(self):
        with self.assertRaises(ValueError):
            LatencyProber(ENDPOINT, ping_count=3)


if __name__ == "__main__":
    unittest.main()
