"""Unit tests for ui.output -- JSON creation and text formatting."""

import json
import unittest

from client.session import MeasurementSession, Stage
from ui.output import create_result_json, format_text_result


class TestCreateResultJson(unittest.TestCase):
    def _make(self, **overrides):
        defaults = dict(
            server_info={"url": "http://speed.test:8080"},
            session=MeasurementSession(
                stage=Stage.COMPLETE, ping_ms=20.4, download_mbps=94.123, upload_mbps=41.5
            ).to_dict(),
            latency_results={"latency_ms": 20.4, "jitter_ms": 1.5, "min_ms": 18.0,
                             "max_ms": 45.0, "count": 7, "samples": [18.0, 22.0]},
            download_results={"speed_mbps": 94.12, "bytes_total": 300_000_000, "duration_ms": 9000,
                              "passes": [{"speed_mbps": 94.0}]},
            upload_results={"speed_mbps": 41.5, "bytes_total": 150_000_000, "duration_ms": 9500,
                            "passes": []},
        )
        defaults.update(overrides)
        return create_result_json(**defaults)

    def test_basic_structure(self):
        r = self._make()
        for key in ("timestamp", "server", "stage", "ping", "download", "upload",
                    "latency", "downloadDetails", "uploadDetails"):
            self.assertIn(key, r)

    def test_headline_values(self):
        r = self._make()
        self.assertEqual(r["stage"], "complete")
        self.assertAlmostEqual(r["ping"], 20.4)
        self.assertAlmostEqual(r["download"], 94.12)
        self.assertAlmostEqual(r["upload"], 41.5)

    def test_latency_details(self):
        lat = self._make()["latency"]
        self.assertEqual(lat["count"], 7)
        self.assertAlmostEqual(lat["min"], 18.0)
        self.assertAlmostEqual(lat["max"], 45.0)
        self.assertAlmostEqual(lat["jitter"], 1.5)

    def test_direction_details(self):
        r = self._make()
        self.assertEqual(r["downloadDetails"]["bytes"], 300_000_000)
        self.assertEqual(len(r["downloadDetails"]["passes"]), 1)
        self.assertEqual(r["uploadDetails"]["duration_ms"], 9500)

    def test_missing_stage_results(self):
        r = self._make(latency_results=None, download_results=None, upload_results=None)
        self.assertEqual(r["latency"]["count"], 0)
        self.assertEqual(r["downloadDetails"]["passes"], [])
        self.assertEqual(r["uploadDetails"]["bytes"], 0)

    def test_error_included(self):
        session = MeasurementSession(stage=Stage.ERROR, ping_ms=20.0, error="Download failed: boom")
        r = self._make(session=session.to_dict())
        self.assertEqual(r["stage"], "error")
        self.assertEqual(r["error"], "Download failed: boom")
        self.assertAlmostEqual(r["ping"], 20.0)

    def test_no_error_key_on_success(self):
        self.assertNotIn("error", self._make())

    def test_settings(self):
        self.assertNotIn("settings", self._make())
        r = self._make(settings={"passes": 3})
        self.assertEqual(r["settings"], {"passes": 3})

    def test_serialisable(self):
        json.dumps(self._make())


class TestFormatTextResult(unittest.TestCase):
    def test_contains_values(self):
        text = format_text_result(20.4, 94.12, 41.5, "http://speed.test:8080")
        self.assertIn("Ping: 20.4 ms", text)
        self.assertIn("Download: 94.12 Mbps", text)
        self.assertIn("Upload: 41.50 Mbps", text)
        self.assertIn("http://speed.test:8080", text)

    def test_error(self):
        text = format_text_result(0, 0, 0, "http://x", error="Ping failed: refused")
        self.assertIn("Speedtest failed", text)
        self.assertIn("Ping failed: refused", text)
        self.assertNotIn("Download:", text)


if __name__ == "__main__":
    unittest.main()
