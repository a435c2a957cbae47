"""Tests for ui.dashboard -- histogram and session rendering."""

import unittest

from rich.console import Console

from client.session import MeasurementSession, Stage
from ui.dashboard import LiveSessionDisplay, create_histogram, render_session, stage_text


def _render(renderable) -> str:
    con = Console(record=True, width=80, color_system=None)
    con.print(renderable)
    return con.export_text()


class TestHistogram(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(create_histogram([]), "No data")

    def test_flat(self):
        self.assertEqual(create_histogram([5.0, 5.0, 5.0]), "▁▁▁")

    def test_extremes(self):
        bars = create_histogram([1.0, 2.0, 3.0])
        self.assertEqual(len(bars), 3)
        self.assertEqual(bars[0], "▁")
        self.assertEqual(bars[-1], "█")


class TestRenderSession(unittest.TestCase):
    def test_stage_text(self):
        self.assertEqual(stage_text(MeasurementSession()), "Ready to test")
        self.assertEqual(stage_text(MeasurementSession(stage=Stage.ERROR, error="Ping failed: x")), "Ping failed: x")
        self.assertEqual(stage_text(MeasurementSession(stage=Stage.ERROR)), "Test failed")

    def test_table_shows_metrics(self):
        text = _render(render_session(
            MeasurementSession(stage=Stage.UPLOAD, ping_ms=20.4, download_mbps=94.1, upload_mbps=12.0)
        ))
        self.assertIn("Testing upload speed", text)
        self.assertIn("75%", text)
        self.assertIn("94.1", text)

    def test_live_display_tracks_last_snapshot(self):
        display = LiveSessionDisplay()
        # not started: updates are recorded but nothing is drawn
        display(MeasurementSession(stage=Stage.PING, ping_ms=19.0))
        self.assertEqual(display.last.stage, Stage.PING)
        display.stop()


if __name__ == "__main__":
    unittest.main()
