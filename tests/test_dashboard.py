"""Smoke tests for ui.dashboard -- rendering must not crash on edge cases."""

import io
import unittest
from unittest import mock

from rich.console import Console

from meter.catalog import get_target
from meter.engine import ProgressEvent
from meter.guidance import generate_guidance
from meter.stats import StatsRecord, calculate_stats
from ui import dashboard
from ui.dashboard import ProgressDisplay, create_histogram, quality_badge


def _recording_console():
    return Console(file=io.StringIO(), record=True, width=120, force_terminal=False)


class TestHistogram(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(create_histogram([]), "No data")

    def test_flat(self):
        self.assertEqual(create_histogram([5.0, 5.0, 5.0]), "▁▁▁")

    def test_range(self):
        bars = create_histogram([0.0, 100.0])
        self.assertEqual(bars, "▁█")


class TestQualityBadge(unittest.TestCase):
    def test_label_and_color(self):
        self.assertIn("excellent", quality_badge(1.0))
        self.assertIn("green", quality_badge(1.0))
        self.assertIn("poor", quality_badge(100.0))

    def test_total_loss_is_poor(self):
        badge = quality_badge(0.0, packet_loss=1.0)
        self.assertIn("poor", badge)
        self.assertNotIn("excellent", badge)

    def test_partial_loss_keeps_jitter_tier(self):
        self.assertIn("excellent", quality_badge(1.0, packet_loss=0.5))


class TestPrinting(unittest.TestCase):
    def test_result_without_samples(self):
        con = _recording_console()
        with mock.patch.object(dashboard, "console", con):
            dashboard.print_result(get_target("tidal"), StatsRecord.worst_case(), [])
        text = con.export_text()
        self.assertIn("100.0%", text)
        self.assertIn("poor", text)
        self.assertNotIn("excellent", text)

    def test_result_with_samples(self):
        con = _recording_console()
        stats = calculate_stats([10.0, 20.0, 15.0], timeout_ms=5000)
        with mock.patch.object(dashboard, "console", con):
            dashboard.print_result(get_target("qobuz"), stats, [10.0, 20.0, 15.0])
        text = con.export_text()
        self.assertIn("RTT Over Time", text)
        self.assertIn("Qobuz", text)

    def test_guidance(self):
        con = _recording_console()
        stats = StatsRecord(avg_jitter=400, max_jitter=2500, packet_loss=0.01, avg_rtt=80, mos=1.0)
        with mock.patch.object(dashboard, "console", con):
            dashboard.print_guidance(generate_guidance(stats, get_target("tidal")))
        text = con.export_text()
        self.assertIn("CRITICAL", text)
        self.assertIn("3750 ms", text)
        self.assertIn("Roon", text)

    def test_all_results(self):
        con = _recording_console()
        results = [
            (get_target("qobuz"), calculate_stats([10.0, 12.0], timeout_ms=5000)),
            (get_target("tidal"), StatsRecord.worst_case()),
        ]
        with mock.patch.object(dashboard, "console", con):
            dashboard.print_all_results(results)
        text = con.export_text()
        self.assertIn("Qobuz", text)
        self.assertIn("TIDAL", text)


class TestProgressDisplay(unittest.TestCase):
    def test_one_task_per_target(self):
        display = ProgressDisplay()
        display.progress = mock.MagicMock()
        display.progress.add_task.side_effect = [1, 2]

        display.start()
        display.update(get_target("tidal"), ProgressEvent(10.0, 0.0, 1, 3))
        display.update(get_target("tidal"), ProgressEvent(12.0, 0.1, 2, 3))
        display.update(get_target("qobuz"), ProgressEvent(9.0, 0.0, 1, 3))
        display.stop()

        self.assertEqual(display.progress.add_task.call_count, 2)
        self.assertEqual(display.progress.update.call_count, 3)
        display.progress.stop.assert_called_once()


if __name__ == "__main__":
    unittest.main()
