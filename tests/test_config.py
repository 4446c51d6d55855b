"""Tests for meter.config -- configuration persistence."""

import json
import os
import tempfile
import unittest
from unittest import mock

from meter.config import DEFAULTS, load_config, save_config
from meter.engine import MeasurementConfig


class TestConfigDefaults(unittest.TestCase):
    def test_defaults_have_required_keys(self):
        for key in ("sample_count", "warmup_count", "interval_ms", "timeout_ms",
                    "services", "log_level", "log_file"):
            self.assertIn(key, DEFAULTS)

    def test_defaults_build_valid_measurement_config(self):
        config = MeasurementConfig.from_mapping(DEFAULTS)
        config.validate()
        self.assertEqual(config.sample_count, 50)
        self.assertEqual(config.warmup_count, 5)
        self.assertEqual(config.smoothing_divisor, 16.0)


class _ConfigFileCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "sub", "config.json")
        patcher = mock.patch("meter.config.config_path", return_value=self.path)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self._tmp.cleanup)

    def _write(self, text):
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(text)


class TestLoadConfig(_ConfigFileCase):
    def test_load_defaults_when_missing(self):
        cfg = load_config()
        self.assertEqual(cfg["sample_count"], 50)
        self.assertEqual(cfg["services"], [])

    def test_returned_defaults_are_copies(self):
        load_config()["services"].append("tidal")
        self.assertEqual(DEFAULTS["services"], [])

    def test_corrupt_file_returns_defaults(self):
        self._write("NOT JSON")
        with self.assertLogs("meter.config", level="WARNING"):
            cfg = load_config()
        self.assertEqual(cfg["warmup_count"], 5)

    def test_non_dict_json_ignored(self):
        self._write("[1, 2, 3]")
        with self.assertLogs("meter.config", level="WARNING"):
            self.assertEqual(load_config(), DEFAULTS)

    def test_wrong_types_fall_back_to_defaults(self):
        self._write(json.dumps({
            "log_level": 10,
            "sample_count": "x",
            "warmup_count": True,
            "services": "tidal",
            "interval_ms": 250,
        }))
        with self.assertLogs("meter.config", level="WARNING") as logs:
            cfg = load_config()
        self.assertEqual(len(logs.records), 4)
        self.assertEqual(cfg["log_level"], "WARNING")
        self.assertEqual(cfg["sample_count"], 50)
        self.assertEqual(cfg["warmup_count"], 5)
        self.assertEqual(cfg["services"], [])
        self.assertEqual(cfg["interval_ms"], 250)

    def test_services_must_be_strings(self):
        self._write(json.dumps({"services": ["tidal", 3]}))
        with self.assertLogs("meter.config", level="WARNING"):
            self.assertEqual(load_config()["services"], [])

    def test_unknown_keys_dropped(self):
        self._write(json.dumps({"plan": 100, "timeout_ms": 800.5}))
        cfg = load_config()
        self.assertNotIn("plan", cfg)
        self.assertEqual(cfg["timeout_ms"], 800.5)


class TestSaveConfig(_ConfigFileCase):
    def test_save_and_load(self):
        returned = save_config({"sample_count": 20, "services": ["tidal"]})
        self.assertEqual(returned, self.path)
        cfg = load_config()
        self.assertEqual(cfg["sample_count"], 20)
        self.assertEqual(cfg["services"], ["tidal"])
        # Defaults still present
        self.assertEqual(cfg["timeout_ms"], 5000.0)

    def test_save_merges_with_existing(self):
        save_config({"log_level": "DEBUG"})
        save_config({"interval_ms": 250})
        cfg = load_config()
        self.assertEqual(cfg["log_level"], "DEBUG")
        self.assertEqual(cfg["interval_ms"], 250)

    def test_save_rejects_bad_values(self):
        with self.assertRaises(ValueError):
            save_config({"sample_count": "ten"})
        with self.assertRaises(ValueError):
            save_config({"colour": "blue"})
        self.assertFalse(os.path.exists(self.path))


class TestMeasurementConfig(unittest.TestCase):
    def test_from_mapping_overrides(self):
        config = MeasurementConfig.from_mapping({"sample_count": "10", "timeout_ms": 800})
        self.assertEqual(config.sample_count, 10)
        self.assertEqual(config.timeout_ms, 800.0)
        self.assertEqual(config.warmup_count, 5)

    def test_zero_samples_rejected(self):
        with self.assertRaises(ValueError):
            MeasurementConfig(sample_count=0).validate()

    def test_non_positive_timeout_rejected(self):
        with self.assertRaises(ValueError):
            MeasurementConfig(timeout_ms=0).validate()
        with self.assertRaises(ValueError):
            MeasurementConfig(timeout_ms=-5).validate()

    def test_negative_warmup_rejected(self):
        with self.assertRaises(ValueError):
            MeasurementConfig(warmup_count=-1).validate()

    def test_negative_interval_rejected(self):
        with self.assertRaises(ValueError):
            MeasurementConfig(interval_ms=-1).validate()

    def test_zero_warmup_and_interval_allowed(self):
        MeasurementConfig(warmup_count=0, interval_ms=0).validate()


if __name__ == "__main__":
    unittest.main()
