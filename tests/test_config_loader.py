import json
import tempfile
import unittest
from pathlib import Path

from intent_engine.config import GridConfig, GroupLimit, HysteresisConfig
from intent_engine.config_loader import ConfigLoadError, load_engine_config, parse_engine_config


class TestParseEngineConfig(unittest.TestCase):
    def setUp(self):
        self.data = {
            "historySize": 30,
            "spatial": {"grid": {"cols": 12, "rows": 8}, "hysteresis": {"threshold": 0.15}},
            "temporal": {"defaultMinDuration": 100, "defaultMaxGap": 200},
            "maxConcurrentIntents": 4,
            "groupLimits": {"spawn": {"max": 2, "strategy": "top-k"}},
        }

    def test_full_config(self):
        config = parse_engine_config(self.data)
        self.assertEqual(config.history_size, 30)
        self.assertEqual(config.spatial.grid, GridConfig(cols=12, rows=8))
        self.assertEqual(config.spatial.hysteresis, HysteresisConfig(threshold=0.15))
        self.assertEqual(config.temporal.default_min_duration, 100.0)
        self.assertEqual(config.temporal.default_max_gap, 200.0)
        self.assertEqual(config.max_concurrent_intents, 4)
        self.assertEqual(config.group_limits, {"spawn": GroupLimit(max=2, strategy="top-k")})

    def test_empty_config_uses_defaults(self):
        config = parse_engine_config({})
        self.assertEqual(config.history_size, 300)
        self.assertEqual(config.spatial.grid, GridConfig(cols=8, rows=6))
        self.assertEqual(config.spatial.hysteresis.threshold, 0.1)
        self.assertIsNone(config.temporal.default_min_duration)
        self.assertIsNone(config.max_concurrent_intents)
        self.assertEqual(config.group_limits, {})

    def test_null_hysteresis_disables_it(self):
        config = parse_engine_config({"spatial": {"hysteresis": None}})
        self.assertIsNone(config.spatial.hysteresis)

    def test_strategy_defaults_to_winner_takes_all(self):
        config = parse_engine_config({"groupLimits": {"vortex": {}}})
        self.assertEqual(config.group_limits["vortex"], GroupLimit(max=1, strategy="winner-takes-all"))

    def test_invalid_values(self):
        bad = [
            [],
            {"historySize": 0},
            {"historySize": "30"},
            {"spatial": {"grid": {"cols": 0, "rows": 6}}},
            {"spatial": {"grid": {"cols": 8, "rows": 2.5}}},
            {"spatial": {"hysteresis": {"threshold": 1.5}}},
            {"spatial": {"hysteresis": {"threshold": True}}},
            {"temporal": {"defaultMinDuration": -1}},
            {"maxConcurrentIntents": 0},
            {"groupLimits": {"spawn": {"max": 2, "strategy": "random"}}},
            {"groupLimits": {"spawn": {"max": 0, "strategy": "top-k"}}},
            {"groupLimits": ["spawn"]},
        ]
        for data in bad:
            with self.subTest(data=data):
                with self.assertRaises(ConfigLoadError):
                    parse_engine_config(data)


class TestLoadEngineConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_load_file(self):
        path = self.dir / "engine.json"
        path.write_text(json.dumps({"historySize": 60}), encoding="utf-8")
        self.assertEqual(load_engine_config(path).history_size, 60)

    def test_missing_file(self):
        with self.assertRaises(ConfigLoadError):
            load_engine_config(self.dir / "nope.json")

    def test_directory(self):
        with self.assertRaises(ConfigLoadError):
            load_engine_config(self.dir)

    def test_invalid_json(self):
        path = self.dir / "engine.json"
        path.write_text("{historySize: 60", encoding="utf-8")
        with self.assertRaises(ConfigLoadError):
            load_engine_config(str(path))


if __name__ == '__main__':
    unittest.main()
