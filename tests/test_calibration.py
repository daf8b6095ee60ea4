import json
import tempfile
import unittest
from pathlib import Path

from intent_engine.calibration import (
    CalibrationLoadError,
    default_calibration_table,
    load_calibration_table,
    parse_calibration_table,
)


class TestBundledCalibration(unittest.TestCase):
    def setUp(self):
        self.table = default_calibration_table()

    def test_pinch_thresholds(self):
        """Bundled per-finger thresholds."""
        self.assertEqual(self.table.all_pinch_thresholds("index"), {"min": 0.043, "recommended": 0.06, "relaxed": 0.08})
        self.assertEqual(self.table.pinch_threshold("ring"), 0.09)
        self.assertEqual(self.table.pinch_threshold("ring", "relaxed"), 0.12)

    def test_unknown_finger_falls_back(self):
        self.assertEqual(self.table.pinch_threshold("toe"), 0.07)

    def test_threshold_is_strict(self):
        """Contact requires a distance strictly below the threshold."""
        self.assertTrue(self.table.meets_pinch_threshold("index", 0.05, 0.06))
        self.assertFalse(self.table.meets_pinch_threshold("index", 0.09, 0.06))
        self.assertFalse(self.table.meets_pinch_threshold("index", 0.06, 0.06))
        self.assertTrue(self.table.meets_pinch_threshold("ring", 0.08))

    def test_pinch_quality(self):
        self.assertEqual(self.table.pinch_quality("index", 0.04), "tight")
        self.assertEqual(self.table.pinch_quality("index", 0.05), "normal")
        self.assertEqual(self.table.pinch_quality("index", 0.07), "loose")
        self.assertEqual(self.table.pinch_quality("index", 0.1), "none")

    def test_normalized_pinch_distance(self):
        """Distances map onto the observed range and clamp to [0, 1]."""
        self.assertEqual(self.table.normalize_pinch_distance("index", 0.0), 0.0)
        self.assertEqual(self.table.normalize_pinch_distance("index", 1.0), 1.0)

    def test_gesture_thresholds(self):
        self.assertEqual(self.table.gesture_threshold("Victory"), 0.75)
        self.assertEqual(self.table.gesture_threshold("Unknown_Gesture"), 0.7)
        self.assertTrue(self.table.meets_gesture_threshold("Victory", 0.8))

    def test_gesture_confidence_quality(self):
        self.assertEqual(self.table.normalize_gesture_confidence("Victory", 0.95).quality, "excellent")
        self.assertEqual(self.table.normalize_gesture_confidence("Victory", 0.76).quality, "medium")
        low = self.table.normalize_gesture_confidence("Victory", 0.5)
        self.assertEqual(low.quality, "low")
        self.assertFalse(low.meets_threshold)
        self.assertEqual(low.normalized, 0.0)

    def test_overrides_return_new_table(self):
        loose = self.table.with_pinch_overrides(index=0.1, thumb_toe=0.2)
        self.assertEqual(loose.pinch_threshold("index"), 0.1)
        self.assertEqual(loose.pinch_threshold("thumb_toe"), 0.2)
        self.assertEqual(self.table.pinch_threshold("index"), 0.06)


class TestCalibrationLoader(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def _write(self, content: str) -> Path:
        path = self.dir / "calibration.json"
        path.write_text(content, encoding="utf-8")
        return path

    def test_missing_file(self):
        with self.assertRaises(CalibrationLoadError):
            load_calibration_table(self.dir / "missing.json")

    def test_directory_path(self):
        with self.assertRaises(CalibrationLoadError):
            load_calibration_table(self.dir)

    def test_invalid_json(self):
        with self.assertRaises(CalibrationLoadError):
            load_calibration_table(self._write("{not json"))

    def test_wrong_version(self):
        with self.assertRaises(CalibrationLoadError):
            parse_calibration_table({"version": 2})

    def test_incomplete_row(self):
        with self.assertRaises(CalibrationLoadError):
            parse_calibration_table({"version": 1, "pinch": {"index": {"minThreshold": 0.04}}})

    def test_minimal_table(self):
        row = {"minThreshold": 0.02, "recommendedThreshold": 0.03, "relaxedThreshold": 0.04}
        table = load_calibration_table(self._write(json.dumps({"version": 1, "pinch": {"index": row}})))
        self.assertEqual(table.pinch_threshold("index"), 0.03)
        self.assertEqual(table.gesture, {})


if __name__ == '__main__':
    unittest.main()
