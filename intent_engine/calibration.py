"""
Calibration tables for contact and gesture matching.

Per-finger pinch distances and per-gesture confidence thresholds derived from
recorded sessions. The tables live in a versioned JSON file so they can be
replaced without code changes; matching functions take the table as a
parameter and fall back to the bundled default.
"""

import json
from dataclasses import dataclass, field, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from .logger import get_logger
from .config import (
    CALIBRATION_FILENAME,
    CALIBRATION_TABLE_VERSION,
    DEFAULT_GESTURE_CONFIDENCE,
    FALLBACK_PINCH_MIN_THRESHOLD,
    FALLBACK_PINCH_RANGE,
    FALLBACK_PINCH_RELAXED_THRESHOLD,
    FALLBACK_PINCH_THRESHOLD,
)

logger = get_logger("Calibration")

DEFAULT_CALIBRATION_PATH = Path(__file__).parent / "data" / CALIBRATION_FILENAME

PINCH_LEVELS = ("min", "recommended", "relaxed")
GESTURE_STRICTNESS = ("min", "recommended", "high")


class CalibrationLoadError(Exception):
    """Raised when a calibration table cannot be read or validated."""
    pass


@dataclass(frozen=True)
class PinchCalibration:
    """Observed pinch distances and thresholds for one finger."""

    finger: str
    min_threshold: float
    recommended_threshold: float
    relaxed_threshold: float
    observed_min: float = 0.0
    observed_max: float = FALLBACK_PINCH_RANGE
    observed_mean: float = 0.0
    observed_std_dev: float = 0.0
    notes: str = ""

    @classmethod
    def from_dict(cls, finger: str, data: dict[str, Any]) -> "PinchCalibration":
        """
        Create PinchCalibration from dictionary with camelCase keys.

        Args:
            finger: Finger name the row belongs to.
            data: Dictionary with minThreshold, recommendedThreshold, relaxedThreshold, observed* keys.

        Returns:
            PinchCalibration instance.
        """
        return cls(
            finger=finger,
            min_threshold=float(data["minThreshold"]),
            recommended_threshold=float(data["recommendedThreshold"]),
            relaxed_threshold=float(data["relaxedThreshold"]),
            observed_min=float(data.get("observedMin", 0.0)),
            observed_max=float(data.get("observedMax", FALLBACK_PINCH_RANGE)),
            observed_mean=float(data.get("observedMean", 0.0)),
            observed_std_dev=float(data.get("observedStdDev", 0.0)),
            notes=str(data.get("notes", ""))
        )


@dataclass(frozen=True)
class GestureCalibration:
    """Observed confidence range and thresholds for one gesture label."""

    gesture: str
    min_threshold: float
    recommended_threshold: float
    high_quality_threshold: float
    observed_min: float = 0.0
    observed_max: float = 1.0
    observed_mean: float = 0.0
    observed_std_dev: float = 0.0
    notes: str = ""

    @classmethod
    def from_dict(cls, gesture: str, data: dict[str, Any]) -> "GestureCalibration":
        """Create from JSON dictionary with camelCase keys."""
        return cls(
            gesture=gesture,
            min_threshold=float(data["minThreshold"]),
            recommended_threshold=float(data["recommendedThreshold"]),
            high_quality_threshold=float(data["highQualityThreshold"]),
            observed_min=float(data.get("observedMin", 0.0)),
            observed_max=float(data.get("observedMax", 1.0)),
            observed_mean=float(data.get("observedMean", 0.0)),
            observed_std_dev=float(data.get("observedStdDev", 0.0)),
            notes=str(data.get("notes", ""))
        )


@dataclass(frozen=True)
class NormalizedConfidence:
    """Gesture confidence remapped onto the gesture's observed range."""

    raw: float
    normalized: float
    quality: str  # "low", "medium", "high", "excellent"
    meets_threshold: bool


def _confidence_quality(confidence: float, recommended: float) -> str:
    if confidence >= recommended + 0.15:
        return "excellent"
    if confidence >= recommended + 0.05:
        return "high"
    if confidence >= recommended:
        return "medium"
    return "low"


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class CalibrationTable:
    """
    Versioned lookup table consumed by the matchers.

    Attributes:
        version: Table format version.
        pinch: Rows keyed by finger name.
        gesture: Rows keyed by gesture label.
    """

    version: int = CALIBRATION_TABLE_VERSION
    pinch: dict[str, PinchCalibration] = field(default_factory=dict)
    gesture: dict[str, GestureCalibration] = field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Pinch thresholds
    # -------------------------------------------------------------------------

    def pinch_threshold(self, finger: str, level: str = "recommended") -> float:
        """
        Get a pinch threshold for a finger.

        Args:
            finger: Finger name.
            level: "min", "recommended" or "relaxed".

        Returns:
            Threshold distance (fallback values for uncalibrated fingers).
        """
        return self.all_pinch_thresholds(finger).get(level, FALLBACK_PINCH_THRESHOLD)

    def all_pinch_thresholds(self, finger: str) -> dict[str, float]:
        """Get min, recommended and relaxed thresholds for a finger."""
        row = self.pinch.get(finger)
        if row is None:
            return {
                "min": FALLBACK_PINCH_MIN_THRESHOLD,
                "recommended": FALLBACK_PINCH_THRESHOLD,
                "relaxed": FALLBACK_PINCH_RELAXED_THRESHOLD,
            }
        return {
            "min": row.min_threshold,
            "recommended": row.recommended_threshold,
            "relaxed": row.relaxed_threshold,
        }

    def meets_pinch_threshold(self, finger: str, distance: float, threshold: Optional[float] = None) -> bool:
        """Check whether a thumb-finger distance counts as contact (strictly below threshold)."""
        effective = threshold if threshold is not None else self.pinch_threshold(finger)
        return distance < effective

    def pinch_quality(self, finger: str, distance: float) -> str:
        """
        Grade a pinch distance.

        Returns:
            "tight", "normal", "loose" or "none".
        """
        row = self.pinch.get(finger)
        if row is None:
            if distance <= FALLBACK_PINCH_MIN_THRESHOLD:
                return "tight"
            return "normal" if distance <= FALLBACK_PINCH_RELAXED_THRESHOLD else "none"

        if distance <= row.min_threshold:
            return "tight"
        if distance <= row.recommended_threshold:
            return "normal"
        if distance <= row.relaxed_threshold:
            return "loose"
        return "none"

    def normalize_pinch_distance(self, finger: str, distance: float) -> float:
        """Map a distance onto 0 (tight pinch) .. 1 (fingers apart)."""
        row = self.pinch.get(finger)
        if row is None or row.observed_max <= row.observed_min:
            return _clamp01(distance / FALLBACK_PINCH_RANGE)
        return _clamp01((distance - row.observed_min) / (row.observed_max - row.observed_min))

    def with_pinch_overrides(self, **thresholds: float) -> "CalibrationTable":
        """
        Return a copy whose recommended pinch thresholds are replaced.

        Args:
            **thresholds: finger name -> recommended threshold.

        Returns:
            New CalibrationTable.
        """
        rows = dict(self.pinch)
        for finger, value in thresholds.items():
            base = rows.get(finger) or PinchCalibration(
                finger=finger,
                min_threshold=FALLBACK_PINCH_MIN_THRESHOLD,
                recommended_threshold=FALLBACK_PINCH_THRESHOLD,
                relaxed_threshold=FALLBACK_PINCH_RELAXED_THRESHOLD
            )
            rows[finger] = replace(base, recommended_threshold=float(value))
        return replace(self, pinch=rows)

    # -------------------------------------------------------------------------
    # Gesture thresholds
    # -------------------------------------------------------------------------

    def gesture_threshold(self, gesture: str, strictness: str = "recommended") -> float:
        """
        Get the confidence threshold for a gesture label.

        Args:
            gesture: Gesture label.
            strictness: "min", "recommended" or "high".

        Returns:
            Threshold (DEFAULT_GESTURE_CONFIDENCE for uncalibrated gestures).
        """
        row = self.gesture.get(gesture)
        if row is None:
            return DEFAULT_GESTURE_CONFIDENCE
        if strictness == "min":
            return row.min_threshold
        if strictness == "high":
            return row.high_quality_threshold
        return row.recommended_threshold

    def meets_gesture_threshold(self, gesture: str, confidence: float, strictness: str = "recommended") -> bool:
        return confidence >= self.gesture_threshold(gesture, strictness)

    def normalize_gesture_confidence(self, gesture: str, confidence: float) -> NormalizedConfidence:
        """Remap a raw recognizer score onto the gesture's observed range."""
        row = self.gesture.get(gesture)
        if row is None:
            return NormalizedConfidence(
                raw=confidence,
                normalized=confidence,
                quality=_confidence_quality(confidence, confidence),
                meets_threshold=confidence >= DEFAULT_GESTURE_CONFIDENCE
            )

        spread = row.observed_max - row.observed_min
        normalized = _clamp01((confidence - row.observed_min) / spread) if spread > 0 else 1.0
        return NormalizedConfidence(
            raw=confidence,
            normalized=normalized,
            quality=_confidence_quality(confidence, row.recommended_threshold),
            meets_threshold=confidence >= row.recommended_threshold
        )


def load_calibration_table(table_path: str | Path) -> CalibrationTable:
    """
    Load and validate a calibration table from a JSON file.

    Args:
        table_path: Path to the JSON table.

    Returns:
        Validated CalibrationTable instance.

    Raises:
        CalibrationLoadError: If file cannot be read or validation fails.
    """
    path = Path(table_path)
    logger.debug(f"Loading calibration table from: {path}")

    if not path.exists():
        raise CalibrationLoadError(f"Calibration file not found: {path}")

    if not path.is_file():
        raise CalibrationLoadError(f"Calibration path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise CalibrationLoadError(f"Invalid JSON in calibration table: {e}")
    except OSError as e:
        raise CalibrationLoadError(f"Cannot read calibration file: {e}")

    return parse_calibration_table(data)


def parse_calibration_table(data: dict[str, Any]) -> CalibrationTable:
    """
    Parse and validate calibration data from dictionary.

    Raises:
        CalibrationLoadError: If the version is unsupported or a row is incomplete.
    """
    if not isinstance(data, dict):
        raise CalibrationLoadError("Calibration table must be a JSON object")

    version = data.get("version")
    if version != CALIBRATION_TABLE_VERSION:
        raise CalibrationLoadError(
            f"Unsupported calibration table version: {version!r} (expected {CALIBRATION_TABLE_VERSION})"
        )

    pinch: dict[str, PinchCalibration] = {}
    for finger, row in (data.get("pinch") or {}).items():
        try:
            pinch[finger] = PinchCalibration.from_dict(finger, row)
        except (KeyError, TypeError, ValueError) as e:
            raise CalibrationLoadError(f"Invalid pinch calibration for '{finger}': {e}")

    gesture: dict[str, GestureCalibration] = {}
    for label, row in (data.get("gesture") or {}).items():
        try:
            gesture[label] = GestureCalibration.from_dict(label, row)
        except (KeyError, TypeError, ValueError) as e:
            raise CalibrationLoadError(f"Invalid gesture calibration for '{label}': {e}")

    logger.debug(f"Calibration table v{version}: {len(pinch)} fingers, {len(gesture)} gestures")
    return CalibrationTable(version=version, pinch=pinch, gesture=gesture)


@lru_cache(maxsize=1)
def default_calibration_table() -> CalibrationTable:
    """Load the bundled calibration table once."""
    return load_calibration_table(DEFAULT_CALIBRATION_PATH)
