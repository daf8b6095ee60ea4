"""
Configuration constants for the intent engine.

This module contains all tunable parameters for frame history, spatial
mapping, pattern matching, conflict resolution, and logging.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Final, Optional


# =============================================================================
# Detection Contract
# =============================================================================
HAND_LANDMARK_COUNT: Final[int] = 21  # MediaPipe 21-point hand model
MAX_HAND_INSTANCES: Final[int] = 4  # Hand indices 0-3
MAX_HEAD_INSTANCES: Final[int] = 2  # Head indices 0-1

# =============================================================================
# Frame History
# =============================================================================
FRAME_HISTORY_MAX_FRAMES: Final[int] = 300  # ~10s at 30 fps

# =============================================================================
# Spatial Grid
# =============================================================================
DEFAULT_GRID_COLS: Final[int] = 8  # Engine grid when nothing is configured
DEFAULT_GRID_ROWS: Final[int] = 6
DEFAULT_HYSTERESIS_THRESHOLD: Final[float] = 0.1  # Normalized distance from stable cell center

# Standard resolutions for spatial hashing
GRID_PRESET_COARSE: Final[tuple[int, int]] = (6, 4)
GRID_PRESET_MEDIUM: Final[tuple[int, int]] = (12, 8)
GRID_PRESET_FINE: Final[tuple[int, int]] = (24, 16)

# =============================================================================
# Pattern Matching
# =============================================================================
DEFAULT_GESTURE_CONFIDENCE: Final[float] = 0.7  # Used when a gesture has no calibration row
FALLBACK_PINCH_MIN_THRESHOLD: Final[float] = 0.05
FALLBACK_PINCH_THRESHOLD: Final[float] = 0.07  # Used when a finger has no calibration row
FALLBACK_PINCH_RELAXED_THRESHOLD: Final[float] = 0.1
FALLBACK_PINCH_RANGE: Final[float] = 0.3  # Distance range assumed by normalization
CALIBRATION_TABLE_VERSION: Final[int] = 1
CALIBRATION_FILENAME: Final[str] = "calibration.json"

# =============================================================================
# Example Intent Timing (ms)
# =============================================================================
EXAMPLE_MIN_DURATION_MS: Final[float] = 100.0
EXAMPLE_MAX_GAP_MS: Final[float] = 200.0

# Logging
LOG_FILENAME: Final[str] = "intent_engine.log"
LOG_DIRNAME: Final[str] = "logs"  # Relative to the working directory
LOG_DIR_ENV_VAR: Final[str] = "INTENT_ENGINE_LOG_DIR"
LOG_MAX_BYTES: Final[int] = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT: Final[int] = 3

# Exit codes
EXIT_SUCCESS: Final[int] = 0
EXIT_CONFIG_ERROR: Final[int] = 1
EXIT_RECORDING_ERROR: Final[int] = 2
EXIT_RUNTIME_ERROR: Final[int] = 3


@dataclass(frozen=True)
class GridConfig:
    """Grid dimensions in cells."""

    cols: int = DEFAULT_GRID_COLS
    rows: int = DEFAULT_GRID_ROWS


@dataclass(frozen=True)
class HysteresisConfig:
    """Sticky-cell threshold (0-1, normalized distance)."""

    threshold: float = DEFAULT_HYSTERESIS_THRESHOLD


@dataclass(frozen=True)
class SpatialConfig:
    """Grid plus optional hysteresis."""

    grid: GridConfig = field(default_factory=GridConfig)
    hysteresis: Optional[HysteresisConfig] = field(default_factory=HysteresisConfig)


@dataclass(frozen=True)
class TemporalConfig:
    """Per-intent timing (milliseconds). None means not configured."""

    min_duration: Optional[float] = None  # Must hold this long before Start
    max_gap: Optional[float] = None  # Grace period for detection dropouts


@dataclass(frozen=True)
class TemporalDefaults:
    """Engine-wide fallbacks for intents that leave a timing field unset."""

    default_min_duration: Optional[float] = None
    default_max_gap: Optional[float] = None


@dataclass(frozen=True)
class ResolutionConfig:
    """Conflict-resolution settings declared by an intent."""

    group: Optional[str] = None
    priority: float = 0


@dataclass(frozen=True)
class GroupLimit:
    """Per-group selection limit and strategy."""

    max: int = 1
    strategy: str = "winner-takes-all"


GRID_PRESETS: Final[dict[str, GridConfig]] = {
    "coarse": GridConfig(*GRID_PRESET_COARSE),
    "medium": GridConfig(*GRID_PRESET_MEDIUM),
    "fine": GridConfig(*GRID_PRESET_FINE),
}


@dataclass(frozen=True)
class EngineConfig:
    """
    Container for engine-wide settings.

    Attributes:
        history_size: Frame history capacity.
        spatial: Default grid and hysteresis for intents without their own.
        temporal: Fallback timing for intents without their own.
        max_concurrent_intents: Global cap on selected instances (None = unbounded).
        group_limits: Per resolution group limits keyed by group name.
        custom_resolver: Optional function over the matching intents; bypasses grouping.
    """

    history_size: int = FRAME_HISTORY_MAX_FRAMES
    spatial: SpatialConfig = field(default_factory=SpatialConfig)
    temporal: TemporalDefaults = field(default_factory=TemporalDefaults)
    max_concurrent_intents: Optional[int] = None
    group_limits: dict[str, GroupLimit] = field(default_factory=dict)
    custom_resolver: Optional[Callable[[list[Any]], list[Any]]] = None
