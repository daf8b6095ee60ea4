"""
Engine configuration loader.

Loads and validates JSON engine configuration files. Properties use camelCase
to match the detection adapter's JSON conventions. Missing sections fall back
to the defaults in config.py.

Example:
    {
        "historySize": 300,
        "spatial": {"grid": {"cols": 12, "rows": 8}, "hysteresis": {"threshold": 0.1}},
        "temporal": {"defaultMinDuration": 100, "defaultMaxGap": 200},
        "maxConcurrentIntents": 4,
        "groupLimits": {"spawn": {"max": 2, "strategy": "top-k"}}
    }
"""

import json
from numbers import Real
from pathlib import Path
from typing import Any, Optional

from .logger import get_logger
from .config import (
    DEFAULT_HYSTERESIS_THRESHOLD,
    FRAME_HISTORY_MAX_FRAMES,
    EngineConfig,
    GridConfig,
    GroupLimit,
    HysteresisConfig,
    SpatialConfig,
    TemporalDefaults,
)
from .keywords import Strategy

logger = get_logger("ConfigLoader")


class ConfigLoadError(Exception):
    """Raised when engine configuration loading or validation fails."""
    pass


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _require_positive_int(value: Any, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ConfigLoadError(f"{name} must be a positive integer, got {value!r}")
    return value


def _optional_duration(value: Any, name: str) -> Optional[float]:
    if value is None:
        return None
    if not _is_number(value) or value < 0:
        raise ConfigLoadError(f"{name} must be a non-negative number, got {value!r}")
    return float(value)


def load_engine_config(config_path: str | Path) -> EngineConfig:
    """
    Load and validate an engine configuration from a JSON file.

    Args:
        config_path: Path to the JSON configuration file.

    Returns:
        Validated EngineConfig instance.

    Raises:
        ConfigLoadError: If file cannot be read or validation fails.
    """
    path = Path(config_path)
    logger.info(f"Loading engine config from: {path}")

    if not path.exists():
        raise ConfigLoadError(f"Config file not found: {path}")

    if not path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"Invalid JSON in config: {e}")
    except OSError as e:
        raise ConfigLoadError(f"Cannot read config file: {e}")

    return parse_engine_config(data)


def _parse_spatial(data: Any) -> SpatialConfig:
    if data is None:
        return SpatialConfig()
    if not isinstance(data, dict):
        raise ConfigLoadError("spatial must be an object")

    grid_data = data.get("grid") or {}
    if not isinstance(grid_data, dict):
        raise ConfigLoadError("spatial.grid must be an object")
    default_grid = GridConfig()
    grid = GridConfig(
        cols=_require_positive_int(grid_data.get("cols", default_grid.cols), "spatial.grid.cols"),
        rows=_require_positive_int(grid_data.get("rows", default_grid.rows), "spatial.grid.rows")
    )

    # An explicit null disables hysteresis
    if "hysteresis" in data and data["hysteresis"] is None:
        return SpatialConfig(grid=grid, hysteresis=None)

    hysteresis_data = data.get("hysteresis") or {}
    if not isinstance(hysteresis_data, dict):
        raise ConfigLoadError("spatial.hysteresis must be an object or null")
    threshold = hysteresis_data.get("threshold", DEFAULT_HYSTERESIS_THRESHOLD)
    if not _is_number(threshold) or not 0.0 <= threshold <= 1.0:
        raise ConfigLoadError(f"spatial.hysteresis.threshold must be within [0, 1], got {threshold!r}")

    return SpatialConfig(grid=grid, hysteresis=HysteresisConfig(threshold=float(threshold)))


def _parse_temporal(data: Any) -> TemporalDefaults:
    if data is None:
        return TemporalDefaults()
    if not isinstance(data, dict):
        raise ConfigLoadError("temporal must be an object")
    return TemporalDefaults(
        default_min_duration=_optional_duration(data.get("defaultMinDuration"), "temporal.defaultMinDuration"),
        default_max_gap=_optional_duration(data.get("defaultMaxGap"), "temporal.defaultMaxGap")
    )


def _parse_group_limits(data: Any) -> dict[str, GroupLimit]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError("groupLimits must be an object keyed by group name")

    limits: dict[str, GroupLimit] = {}
    for group, limit_data in data.items():
        if not isinstance(limit_data, dict):
            raise ConfigLoadError(f"groupLimits.{group} must be an object")

        strategy = limit_data.get("strategy", Strategy.WINNER_TAKES_ALL.value)
        try:
            Strategy(strategy)
        except ValueError:
            valid = ", ".join(s.value for s in Strategy)
            raise ConfigLoadError(f"groupLimits.{group}.strategy '{strategy}' is not one of: {valid}")

        limits[group] = GroupLimit(
            max=_require_positive_int(limit_data.get("max", 1), f"groupLimits.{group}.max"),
            strategy=strategy
        )
    return limits


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """
    Parse and validate engine configuration from dictionary.

    Args:
        data: Dictionary with camelCase configuration properties.

    Returns:
        Validated EngineConfig instance.

    Raises:
        ConfigLoadError: If a value is missing its expected type or out of range.
    """
    if not isinstance(data, dict):
        raise ConfigLoadError("Engine config must be a JSON object")

    history_size = _require_positive_int(data.get("historySize", FRAME_HISTORY_MAX_FRAMES), "historySize")

    max_concurrent = data.get("maxConcurrentIntents")
    if max_concurrent is not None:
        max_concurrent = _require_positive_int(max_concurrent, "maxConcurrentIntents")

    config = EngineConfig(
        history_size=history_size,
        spatial=_parse_spatial(data.get("spatial")),
        temporal=_parse_temporal(data.get("temporal")),
        max_concurrent_intents=max_concurrent,
        group_limits=_parse_group_limits(data.get("groupLimits"))
    )

    logger.info(
        f"Engine config loaded: grid={config.spatial.grid.cols}x{config.spatial.grid.rows}, "
        f"history={config.history_size}, groups={list(config.group_limits)}"
    )
    logger.debug(f"  Hysteresis: {config.spatial.hysteresis}")
    logger.debug(f"  Temporal defaults: {config.temporal}")
    logger.debug(f"  Max concurrent intents: {config.max_concurrent_intents}")

    return config
