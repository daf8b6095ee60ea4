"""
Sticky grid cells.

A tracked entity keeps its stable cell until the position moves further than
the threshold from that cell's center, so jitter around a cell boundary does
not flip the reported cell back and forth.
"""

import math
from dataclasses import dataclass

from .config import GridConfig, HysteresisConfig
from .detection import Vector3
from .grid import Cell, get_cell_center, normalized_to_cell


@dataclass(frozen=True)
class HysteresisState:
    """
    Per-entity hysteresis state.

    Attributes:
        stable_cell: Cell currently reported for the entity.
        current_cell: Raw grid cell of the latest position.
        distance_from_center: Distance of the latest position from the stable cell center.
    """
    stable_cell: Cell
    current_cell: Cell
    distance_from_center: float = 0.0


def create_hysteresis_state(initial_cell: Cell) -> HysteresisState:
    return HysteresisState(stable_cell=initial_cell, current_cell=initial_cell)


def distance_from_center(position: Vector3, center: Vector3) -> float:
    """2D distance in normalized units (z ignored)."""
    return math.hypot(position.x - center.x, position.y - center.y)


def should_switch_cell(distance: float, threshold: float) -> bool:
    return distance > threshold


def update_hysteresis(
    state: HysteresisState,
    position: Vector3,
    grid: GridConfig,
    hysteresis: HysteresisConfig
) -> HysteresisState:
    """
    Advance hysteresis state with a new position.

    The raw cell is always recorded. The stable cell only moves when the
    position is more than threshold away from the stable cell's center.

    Args:
        state: Previous state.
        position: New normalized position.
        grid: Grid dimensions.
        hysteresis: Threshold configuration.

    Returns:
        New HysteresisState.
    """
    new_cell = normalized_to_cell(position, grid)
    distance = distance_from_center(position, get_cell_center(state.stable_cell, grid))

    if new_cell == state.stable_cell or not should_switch_cell(distance, hysteresis.threshold):
        return HysteresisState(state.stable_cell, new_cell, distance)

    new_distance = distance_from_center(position, get_cell_center(new_cell, grid))
    return HysteresisState(new_cell, new_cell, new_distance)


def get_stable_cell(state: HysteresisState) -> Cell:
    return state.stable_cell


def is_position_stable(state: HysteresisState, stability_threshold: float) -> bool:
    """True when the last position sat closer than stability_threshold to the stable center."""
    return state.distance_from_center < stability_threshold


def reset_hysteresis(state: HysteresisState, new_cell: Cell) -> HysteresisState:
    return create_hysteresis_state(new_cell)
