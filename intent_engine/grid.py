"""
Spatial grid mapping.

Maps normalized positions onto a cols x rows grid of cells and provides cell
geometry, neighborhood and region helpers. All functions are pure.
"""

import math
from dataclasses import dataclass

from .config import GRID_PRESETS, GridConfig
from .detection import Vector3
from .keywords import GridResolution


@dataclass(frozen=True, order=True)
class Cell:
    """Grid cell coordinates."""
    col: int
    row: int


def normalized_to_cell(position: Vector3, config: GridConfig) -> Cell:
    """
    Map a normalized position to its grid cell.

    Coordinates are clamped to [0, 1] first, and the result is clamped to the
    last column/row so x=1.0 or y=1.0 stay inside the grid.

    Args:
        position: Normalized position.
        config: Grid dimensions.

    Returns:
        Cell containing the position.
    """
    x = min(1.0, max(0.0, position.x))
    y = min(1.0, max(0.0, position.y))
    col = min(config.cols - 1, int(math.floor(x * config.cols)))
    row = min(config.rows - 1, int(math.floor(y * config.rows)))
    return Cell(col, row)


def cell_to_normalized(cell: Cell, config: GridConfig) -> Vector3:
    """Return the normalized center of a cell (z = 0)."""
    return Vector3(
        (cell.col + 0.5) / config.cols,
        (cell.row + 0.5) / config.rows,
        0.0
    )


get_cell_center = cell_to_normalized


def get_cell_bounds(cell: Cell, config: GridConfig) -> tuple[Vector3, Vector3]:
    """
    Get the normalized bounds of a cell.

    Returns:
        (min corner, max corner).
    """
    width, height = get_cell_dimensions(config)
    return (
        Vector3(cell.col * width, cell.row * height, 0.0),
        Vector3((cell.col + 1) * width, (cell.row + 1) * height, 0.0),
    )


def get_cell_dimensions(config: GridConfig) -> tuple[float, float]:
    """Cell width and height in normalized units."""
    return 1.0 / config.cols, 1.0 / config.rows


def is_valid_cell(cell: Cell, config: GridConfig) -> bool:
    return 0 <= cell.col < config.cols and 0 <= cell.row < config.rows


def clamp_cell(cell: Cell, config: GridConfig) -> Cell:
    return Cell(
        max(0, min(config.cols - 1, cell.col)),
        max(0, min(config.rows - 1, cell.row))
    )


def get_neighbor_cells(cell: Cell, config: GridConfig) -> list[Cell]:
    """Valid 8-connected neighbors, row by row."""
    neighbors = []
    for d_row in (-1, 0, 1):
        for d_col in (-1, 0, 1):
            if d_row == 0 and d_col == 0:
                continue
            neighbor = Cell(cell.col + d_col, cell.row + d_row)
            if is_valid_cell(neighbor, config):
                neighbors.append(neighbor)
    return neighbors


def get_cardinal_neighbors(cell: Cell, config: GridConfig) -> list[Cell]:
    """Valid 4-connected neighbors: up, down, left, right."""
    offsets = ((0, -1), (0, 1), (-1, 0), (1, 0))
    candidates = (Cell(cell.col + d_col, cell.row + d_row) for d_col, d_row in offsets)
    return [c for c in candidates if is_valid_cell(c, config)]


def cell_manhattan_distance(a: Cell, b: Cell) -> int:
    return abs(a.col - b.col) + abs(a.row - b.row)


def cell_euclidean_distance(a: Cell, b: Cell) -> float:
    return math.hypot(a.col - b.col, a.row - b.row)


def grid_config_for_resolution(
    resolution: str,
    presets: dict[str, GridConfig] = GRID_PRESETS
) -> GridConfig:
    """Grid for a named resolution; unknown names map to medium."""
    return presets.get(resolution, presets[GridResolution.MEDIUM])


def normalized_to_cell_by_resolution(
    position: Vector3,
    resolution: str,
    presets: dict[str, GridConfig] = GRID_PRESETS
) -> Cell:
    return normalized_to_cell(position, grid_config_for_resolution(resolution, presets))


# =============================================================================
# Region Matching
# =============================================================================

def is_in_cell(position: Vector3, cell: Cell, config: GridConfig) -> bool:
    return normalized_to_cell(position, config) == cell


def is_in_any_cell(position: Vector3, cells: list[Cell], config: GridConfig) -> bool:
    return normalized_to_cell(position, config) in cells


def is_in_region(position: Vector3, region_min: Vector3, region_max: Vector3) -> bool:
    """Axis-aligned box test, inclusive on all sides."""
    return (
        region_min.x <= position.x <= region_max.x
        and region_min.y <= position.y <= region_max.y
        and region_min.z <= position.z <= region_max.z
    )


def is_in_circle(position: Vector3, center: Vector3, radius: float) -> bool:
    """2D containment, ignores z."""
    dx = position.x - center.x
    dy = position.y - center.y
    return dx * dx + dy * dy <= radius * radius


def is_in_sphere(position: Vector3, center: Vector3, radius: float) -> bool:
    return are_positions_close(position, center, radius)


def are_positions_close(a: Vector3, b: Vector3, threshold: float) -> bool:
    dx = a.x - b.x
    dy = a.y - b.y
    dz = a.z - b.z
    return dx * dx + dy * dy + dz * dz <= threshold * threshold
