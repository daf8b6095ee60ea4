"""
Spatial hashing over the normalized grid.

Buckets positioned items by grid cell so radius queries only visit the cells
that can contain hits instead of scanning every item. A multi-resolution
variant keeps coarse, medium and fine hashes in step.
"""

import math
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

import numpy as np

from .config import GRID_PRESETS, GridConfig
from .detection import Vector3
from .grid import Cell, is_valid_cell, normalized_to_cell
from .keywords import GridResolution

T = TypeVar("T")


@dataclass(frozen=True)
class PositionedItem(Generic[T]):
    """An item stored at a normalized position."""
    position: Vector3
    data: T


@dataclass(frozen=True)
class ItemWithDistance(Generic[T]):
    """Query hit with its 3D distance to the query point."""
    item: PositionedItem[T]
    distance: float


def _cells_in_radius(position: Vector3, radius: float, config: GridConfig) -> list[Cell]:
    center = normalized_to_cell(position, config)
    # One extra ring covers items near the far edge of boundary cells
    reach_x = math.ceil(radius * config.cols) + 1
    reach_y = math.ceil(radius * config.rows) + 1

    cells = []
    for d_row in range(-reach_y, reach_y + 1):
        for d_col in range(-reach_x, reach_x + 1):
            cell = Cell(center.col + d_col, center.row + d_row)
            if is_valid_cell(cell, config):
                cells.append(cell)
    return cells


class SpatialHash(Generic[T]):
    """
    Grid-bucketed store of positioned items.

    Items are mutable state of the hash (rebuilt by the caller each frame);
    queries never modify it.
    """

    def __init__(self, config: GridConfig):
        """
        Initialize an empty hash.

        Args:
            config: Grid used for bucketing.
        """
        self.config = config
        self._buckets: dict[Cell, list[PositionedItem[T]]] = {}

    def __len__(self) -> int:
        return sum(len(items) for items in self._buckets.values())

    def clear(self) -> None:
        self._buckets.clear()

    def insert(self, position: Vector3, data: T) -> None:
        cell = normalized_to_cell(position, self.config)
        self._buckets.setdefault(cell, []).append(PositionedItem(position, data))

    def insert_many(self, items: list[PositionedItem[T]]) -> None:
        for item in items:
            self.insert(item.position, item.data)

    def get_nearby(
        self,
        position: Vector3,
        radius: float,
        max_items: Optional[int] = None
    ) -> list[ItemWithDistance[T]]:
        """
        Find items within a 3D radius.

        Args:
            position: Query point.
            radius: Maximum distance (inclusive).
            max_items: Optional cap on returned hits.

        Returns:
            Hits sorted by distance, closest first.
        """
        origin = position.as_array()
        hits: list[ItemWithDistance[T]] = []

        for cell in _cells_in_radius(position, radius, self.config):
            items = self._buckets.get(cell)
            if not items:
                continue
            offsets = np.array([item.position.as_array() for item in items]) - origin
            distances = np.linalg.norm(offsets, axis=1)
            for item, distance in zip(items, distances):
                if distance <= radius:
                    hits.append(ItemWithDistance(item, float(distance)))

        hits.sort(key=lambda hit: hit.distance)
        if max_items is not None:
            hits = hits[:max_items]
        return hits

    def get_in_cell(self, cell: Cell) -> list[PositionedItem[T]]:
        return list(self._buckets.get(cell, []))

    def get_all_items(self) -> list[PositionedItem[T]]:
        return [item for items in self._buckets.values() for item in items]


class MultiResolutionSpatialHash(Generic[T]):
    """Coarse, medium and fine spatial hashes fed with the same items."""

    def __init__(self, presets: dict[str, GridConfig] = GRID_PRESETS):
        self.presets = presets
        self.coarse: SpatialHash[T] = SpatialHash(presets[GridResolution.COARSE])
        self.medium: SpatialHash[T] = SpatialHash(presets[GridResolution.MEDIUM])
        self.fine: SpatialHash[T] = SpatialHash(presets[GridResolution.FINE])

    def _all(self) -> tuple[SpatialHash[T], ...]:
        return self.coarse, self.medium, self.fine

    def clear_all(self) -> None:
        for spatial_hash in self._all():
            spatial_hash.clear()

    def insert_all(self, position: Vector3, data: T) -> None:
        for spatial_hash in self._all():
            spatial_hash.insert(position, data)

    def insert_many_all(self, items: list[PositionedItem[T]]) -> None:
        for spatial_hash in self._all():
            spatial_hash.insert_many(items)

    def get_hash(self, resolution: str) -> SpatialHash[T]:
        """Hash for a resolution name; unknown names fall back to medium."""
        if resolution == GridResolution.COARSE:
            return self.coarse
        if resolution == GridResolution.FINE:
            return self.fine
        return self.medium

    def get_nearby(
        self,
        position: Vector3,
        radius: float,
        resolution: str = GridResolution.MEDIUM,
        max_items: Optional[int] = None
    ) -> list[ItemWithDistance[T]]:
        return self.get_hash(resolution).get_nearby(position, radius, max_items)

    def get_in_cell(self, cell: Cell, resolution: str = GridResolution.MEDIUM) -> list[PositionedItem[T]]:
        return self.get_hash(resolution).get_in_cell(cell)
