import unittest

from intent_engine.config import GridConfig, HysteresisConfig
from intent_engine.detection import Vector3
from intent_engine.grid import Cell, cell_to_normalized
from intent_engine.hysteresis import (
    create_hysteresis_state,
    distance_from_center,
    is_position_stable,
    reset_hysteresis,
    should_switch_cell,
    update_hysteresis,
)


class TestHysteresis(unittest.TestCase):
    def setUp(self):
        """8x6 grid, 0.1 threshold, entity resting at the center of cell (3, 2)."""
        self.grid = GridConfig(cols=8, rows=6)
        self.hysteresis = HysteresisConfig(threshold=0.1)
        self.start = Cell(3, 2)
        self.center = cell_to_normalized(self.start, self.grid)
        self.state = create_hysteresis_state(self.start)

    def _moved(self, dx: float) -> Vector3:
        return Vector3(self.center.x + dx, self.center.y, 0.0)

    def test_small_move_across_boundary_keeps_cell(self):
        """0.08 from the stable center crosses into column 4 but stays in (3, 2)."""
        state = update_hysteresis(self.state, self._moved(0.08), self.grid, self.hysteresis)
        self.assertEqual(state.stable_cell, self.start)
        self.assertEqual(state.current_cell, Cell(4, 2))
        self.assertAlmostEqual(state.distance_from_center, 0.08)

    def test_large_move_switches_cell(self):
        """0.15 from the stable center switches to (4, 2)."""
        state = update_hysteresis(self.state, self._moved(0.15), self.grid, self.hysteresis)
        self.assertEqual(state.stable_cell, Cell(4, 2))
        self.assertEqual(state.current_cell, Cell(4, 2))

    def test_distance_measured_from_new_center_after_switch(self):
        """After switching, distance is relative to the new stable cell."""
        state = update_hysteresis(self.state, self._moved(0.15), self.grid, self.hysteresis)
        new_center = cell_to_normalized(Cell(4, 2), self.grid)
        self.assertAlmostEqual(state.distance_from_center, abs(self.center.x + 0.15 - new_center.x))

    def test_jitter_around_boundary_never_flips(self):
        """Alternating small moves either side of a boundary keep one cell."""
        state = self.state
        for dx in (0.07, 0.05, 0.07, 0.06, 0.07):
            state = update_hysteresis(state, self._moved(dx), self.grid, self.hysteresis)
            self.assertEqual(state.stable_cell, self.start)

    def test_helpers(self):
        """Distance, switch and stability helpers."""
        self.assertAlmostEqual(distance_from_center(Vector3(0.3, 0.4, 5.0), Vector3(0.0, 0.0)), 0.5)
        self.assertTrue(should_switch_cell(0.11, 0.1))
        self.assertFalse(should_switch_cell(0.1, 0.1))

        state = update_hysteresis(self.state, self._moved(0.02), self.grid, self.hysteresis)
        self.assertTrue(is_position_stable(state, 0.05))
        self.assertFalse(is_position_stable(state, 0.01))

    def test_reset(self):
        """Reset starts over at the given cell."""
        state = reset_hysteresis(self.state, Cell(0, 0))
        self.assertEqual(state.stable_cell, Cell(0, 0))
        self.assertEqual(state.distance_from_center, 0.0)


if __name__ == '__main__':
    unittest.main()
