import unittest

from slot_engine.models import EMPTY, Grid
from slot_engine.utils.cascade import apply_gravity, cascade, clear_positions, fill_empty
from slot_engine.utils.rng import ScriptedRandomSource

FILL = ["X", "Y"]


class TestCascade(unittest.TestCase):

    def setUp(self):
        # reels: [A, D, G], [B, E, H], [C, F, I]
        self.grid = Grid.from_rows([
            ["A", "B", "C"],
            ["D", "E", "F"],
            ["G", "H", "I"],
        ])

    def test_no_winning_positions_returns_grid_unchanged(self):
        rng = ScriptedRandomSource([])
        result = cascade(self.grid, [], rng, FILL)
        self.assertIs(result, self.grid)
        self.assertEqual(rng.consumed, 0)

    def test_clear_positions_marks_empty(self):
        cleared = clear_positions(self.grid, [(0, 2), (1, 0)])
        self.assertIs(cleared.cell(0, 2), EMPTY)
        self.assertIs(cleared.cell(1, 0), EMPTY)
        self.assertEqual(self.grid.cell(0, 2), "G")

    def test_gravity_keeps_relative_order(self):
        cleared = clear_positions(self.grid, [(0, 1)])
        dropped = apply_gravity(cleared)
        self.assertEqual(dropped.reels[0], [EMPTY, "A", "G"])
        self.assertEqual(dropped.reels[1], ["B", "E", "H"])

    def test_cascade_clears_drops_and_refills_from_top(self):
        rng = ScriptedRandomSource([0.0, 0.6])
        result = cascade(self.grid, [(0, 2), (1, 0)], rng, FILL)
        self.assertEqual(result.reels, [["X", "A", "D"], ["Y", "E", "H"], ["C", "F", "I"]])
        self.assertEqual(rng.consumed, 2)
        self.assertFalse(result.has_empty())

    def test_full_reel_refill_draws_top_to_bottom(self):
        rng = ScriptedRandomSource([0.9, 0.1, 0.9])
        result = cascade(self.grid, [(2, 0), (2, 1), (2, 2)], rng, FILL)
        self.assertEqual(result.reels[2], ["Y", "X", "Y"])
        self.assertEqual(result.reels[0], ["A", "D", "G"])

    def test_input_grid_is_not_mutated(self):
        cascade(self.grid, [(0, 0)], ScriptedRandomSource([0.0]), FILL)
        self.assertEqual(self.grid.to_rows()[0], ["A", "B", "C"])

    def test_fill_requires_symbols(self):
        cleared = clear_positions(self.grid, [(0, 0)])
        with self.assertRaises(ValueError):
            fill_empty(cleared, ScriptedRandomSource([0.5]), [])


if __name__ == '__main__':
    unittest.main()
