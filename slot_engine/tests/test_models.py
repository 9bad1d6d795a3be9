import unittest

from slot_engine.error_codes import ErrorCodes
from slot_engine.exceptions import ConfigurationError
from slot_engine.models import (
    CascadeFeature,
    ExpandingWildFeature,
    FreeSpinsFeature,
    GameConfig,
    Grid,
    PayMode,
    RTConfig,
    Volatility,
    WeightTable,
    Win,
    WinKind,
    WinResult,
)


def make_game_config(**overrides):
    params = dict(
        name="Model Test",
        reel_count=3,
        row_count=3,
        weight_table=WeightTable.uniform({"A": 3, "B": 2, "W": 1, "S": 1}, 3),
        rt_config=RTConfig(0.96, "medium", 100, 1000),
        paytable={"A": {3: 10}, "B": {3: 5}},
        paylines=[[0, 0, 0], [1, 1, 1], [2, 2, 2]],
        wild_symbol="W",
        scatter_symbol="S",
    )
    params.update(overrides)
    return GameConfig(**params)


class TestRTConfig(unittest.TestCase):

    def test_volatility_parsed_from_string(self):
        rt = RTConfig(0.95, "HIGH", 100, 1000)
        self.assertIs(rt.volatility, Volatility.HIGH)
        self.assertEqual(rt.to_dict()["volatility"], "high")

    def test_target_rtp_out_of_range(self):
        with self.assertRaises(ConfigurationError) as ctx:
            RTConfig(0.99, "medium", 100, 1000)
        self.assertEqual(ctx.exception.error_code, ErrorCodes.INVALID_RT_CONFIG)
        self.assertIn("target_rtp", ctx.exception.details)

    def test_frequencies_must_be_positive(self):
        with self.assertRaises(ConfigurationError) as ctx:
            RTConfig(0.95, "low", 0, -5)
        self.assertIn("bonus_frequency", ctx.exception.details)
        self.assertIn("jackpot_frequency", ctx.exception.details)

    def test_unknown_volatility(self):
        with self.assertRaises(ConfigurationError):
            RTConfig(0.95, "extreme", 100, 1000)


class TestGrid(unittest.TestCase):

    def test_rows_and_reels_round_trip(self):
        rows = [["A", "B"], ["C", "D"], ["E", "F"]]
        grid = Grid.from_rows(rows)
        self.assertEqual(grid.reel_count, 2)
        self.assertEqual(grid.row_count, 3)
        self.assertEqual(grid.reels[0], ["A", "C", "E"])
        self.assertEqual(grid.to_rows(), rows)

    def test_counts_and_positions(self):
        grid = Grid.from_rows([["S", "A", "S"], ["A", "S", "A"]])
        self.assertEqual(grid.count("S"), 3)
        self.assertEqual(grid.count(None), 0)
        self.assertEqual(grid.positions_of("S"), [(0, 0), (1, 1), (2, 0)])
        self.assertTrue(grid.reel_contains(1, "S"))
        self.assertFalse(grid.reel_contains(0, "B"))

    def test_ragged_grid_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            Grid([["A", "B"], ["C"]])
        self.assertEqual(ctx.exception.error_code, ErrorCodes.INVALID_GEOMETRY)

    def test_empty_grid_rejected(self):
        with self.assertRaises(ConfigurationError):
            Grid([])


class TestWinResult(unittest.TestCase):

    def test_total_and_position_union(self):
        result = WinResult((
            Win(WinKind.LINE, "A", 3, ((0, 0), (1, 0), (2, 0)), 10.0, "line_1"),
            Win(WinKind.SCATTER, "S", 3, ((0, 0), (1, 2), (2, 1)), 6.0, "scatter"),
        ))
        self.assertEqual(result.total_win, 16.0)
        self.assertEqual(result.win_positions, [(0, 0), (1, 0), (1, 2), (2, 0), (2, 1)])
        self.assertTrue(result)
        self.assertFalse(WinResult())


class TestBonusFeatures(unittest.TestCase):

    def test_free_spins_to_dict(self):
        self.assertEqual(
            FreeSpinsFeature(scatter_count=3, spins_awarded=10, multiplier=1).to_dict(),
            {"type": "freespins", "triggered": True, "data": {"scatter_count": 3, "spins_awarded": 10, "multiplier": 1}}
        )

    def test_expanding_wild_to_dict(self):
        data = ExpandingWildFeature(reels=(1, 3)).to_dict()
        self.assertEqual(data["type"], "expanding_wild")
        self.assertEqual(list(data["data"]["reels"]), [1, 3])

    def test_cascade_multiplier_clamps_to_last(self):
        feature = CascadeFeature()
        self.assertEqual(feature.multiplier_for_step(0), 1)
        self.assertEqual(feature.multiplier_for_step(1), 2)
        self.assertEqual(feature.multiplier_for_step(5), 10)
        self.assertEqual(feature.multiplier_for_step(9), 10)
        self.assertEqual(feature.max_cascades, 6)


class TestGameConfig(unittest.TestCase):

    def test_default_fill_symbols_exclude_specials(self):
        cfg = make_game_config()
        self.assertEqual(cfg.cascade_fill_symbols, ["A", "B"])
        self.assertEqual(cfg.pay_mode, PayMode.LINES)

    def test_line_game_without_paylines_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            make_game_config(paylines=[])
        self.assertIn("paylines", ctx.exception.details)

    def test_payline_rows_must_fit_grid(self):
        with self.assertRaises(ConfigurationError):
            make_game_config(paylines=[[0, 3, 0]])

    def test_unknown_special_symbol_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            make_game_config(wild_symbol="Z")
        self.assertIn("wild_symbol", ctx.exception.details)

    def test_forcing_requires_jackpot_symbol(self):
        with self.assertRaises(ConfigurationError) as ctx:
            make_game_config(force_outcomes=True)
        self.assertIn("jackpot_symbol", ctx.exception.details)

    def test_weight_table_reel_count_must_match(self):
        with self.assertRaises(ConfigurationError):
            make_game_config(weight_table=WeightTable.uniform({"A": 1, "B": 1, "W": 1, "S": 1}, 5))

    def test_bad_geometry_uses_geometry_code(self):
        with self.assertRaises(ConfigurationError) as ctx:
            make_game_config(row_count=0)
        self.assertEqual(ctx.exception.error_code, ErrorCodes.INVALID_GEOMETRY)


if __name__ == '__main__':
    unittest.main()
