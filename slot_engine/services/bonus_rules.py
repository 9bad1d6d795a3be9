"""
Bonus feature triggering and statistically targeted outcome forcing.

Rules run in a fixed order so a recorded draw sequence always replays to the
same feature list:

1. free spins      (scatter count, no draws, base game only)
2. bonus game      (bonus symbol count, no draws)
3. cascade         (any win, no draws)
4. expanding wild  (one draw per reel holding a wild)
5. random multiplier (one draw, plus one more when it triggers)
"""
import logging
from typing import List, Optional, Tuple

from slot_engine.models import (
    BonusFeature, BonusGameFeature, CascadeFeature, ExpandingWildFeature, FreeSpinsFeature,
    GameConfig, Grid, RandomMultiplierFeature, RTConfig, WinResult,
)
from slot_engine.utils.rng import RandomSource, weighted_pick

logger = logging.getLogger(__name__)

MIN_SCATTERS_FOR_FREE_SPINS = 3
MIN_BONUS_SYMBOLS_FOR_BONUS_GAME = 3

# scatter count -> spins awarded when a session starts
FREE_SPINS_AWARDS = {3: 10, 4: 15, 5: 25}
FREE_SPINS_DEFAULT_AWARD = 10

EXPANDING_WILD_PROBABILITY = 0.3
RANDOM_MULTIPLIER_PROBABILITY = 0.02
RANDOM_MULTIPLIER_TABLE = ((2, 50), (3, 30), (5, 15), (10, 5))

FORCED_JACKPOT = "jackpot"
FORCED_SCATTER = "scatter"
FORCED_SCATTER_COUNT = 3


def expand_wilds(grid: Grid, reels, wild_symbol: str) -> Grid:
    """Copy of the grid with every cell of the given reels turned wild."""
    new_grid = grid.copy()
    for reel in reels:
        new_grid.reels[reel] = [wild_symbol] * new_grid.row_count
    return new_grid


def free_spins_award(scatter_count: int) -> Tuple[int, int]:
    """(spins awarded, win multiplier) for a base-game trigger."""
    spins = FREE_SPINS_AWARDS.get(scatter_count, FREE_SPINS_DEFAULT_AWARD)
    multiplier = 2 if scatter_count >= 4 else 1
    return spins, multiplier


class BonusRuleEngine:
    """Decides which bonus features a spin triggers. Holds no per-spin state."""

    def __init__(self, game_config: GameConfig):
        self.game_config = game_config

    def evaluate(self, grid: Grid, win_result: WinResult, rt_config: Optional[RTConfig], rng: RandomSource,
                 free_spin: bool = False) -> List[BonusFeature]:
        """
        On a free spin the scatter rule is skipped; retriggers are awarded by
        the FeatureStateMachine from its own table.
        """
        cfg = self.game_config
        features: List[BonusFeature] = []

        scatter_count = grid.count(cfg.scatter_symbol)
        if not free_spin and scatter_count >= MIN_SCATTERS_FOR_FREE_SPINS:
            spins, multiplier = free_spins_award(scatter_count)
            features.append(FreeSpinsFeature(scatter_count=scatter_count, spins_awarded=spins, multiplier=multiplier))

        if cfg.bonus_symbol is not None:
            bonus_count = grid.count(cfg.bonus_symbol)
            if bonus_count >= MIN_BONUS_SYMBOLS_FOR_BONUS_GAME:
                features.append(BonusGameFeature(symbol_count=bonus_count))

        if win_result.wins and cfg.cascades_enabled:
            features.append(CascadeFeature())

        if cfg.wild_symbol is not None:
            marked = []
            for reel in range(grid.reel_count):
                if grid.reel_contains(reel, cfg.wild_symbol) and rng.next_float() < EXPANDING_WILD_PROBABILITY:
                    marked.append(reel)
            if marked:
                features.append(ExpandingWildFeature(reels=tuple(marked)))

        if rng.next_float() < RANDOM_MULTIPLIER_PROBABILITY:
            features.append(RandomMultiplierFeature(multiplier=weighted_pick(rng, RANDOM_MULTIPLIER_TABLE)))

        if features:
            logger.debug(f"Bonus features triggered: {[f.type.value for f in features]}")
        return features

    def force_outcomes(self, grid: Grid, rt_config: RTConfig, rng: RandomSource) -> Tuple[Grid, List[str]]:
        """
        Rewrites a base-game grid so jackpots land about once per
        ``jackpot_frequency`` spins and scatter triggers about once per
        ``bonus_frequency`` spins. Returns the new grid and the forced event names.
        """
        cfg = self.game_config
        forced = []
        new_grid = grid.copy()

        if rng.next_float() < 1.0 / rt_config.jackpot_frequency:
            middle_row = new_grid.row_count // 2
            for reel in new_grid.reels:
                reel[middle_row] = cfg.jackpot_symbol
            forced.append(FORCED_JACKPOT)

        if rng.next_float() < 1.0 / rt_config.bonus_frequency:
            if new_grid.count(cfg.scatter_symbol) < FORCED_SCATTER_COUNT:
                new_grid = self._place_scatters(new_grid, rng)
                forced.append(FORCED_SCATTER)

        if forced:
            logger.debug(f"Forced outcomes applied: {forced}")
        return new_grid, forced

    def _place_scatters(self, grid: Grid, rng: RandomSource) -> Grid:
        count = min(FORCED_SCATTER_COUNT, grid.reel_count)
        available = list(range(grid.reel_count))
        for _ in range(count):
            reel = available.pop(rng.next_index(len(available)))
            row = rng.next_index(grid.row_count)
            grid.reels[reel][row] = self.game_config.scatter_symbol
        return grid
