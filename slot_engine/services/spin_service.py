"""
Single-spin orchestration.

strips (cached) -> sample -> forcing -> wins -> bonus rules -> expanding wilds
-> cascade loop -> random multiplier -> free spins state
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from slot_engine.exceptions import ConfigurationError
from slot_engine.models import (
    BonusFeature, CascadeFeature, ExpandingWildFeature, FreeSpinsFeature, GameConfig, Grid,
    RandomMultiplierFeature, WinResult,
)
from slot_engine.services.bonus_rules import BonusRuleEngine, expand_wilds
from slot_engine.services.feature_state import AdvanceResult, FeatureStateMachine, retrigger_award
from slot_engine.utils.cascade import cascade
from slot_engine.utils.paytable import WinEvaluator
from slot_engine.utils.reel_strips import ReelStripCache
from slot_engine.utils.rng import RandomSource
from slot_engine.utils.spin_sampler import sample_stops, window

logger = logging.getLogger(__name__)


@dataclass
class CascadeStep:
    step: int
    grid: Grid
    win_result: WinResult
    multiplier: int
    win_amount: float

    def to_dict(self):
        return {
            "step": self.step,
            "grid": self.grid.to_rows(),
            "multiplier": self.multiplier,
            "win_amount": self.win_amount,
            "wins": self.win_result.to_dict()["wins"],
        }


@dataclass
class SpinOutcome:
    initial_grid: Grid
    final_grid: Grid
    stops: List[int]
    win_result: WinResult
    features: List[BonusFeature]
    cascade_steps: List[CascadeStep] = field(default_factory=list)
    forced_events: List[str] = field(default_factory=list)
    random_multiplier: int = 1
    raw_win: float = 0.0
    reported_win: float = 0.0
    wager: float = 0.0
    is_free_spin: bool = False
    advance: Optional[AdvanceResult] = None
    feature_state: Optional[dict] = None

    def has_feature(self, feature_cls) -> bool:
        return any(isinstance(f, feature_cls) for f in self.features)

    def to_dict(self):
        return {
            "initial_grid": self.initial_grid.to_rows(),
            "final_grid": self.final_grid.to_rows(),
            "stops": list(self.stops),
            "wins": self.win_result.to_dict()["wins"],
            "features": [f.to_dict() for f in self.features],
            "cascades": [step.to_dict() for step in self.cascade_steps],
            "forced_events": list(self.forced_events),
            "random_multiplier": self.random_multiplier,
            "raw_win": self.raw_win,
            "reported_win": self.reported_win,
            "wager": self.wager,
            "is_free_spin": self.is_free_spin,
            "advance": None if self.advance is None else self.advance.to_dict(),
            "feature_state": self.feature_state,
        }


class SpinEngine:
    """
    Runs spins for one game configuration. The engine itself is stateless
    between spins; free spins bookkeeping lives in the FeatureStateMachine the
    caller passes in.
    """

    def __init__(self, game_config: GameConfig, strip_cache: Optional[ReelStripCache] = None, evaluator=None):
        self.game_config = game_config
        self.strip_cache = strip_cache if strip_cache is not None else ReelStripCache()
        self.evaluator = evaluator if evaluator is not None else WinEvaluator(game_config)
        self.bonus_rules = BonusRuleEngine(game_config)

    def new_session(self) -> FeatureStateMachine:
        return FeatureStateMachine(scatter_symbol=self.game_config.scatter_symbol)

    def spin(self, rng: RandomSource, feature_machine: FeatureStateMachine, bet: float) -> SpinOutcome:
        cfg = self.game_config
        if bet is None or bet <= 0:
            raise ConfigurationError(status_message=f"Bet must be positive, got {bet!r}", details={"bet": bet})

        is_free_spin = feature_machine.is_active
        strips = self.strip_cache.get_strips(cfg.weight_table, cfg.rt_config.volatility)
        stops = sample_stops(strips, rng)
        initial_grid = window(strips, stops, cfg.row_count)
        grid = initial_grid

        forced_events = []
        if cfg.force_outcomes and not is_free_spin:
            grid, forced_events = self.bonus_rules.force_outcomes(grid, cfg.rt_config, rng)

        win_result = self.evaluator.evaluate(grid, bet)
        features = self.bonus_rules.evaluate(grid, win_result, cfg.rt_config, rng, free_spin=is_free_spin)
        # scatters are counted before wild expansion can overwrite them
        trigger_grid = grid

        expanding = _first(features, ExpandingWildFeature)
        if expanding is not None:
            grid = expand_wilds(grid, expanding.reels, cfg.wild_symbol)
            win_result = self.evaluator.evaluate(grid, bet)

        cascade_feature = _first(features, CascadeFeature)
        cascade_steps = []
        if cascade_feature is not None:
            raw_win = win_result.total_win * cascade_feature.multiplier_for_step(0)
            current = win_result
            step = 0
            while current.wins and step < cascade_feature.max_cascades:
                step += 1
                grid = cascade(grid, current.win_positions, rng, cfg.cascade_fill_symbols)
                current = self.evaluator.evaluate(grid, bet)
                multiplier = cascade_feature.multiplier_for_step(step)
                step_win = current.total_win * multiplier
                raw_win += step_win
                cascade_steps.append(CascadeStep(step, grid, current, multiplier, step_win))
        else:
            raw_win = win_result.total_win

        random_multiplier = 1
        multiplier_feature = _first(features, RandomMultiplierFeature)
        if multiplier_feature is not None:
            random_multiplier = multiplier_feature.multiplier
            raw_win *= random_multiplier

        advance = None
        if is_free_spin:
            session_multiplier = feature_machine.state.win_multiplier
            advance = feature_machine.advance(trigger_grid, raw_win)
            reported_win = advance.reported_win
            if advance.retriggered:
                scatter_count = trigger_grid.count(cfg.scatter_symbol)
                features.append(FreeSpinsFeature(
                    scatter_count=scatter_count,
                    spins_awarded=retrigger_award(scatter_count),
                    multiplier=session_multiplier,
                ))
            wager = 0.0
        else:
            reported_win = raw_win
            wager = bet
            free_spins = _first(features, FreeSpinsFeature)
            if free_spins is not None:
                feature_machine.activate(free_spins)

        logger.debug(
            f"Spin on '{cfg.name}': stops={stops} free_spin={is_free_spin} "
            f"cascades={len(cascade_steps)} reported_win={reported_win}"
        )
        return SpinOutcome(
            initial_grid=initial_grid,
            final_grid=grid,
            stops=stops,
            win_result=win_result,
            features=features,
            cascade_steps=cascade_steps,
            forced_events=forced_events,
            random_multiplier=random_multiplier,
            raw_win=raw_win,
            reported_win=reported_win,
            wager=wager,
            is_free_spin=is_free_spin,
            advance=advance,
            feature_state=feature_machine.to_dict(),
        )


def _first(features, feature_cls):
    for feature in features:
        if isinstance(feature, feature_cls):
            return feature
    return None
