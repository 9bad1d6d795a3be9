"""
Return-to-player estimation.

``estimate`` gives the closed-form figure from the RTP configuration.
``simulate`` and ``simulate_parallel`` measure it by Monte Carlo: a trial is
one paid spin plus the whole free spins session it triggers, and the RTP is
total reported win over total wager with a 95% confidence interval built from
per-trial return moments.
"""
import logging
import math
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from slot_engine.exceptions import ConfigurationError, SimulationError
from slot_engine.models import GameConfig, RTConfig, Volatility
from slot_engine.services.spin_service import SpinEngine
from slot_engine.utils.reel_strips import ReelStripCache
from slot_engine.utils.rng import SeededRandomSource

logger = logging.getLogger(__name__)

BASE_THEORETICAL_RTP = 92.0
VOLATILITY_RTP_ADJUSTMENT = {
    Volatility.HIGH: -2.0,
    Volatility.MEDIUM: 0.0,
    Volatility.LOW: 2.0,
}
THEORETICAL_RTP_MIN = 85.0
THEORETICAL_RTP_MAX = 98.0

MIN_EMPIRICAL_TRIALS = 100_000
MAX_CI_WIDTH_PP = 1.0
Z_95 = 1.96

# Retrigger chains are finite in practice; this guards misconfigured games.
MAX_FREE_SPINS_PER_TRIAL = 10_000
CONVERGENCE_POINTS = 20


def estimate(rt_config: RTConfig) -> float:
    """Theoretical RTP in percent: 92 adjusted by volatility, clamped to [85, 98]."""
    adjusted = BASE_THEORETICAL_RTP + VOLATILITY_RTP_ADJUSTMENT[rt_config.volatility]
    return min(max(adjusted, THEORETICAL_RTP_MIN), THEORETICAL_RTP_MAX)


@dataclass
class SimulationResult:
    game_name: str
    bet: float
    trials_requested: int
    trials_completed: int = 0
    total_wager: float = 0.0
    total_win: float = 0.0
    base_win: float = 0.0
    bonus_win: float = 0.0
    sum_returns: float = 0.0
    sum_sq_returns: float = 0.0
    hit_count: int = 0
    bonus_triggers: int = 0
    free_spins_played: int = 0
    max_win: float = 0.0
    wins_by_multiplier: Dict[int, int] = field(default_factory=dict)
    # (trials, cumulative win, cumulative wager) checkpoints
    checkpoints: List[tuple] = field(default_factory=list)
    cancelled: bool = False
    seeds: List[int] = field(default_factory=list)

    @property
    def rtp(self) -> float:
        return 100.0 * self.total_win / self.total_wager if self.total_wager > 0 else 0.0

    @property
    def return_std(self) -> float:
        """Sample standard deviation of the per-trial return (win / bet)."""
        n = self.trials_completed
        if n < 2:
            return 0.0
        mean = self.sum_returns / n
        variance = max(self.sum_sq_returns / n - mean * mean, 0.0) * n / (n - 1)
        return float(np.sqrt(variance))

    @property
    def confidence_interval(self):
        n = self.trials_completed
        if n == 0:
            return (0.0, 0.0)
        half_width = 100.0 * Z_95 * self.return_std / math.sqrt(n)
        return (self.rtp - half_width, self.rtp + half_width)

    @property
    def ci_width(self) -> float:
        low, high = self.confidence_interval
        return high - low

    @property
    def hit_frequency(self) -> float:
        return 100.0 * self.hit_count / self.trials_completed if self.trials_completed else 0.0

    @property
    def bonus_frequency(self) -> float:
        return 100.0 * self.bonus_triggers / self.trials_completed if self.trials_completed else 0.0

    @property
    def base_rtp(self) -> float:
        return 100.0 * self.base_win / self.total_wager if self.total_wager > 0 else 0.0

    @property
    def bonus_rtp(self) -> float:
        return 100.0 * self.bonus_win / self.total_wager if self.total_wager > 0 else 0.0

    @property
    def avg_bonus_win(self) -> float:
        return self.bonus_win / self.bonus_triggers if self.bonus_triggers else 0.0

    @property
    def rtp_over_time(self):
        return [
            {"trials": trials, "rtp": 100.0 * win / wager if wager > 0 else 0.0}
            for trials, win, wager in self.checkpoints
        ]

    def record_trial(self, base_win: float, bonus_win: float, wager: float, triggered_bonus: bool, free_spins: int):
        trial_win = base_win + bonus_win
        ret = trial_win / self.bet
        self.trials_completed += 1
        self.total_wager += wager
        self.total_win += trial_win
        self.base_win += base_win
        self.bonus_win += bonus_win
        self.sum_returns += ret
        self.sum_sq_returns += ret * ret
        self.free_spins_played += free_spins
        if base_win > 0:
            self.hit_count += 1
        if triggered_bonus:
            self.bonus_triggers += 1
        self.max_win = max(self.max_win, trial_win)
        bucket = int(round(ret))
        self.wins_by_multiplier[bucket] = self.wins_by_multiplier.get(bucket, 0) + 1

    def checkpoint(self):
        self.checkpoints.append((self.trials_completed, self.total_win, self.total_wager))

    def merge(self, other: "SimulationResult") -> "SimulationResult":
        """Combined result as if ``other`` had run after this one."""
        merged = SimulationResult(
            game_name=self.game_name,
            bet=self.bet,
            trials_requested=self.trials_requested + other.trials_requested,
            trials_completed=self.trials_completed + other.trials_completed,
            total_wager=self.total_wager + other.total_wager,
            total_win=self.total_win + other.total_win,
            base_win=self.base_win + other.base_win,
            bonus_win=self.bonus_win + other.bonus_win,
            sum_returns=self.sum_returns + other.sum_returns,
            sum_sq_returns=self.sum_sq_returns + other.sum_sq_returns,
            hit_count=self.hit_count + other.hit_count,
            bonus_triggers=self.bonus_triggers + other.bonus_triggers,
            free_spins_played=self.free_spins_played + other.free_spins_played,
            max_win=max(self.max_win, other.max_win),
            cancelled=self.cancelled or other.cancelled,
            seeds=self.seeds + other.seeds,
        )
        merged.wins_by_multiplier = dict(self.wins_by_multiplier)
        for bucket, count in other.wins_by_multiplier.items():
            merged.wins_by_multiplier[bucket] = merged.wins_by_multiplier.get(bucket, 0) + count
        merged.checkpoints = list(self.checkpoints) + [
            (trials + self.trials_completed, win + self.total_win, wager + self.total_wager)
            for trials, win, wager in other.checkpoints
        ]
        return merged

    def to_dict(self):
        low, high = self.confidence_interval
        return {
            "game": self.game_name,
            "bet": self.bet,
            "trials_requested": self.trials_requested,
            "trials_completed": self.trials_completed,
            "cancelled": self.cancelled,
            "total_wager": self.total_wager,
            "total_win": self.total_win,
            "rtp": self.rtp,
            "confidence_interval": [low, high],
            "base_rtp": self.base_rtp,
            "bonus_rtp": self.bonus_rtp,
            "hit_frequency": self.hit_frequency,
            "bonus_frequency": self.bonus_frequency,
            "avg_bonus_win": self.avg_bonus_win,
            "free_spins_played": self.free_spins_played,
            "volatility_index": self.return_std,
            "max_win": self.max_win,
            "wins_by_multiplier": {str(k): v for k, v in sorted(self.wins_by_multiplier.items())},
            "rtp_over_time": self.rtp_over_time,
            "seeds": list(self.seeds),
        }


def _is_cancelled(cancel_event) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def simulate(game_config: GameConfig, trials: int, seed: Optional[int] = None, bet: float = 1.0,
             cancel_event=None, strip_cache: Optional[ReelStripCache] = None) -> SimulationResult:
    """
    Runs ``trials`` independent trials on one seeded random source.

    ``cancel_event`` is anything with ``is_set()`` (threading or multiprocessing
    Event); it is polled before each trial and a cancelled run returns the
    aggregates of the trials already completed.
    """
    if not isinstance(trials, int) or trials <= 0:
        raise ConfigurationError(status_message=f"trials must be a positive integer, got {trials!r}", details={"trials": trials})
    if seed is None:
        seed = int(np.random.SeedSequence().generate_state(1)[0])

    rng = SeededRandomSource(seed)
    engine = SpinEngine(game_config, strip_cache=strip_cache)
    result = SimulationResult(game_name=game_config.name, bet=bet, trials_requested=trials, seeds=[seed])
    checkpoint_every = max(trials // CONVERGENCE_POINTS, 1)

    for _ in range(trials):
        if _is_cancelled(cancel_event):
            result.cancelled = True
            logger.warning(f"Simulation of '{game_config.name}' cancelled after {result.trials_completed}/{trials} trials")
            break

        machine = engine.new_session()
        paid = engine.spin(rng, machine, bet)
        triggered = machine.is_active
        bonus_win = 0.0
        free_spins = 0
        while machine.is_active:
            if free_spins >= MAX_FREE_SPINS_PER_TRIAL:
                raise SimulationError(
                    status_message=f"Free spins session exceeded {MAX_FREE_SPINS_PER_TRIAL} spins",
                    details={"game": game_config.name, "trial": result.trials_completed}
                )
            bonus_win += engine.spin(rng, machine, bet).reported_win
            free_spins += 1

        result.record_trial(paid.reported_win, bonus_win, paid.wager, triggered, free_spins)
        if result.trials_completed % checkpoint_every == 0:
            result.checkpoint()

    if not result.checkpoints or result.checkpoints[-1][0] != result.trials_completed:
        result.checkpoint()

    _warn_if_imprecise(result)
    logger.info(
        f"Simulated {result.trials_completed} trials of '{game_config.name}': "
        f"RTP {result.rtp:.2f}% (95% CI {result.confidence_interval[0]:.2f}-{result.confidence_interval[1]:.2f})"
    )
    return result


def _warn_if_imprecise(result: SimulationResult):
    if result.trials_completed < MIN_EMPIRICAL_TRIALS and result.ci_width > MAX_CI_WIDTH_PP:
        logger.warning(
            f"Empirical RTP for '{result.game_name}' is imprecise: {result.trials_completed} trials "
            f"(minimum {MIN_EMPIRICAL_TRIALS}), confidence interval {result.ci_width:.2f}pp wide"
        )


def _run_worker(game_config: GameConfig, trials: int, seed: int, bet: float, cancel_event):
    return simulate(game_config, trials, seed=seed, bet=bet, cancel_event=cancel_event)


def spawn_seeds(seed: Optional[int], workers: int) -> List[int]:
    """Independent per-worker seeds derived from one root seed."""
    children = np.random.SeedSequence(seed).spawn(workers)
    return [int(child.generate_state(1)[0]) for child in children]


def split_trials(trials: int, workers: int) -> List[int]:
    base, extra = divmod(trials, workers)
    return [base + (1 if i < extra else 0) for i in range(workers)]


def simulate_parallel(game_config: GameConfig, trials: int, workers: int, seed: Optional[int] = None,
                      bet: float = 1.0, cancel_event=None) -> SimulationResult:
    """
    Splits the trials across worker processes, each with its own spawned seed,
    and merges the sums in worker order. A cross-process ``cancel_event``
    (e.g. from ``multiprocessing.Manager().Event()``) stops every worker at its
    next trial boundary.
    """
    if not isinstance(workers, int) or workers <= 0:
        raise ConfigurationError(status_message=f"workers must be a positive integer, got {workers!r}", details={"workers": workers})
    if not isinstance(trials, int) or trials <= 0:
        raise ConfigurationError(status_message=f"trials must be a positive integer, got {trials!r}", details={"trials": trials})

    workers = min(workers, trials)
    seeds = spawn_seeds(seed, workers)
    shares = split_trials(trials, workers)
    logger.info(f"Running {trials} trials of '{game_config.name}' across {workers} worker processes")

    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_run_worker, game_config, share, worker_seed, bet, cancel_event)
            for share, worker_seed in zip(shares, seeds)
        ]
        results = [future.result() for future in futures]

    merged = results[0]
    for partial in results[1:]:
        merged = merged.merge(partial)
    _warn_if_imprecise(merged)
    return merged
