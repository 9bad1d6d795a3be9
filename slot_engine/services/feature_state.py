"""
Free-spins session lifecycle for one player session.

IDLE --activate--> FREE_SPINS_ACTIVE --advance (last spin, no retrigger)--> IDLE

A machine is owned by exactly one session and is not thread-safe; callers
serialize spins per session.
"""
import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional

from slot_engine.exceptions import FeatureStateError
from slot_engine.models import FreeSpinsFeature, FreeSpinsState, Grid

logger = logging.getLogger(__name__)

MIN_SCATTERS_FOR_RETRIGGER = 3
RETRIGGER_AWARDS = {3: 5, 4: 10, 5: 15}
RETRIGGER_DEFAULT_AWARD = 5


class FeatureMode(str, Enum):
    IDLE = "idle"
    FREE_SPINS_ACTIVE = "free_spins_active"


@dataclass(frozen=True)
class AdvanceResult:
    continue_session: bool
    retriggered: bool
    reported_win: float
    spins_remaining: int
    session_total: float

    def to_dict(self):
        return asdict(self)


def retrigger_award(scatter_count: int) -> int:
    return RETRIGGER_AWARDS.get(scatter_count, RETRIGGER_DEFAULT_AWARD)


class FeatureStateMachine:

    def __init__(self, scatter_symbol: Optional[str] = None):
        self.scatter_symbol = scatter_symbol
        self.state: Optional[FreeSpinsState] = None

    @property
    def mode(self) -> FeatureMode:
        return FeatureMode.IDLE if self.state is None else FeatureMode.FREE_SPINS_ACTIVE

    @property
    def is_active(self) -> bool:
        return self.state is not None

    def activate(self, feature: FreeSpinsFeature) -> FreeSpinsState:
        """Starts a session from a base-game free spins trigger."""
        if self.state is not None:
            raise FeatureStateError(
                status_message="Cannot activate free spins while a session is already active",
                details={"spins_remaining": self.state.spins_remaining}
            )
        if feature.spins_awarded <= 0:
            raise FeatureStateError(
                status_message="Free spins activation needs a positive number of spins",
                details={"spins_awarded": feature.spins_awarded}
            )
        self.state = FreeSpinsState(
            spins_remaining=feature.spins_awarded,
            total_spins_awarded=feature.spins_awarded,
            win_multiplier=feature.multiplier,
        )
        logger.debug(f"Free spins activated: {feature.spins_awarded} spins at x{feature.multiplier}")
        return self.state

    def advance(self, grid: Grid, win_amount: float) -> AdvanceResult:
        """
        Consumes one free spin played on ``grid``.

        The reported win is the raw win times the session multiplier. When the
        last spin is consumed without a retrigger the session ends in this call.
        """
        state = self.state
        if state is None:
            raise FeatureStateError(status_message="No free spins session is active")

        state.spins_remaining -= 1

        retriggered = False
        scatter_count = grid.count(self.scatter_symbol)
        if scatter_count >= MIN_SCATTERS_FOR_RETRIGGER:
            award = retrigger_award(scatter_count)
            state.spins_remaining += award
            state.total_spins_awarded += award
            state.retrigger_count += 1
            retriggered = True
            logger.debug(f"Free spins retriggered by {scatter_count} scatters: +{award} spins")

        reported_win = win_amount * state.win_multiplier
        state.accumulated_win += reported_win

        result = AdvanceResult(
            continue_session=state.spins_remaining > 0,
            retriggered=retriggered,
            reported_win=reported_win,
            spins_remaining=state.spins_remaining,
            session_total=state.accumulated_win,
        )
        if state.spins_remaining == 0 and not retriggered:
            logger.debug(
                f"Free spins session ended after {state.total_spins_awarded} spins, "
                f"{state.retrigger_count} retriggers, total win {state.accumulated_win}"
            )
            self.state = None
        return result

    def to_dict(self):
        return {
            "mode": self.mode.value,
            "scatter_symbol": self.scatter_symbol,
            "state": None if self.state is None else self.state.to_dict(),
        }

    @classmethod
    def from_dict(cls, data):
        machine = cls(scatter_symbol=data.get("scatter_symbol"))
        state = data.get("state")
        if state is not None:
            if state.get("spins_remaining", 0) <= 0:
                raise FeatureStateError(
                    status_message="Persisted free spins state has no spins remaining",
                    details={"state": state}
                )
            machine.state = FreeSpinsState(**state)
        return machine
