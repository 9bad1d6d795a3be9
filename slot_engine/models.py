"""
Plain data types passed between the engine components.

Nothing in here draws randomness or keeps cross-spin state; the types are
validated on construction and then treated as values.
"""
import hashlib
import json
from dataclasses import dataclass, field, asdict
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from slot_engine.error_codes import ErrorCodes
from slot_engine.exceptions import ConfigurationError, InvalidWeightTable

EMPTY = None

Position = Tuple[int, int]  # (reel, row)


class Volatility(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def strip_scale(self) -> float:
        return VOLATILITY_STRIP_SCALE[self]

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(
                status_message=f"Unknown volatility '{value}'",
                details={"volatility": ["Must be one of: low, medium, high."]},
                error_code=ErrorCodes.INVALID_RT_CONFIG
            )


VOLATILITY_STRIP_SCALE = {
    Volatility.HIGH: 0.8,
    Volatility.MEDIUM: 1.0,
    Volatility.LOW: 1.2,
}

TARGET_RTP_MIN = 0.85
TARGET_RTP_MAX = 0.98


@dataclass(frozen=True)
class RTConfig:
    target_rtp: float
    volatility: Volatility
    bonus_frequency: float
    jackpot_frequency: float

    def __post_init__(self):
        object.__setattr__(self, "volatility", Volatility.parse(self.volatility))
        errors = {}
        if not isinstance(self.target_rtp, (int, float)) or not (TARGET_RTP_MIN <= self.target_rtp <= TARGET_RTP_MAX):
            errors["target_rtp"] = [f"Must be between {TARGET_RTP_MIN} and {TARGET_RTP_MAX}."]
        for name in ("bonus_frequency", "jackpot_frequency"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value <= 0:
                errors[name] = ["Must be a positive number of spins."]
        if errors:
            raise ConfigurationError(
                status_message="Invalid RTP configuration",
                details=errors,
                error_code=ErrorCodes.INVALID_RT_CONFIG
            )

    def to_dict(self):
        return {
            "target_rtp": self.target_rtp,
            "volatility": self.volatility.value,
            "bonus_frequency": self.bonus_frequency,
            "jackpot_frequency": self.jackpot_frequency,
        }


class WeightTable:
    """
    Per-symbol base weights plus exactly one override entry per reel.

    An override of ``None`` means the symbol uses its base weight on that reel.
    Symbol order is preserved; it decides strip layout.
    """

    def __init__(self, base_weights: Dict[str, int], reel_overrides: Dict[str, Sequence[Optional[int]]], reel_count: int):
        self._base_weights = dict(base_weights)
        self._reel_overrides = {symbol: list(entries) for symbol, entries in reel_overrides.items()}
        self.reel_count = reel_count
        self._fingerprint = None
        self._validate()

    @classmethod
    def uniform(cls, base_weights: Dict[str, int], reel_count: int):
        """Table where every reel uses the base weights."""
        return cls(base_weights, {symbol: [None] * reel_count for symbol in base_weights}, reel_count)

    @property
    def base_weights(self) -> Mapping[str, int]:
        """Read-only view; change weights through set_weight."""
        return MappingProxyType(self._base_weights)

    @property
    def reel_overrides(self) -> Mapping[str, Tuple[Optional[int], ...]]:
        return MappingProxyType({symbol: tuple(entries) for symbol, entries in self._reel_overrides.items()})

    @property
    def symbols(self) -> List[str]:
        return list(self._base_weights.keys())

    def weight_for(self, symbol: str, reel_index: int) -> int:
        override = self._reel_overrides[symbol][reel_index]
        return self._base_weights[symbol] if override is None else override

    def reel_weights(self, reel_index: int) -> List[Tuple[str, int]]:
        if not 0 <= reel_index < self.reel_count:
            raise InvalidWeightTable(
                status_message=f"Reel index {reel_index} out of range for {self.reel_count} reels",
                details={"reel_index": reel_index}
            )
        return [(symbol, self.weight_for(symbol, reel_index)) for symbol in self.symbols]

    def set_weight(self, symbol: str, weight: int, reel_index: Optional[int] = None):
        """
        Changes a base weight (``reel_index`` None) or one reel override, then
        revalidates. Any change produces a new fingerprint, so cached strips for
        the old table are no longer served.
        """
        if symbol not in self._base_weights:
            raise InvalidWeightTable(status_message=f"Unknown symbol '{symbol}'", details={"symbol": symbol})
        if reel_index is not None and (not isinstance(reel_index, int) or not 0 <= reel_index < self.reel_count):
            raise InvalidWeightTable(
                status_message=f"Reel index {reel_index} out of range for {self.reel_count} reels",
                details={"reel_index": reel_index}
            )
        previous_base = self._base_weights[symbol]
        previous_entries = list(self._reel_overrides[symbol])
        if reel_index is None:
            self._base_weights[symbol] = weight
        else:
            self._reel_overrides[symbol][reel_index] = weight
        try:
            self._validate()
        except InvalidWeightTable:
            self._base_weights[symbol] = previous_base
            self._reel_overrides[symbol] = previous_entries
            raise
        self._fingerprint = None

    def fingerprint(self) -> str:
        if self._fingerprint is None:
            canonical = json.dumps(self.to_dict(), sort_keys=False, separators=(",", ":"))
            self._fingerprint = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return self._fingerprint

    def to_dict(self):
        return {
            "reel_count": self.reel_count,
            "symbols": [
                {"id": symbol, "weight": self._base_weights[symbol], "reel_weights": list(self._reel_overrides[symbol])}
                for symbol in self.symbols
            ],
        }

    def _validate(self):
        if not isinstance(self.reel_count, int) or self.reel_count <= 0:
            raise InvalidWeightTable(
                status_message="Weight table reel_count must be a positive integer",
                details={"reel_count": self.reel_count}
            )
        if not self._base_weights:
            raise InvalidWeightTable(status_message="Weight table has no symbols")

        for symbol, weight in self._base_weights.items():
            if not _is_weight(weight):
                raise InvalidWeightTable(
                    status_message=f"Base weight for symbol '{symbol}' must be a non-negative integer",
                    details={"symbol": symbol, "weight": weight}
                )
            entries = self._reel_overrides.get(symbol)
            if entries is None or len(entries) != self.reel_count:
                raise InvalidWeightTable(
                    status_message=f"Symbol '{symbol}' must have exactly {self.reel_count} reel weight entries",
                    details={"symbol": symbol, "entries": None if entries is None else len(entries)}
                )
            for reel_index, override in enumerate(entries):
                if override is not None and not _is_weight(override):
                    raise InvalidWeightTable(
                        status_message=f"Reel {reel_index} weight for symbol '{symbol}' must be a non-negative integer",
                        details={"symbol": symbol, "reel": reel_index, "weight": override}
                    )

        unknown = set(self._reel_overrides) - set(self._base_weights)
        if unknown:
            raise InvalidWeightTable(
                status_message="Reel overrides reference unknown symbols",
                details={"symbols": sorted(unknown)}
            )

        for reel_index in range(self.reel_count):
            if not any(self.weight_for(symbol, reel_index) > 0 for symbol in self.symbols):
                raise InvalidWeightTable(
                    status_message=f"Reel {reel_index} has no symbol with a positive weight",
                    details={"reel": reel_index}
                )


def _is_weight(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class Grid:
    """
    Visible symbol window, stored reel-major: ``reels[reel][row]`` with row 0 on top.
    EMPTY cells only exist transiently inside a cascade step.
    """

    def __init__(self, reels: Sequence[Sequence[Optional[str]]]):
        self.reels: List[List[Optional[str]]] = [list(reel) for reel in reels]
        if not self.reels or not self.reels[0]:
            raise ConfigurationError(
                status_message="Grid must have at least one reel and one row",
                error_code=ErrorCodes.INVALID_GEOMETRY
            )
        if any(len(reel) != len(self.reels[0]) for reel in self.reels):
            raise ConfigurationError(
                status_message="Grid reels must all have the same number of rows",
                error_code=ErrorCodes.INVALID_GEOMETRY
            )

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Optional[str]]]):
        return cls([list(column) for column in zip(*rows)])

    @property
    def reel_count(self) -> int:
        return len(self.reels)

    @property
    def row_count(self) -> int:
        return len(self.reels[0])

    def cell(self, reel: int, row: int) -> Optional[str]:
        return self.reels[reel][row]

    def positions(self):
        for reel in range(self.reel_count):
            for row in range(self.row_count):
                yield reel, row

    def positions_of(self, symbol: str) -> List[Position]:
        return [(reel, row) for reel, row in self.positions() if self.reels[reel][row] == symbol]

    def count(self, symbol: Optional[str]) -> int:
        if symbol is None:
            return 0
        return sum(reel.count(symbol) for reel in self.reels)

    def has_empty(self) -> bool:
        return any(cell is EMPTY for reel in self.reels for cell in reel)

    def reel_contains(self, reel: int, symbol: str) -> bool:
        return symbol in self.reels[reel]

    def copy(self):
        return Grid(self.reels)

    def to_rows(self) -> List[List[Optional[str]]]:
        return [list(row) for row in zip(*self.reels)]

    def __eq__(self, other):
        return isinstance(other, Grid) and self.reels == other.reels

    def __repr__(self):
        return f"<Grid {self.reel_count}x{self.row_count} rows={self.to_rows()}>"


class WinKind(str, Enum):
    LINE = "line"
    WAY = "way"
    CLUSTER = "cluster"
    SCATTER = "scatter"


@dataclass(frozen=True)
class Win:
    kind: WinKind
    symbol: str
    count: int
    positions: Tuple[Position, ...]
    amount: float
    line_id: Optional[str] = None

    def to_dict(self):
        return {
            "type": self.kind.value,
            "line_id": self.line_id,
            "symbol": self.symbol,
            "count": self.count,
            "positions": [list(p) for p in self.positions],
            "amount": self.amount,
        }


@dataclass(frozen=True)
class WinResult:
    wins: Tuple[Win, ...] = ()

    @property
    def total_win(self) -> float:
        return sum(win.amount for win in self.wins)

    @property
    def win_positions(self) -> List[Position]:
        seen = set()
        for win in self.wins:
            seen.update(win.positions)
        return sorted(seen)

    def __bool__(self):
        return bool(self.wins)

    def to_dict(self):
        return {"total_win": self.total_win, "wins": [win.to_dict() for win in self.wins]}


# --- Bonus feature events ---

class FeatureType(str, Enum):
    FREESPINS = "freespins"
    MULTIPLIER = "multiplier"
    CASCADE = "cascade"
    BONUS_GAME = "bonus_game"
    EXPANDING_WILD = "expanding_wild"


@dataclass(frozen=True)
class BonusFeature:
    type = None
    triggered = True

    def to_dict(self):
        return {"type": self.type.value, "triggered": self.triggered, "data": asdict(self)}


@dataclass(frozen=True)
class FreeSpinsFeature(BonusFeature):
    type = FeatureType.FREESPINS
    scatter_count: int
    spins_awarded: int
    multiplier: int


@dataclass(frozen=True)
class CascadeFeature(BonusFeature):
    type = FeatureType.CASCADE
    multipliers: Tuple[int, ...] = (1, 2, 3, 5, 8, 10)
    max_cascades: int = 6

    def multiplier_for_step(self, step: int) -> int:
        return self.multipliers[min(step, len(self.multipliers) - 1)]


@dataclass(frozen=True)
class ExpandingWildFeature(BonusFeature):
    type = FeatureType.EXPANDING_WILD
    reels: Tuple[int, ...]


@dataclass(frozen=True)
class RandomMultiplierFeature(BonusFeature):
    type = FeatureType.MULTIPLIER
    multiplier: int


@dataclass(frozen=True)
class BonusGameFeature(BonusFeature):
    type = FeatureType.BONUS_GAME
    symbol_count: int


@dataclass
class FreeSpinsState:
    spins_remaining: int
    total_spins_awarded: int
    win_multiplier: int
    retrigger_count: int = 0
    accumulated_win: float = 0.0

    def to_dict(self):
        return asdict(self)


# --- Game configuration ---

class PayMode(str, Enum):
    LINES = "lines"
    WAYS = "ways"
    CLUSTER = "cluster"


@dataclass
class GameConfig:
    name: str
    reel_count: int
    row_count: int
    weight_table: WeightTable
    rt_config: RTConfig
    paytable: Dict[str, Dict[int, float]]
    pay_mode: PayMode = PayMode.LINES
    paylines: List[List[int]] = field(default_factory=list)
    scatter_symbol: Optional[str] = None
    wild_symbol: Optional[str] = None
    bonus_symbol: Optional[str] = None
    scatter_payouts: Dict[int, float] = field(default_factory=dict)
    min_cluster_size: int = 5
    cascades_enabled: bool = True
    cascade_fill_symbols: List[str] = field(default_factory=list)
    force_outcomes: bool = False
    jackpot_symbol: Optional[str] = None

    def __post_init__(self):
        self.pay_mode = PayMode(self.pay_mode)
        errors = {}
        if not isinstance(self.reel_count, int) or self.reel_count <= 0:
            errors["reel_count"] = ["Must be a positive integer."]
        if not isinstance(self.row_count, int) or self.row_count <= 0:
            errors["row_count"] = ["Must be a positive integer."]
        if errors:
            raise ConfigurationError(
                status_message=f"Invalid grid geometry for game '{self.name}'",
                details=errors,
                error_code=ErrorCodes.INVALID_GEOMETRY
            )

        if self.weight_table.reel_count != self.reel_count:
            errors["weight_table"] = [f"Has {self.weight_table.reel_count} reels, game has {self.reel_count}."]

        known = set(self.weight_table.symbols)
        for key in ("scatter_symbol", "wild_symbol", "bonus_symbol", "jackpot_symbol"):
            symbol = getattr(self, key)
            if symbol is not None and symbol not in known:
                errors[key] = [f"Symbol '{symbol}' is not in the weight table."]
        for symbol in self.paytable:
            if symbol not in known:
                errors.setdefault("paytable", []).append(f"Symbol '{symbol}' is not in the weight table.")

        for i, line in enumerate(self.paylines):
            if len(line) != self.reel_count or not all(isinstance(r, int) and 0 <= r < self.row_count for r in line):
                errors.setdefault("paylines", []).append(f"Payline {i} must list one row index per reel.")
        if self.pay_mode == PayMode.LINES and not self.paylines:
            errors["paylines"] = ["Line-pay games need at least one payline."]
        if self.pay_mode == PayMode.CLUSTER and self.min_cluster_size < 2:
            errors["min_cluster_size"] = ["Must be at least 2."]

        if not self.cascade_fill_symbols:
            special = {self.scatter_symbol, self.wild_symbol, self.bonus_symbol}
            self.cascade_fill_symbols = [s for s in self.weight_table.symbols if s not in special]
        unknown_fill = [s for s in self.cascade_fill_symbols if s not in known]
        if unknown_fill:
            errors["cascade_fill_symbols"] = [f"Unknown symbols: {unknown_fill}."]
        if not self.cascade_fill_symbols:
            errors["cascade_fill_symbols"] = ["No regular symbols available for cascade fill."]

        if self.force_outcomes:
            if self.scatter_symbol is None:
                errors["scatter_symbol"] = ["Required when force_outcomes is enabled."]
            if self.jackpot_symbol is None:
                errors["jackpot_symbol"] = ["Required when force_outcomes is enabled."]

        if errors:
            raise ConfigurationError(
                status_message=f"Invalid game configuration '{self.name}'",
                details=errors
            )

    def fingerprint(self) -> str:
        return self.weight_table.fingerprint()
