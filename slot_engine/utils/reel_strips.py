"""
Weighted reel strip construction and caching.

A strip is built once per (reel index, weight table, volatility) and reused for
every spin until the configuration changes.
"""
import hashlib
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Tuple

from slot_engine.exceptions import InvalidWeightTable
from slot_engine.models import Volatility, WeightTable

logger = logging.getLogger(__name__)

ReelStrip = Tuple[str, ...]


def scaled_count(weight: int, scale: float) -> int:
    """Occurrences of a symbol on the strip: half-up rounding, floor of 1 for any positive weight."""
    if weight <= 0:
        return 0
    scaled = (Decimal(weight) * Decimal(str(scale))).to_integral_value(rounding=ROUND_HALF_UP)
    return max(1, int(scaled))


def strip_counts(reel_index: int, weight_table: WeightTable, volatility) -> List[Tuple[str, int]]:
    scale = Volatility.parse(volatility).strip_scale
    return [(symbol, scaled_count(weight, scale)) for symbol, weight in weight_table.reel_weights(reel_index)]


def build_strip(reel_index: int, weight_table: WeightTable, volatility) -> ReelStrip:
    """
    Expands one reel of the weight table into a concrete symbol sequence.

    Occurrences of each symbol are spread evenly: occurrence k of n sits at
    fractional slot (k + 0.5) / n, and the strip is the stable sort of all
    occurrences by that slot (ties keep weight-table order). Same inputs always
    give the same strip.
    """
    counts = strip_counts(reel_index, weight_table, volatility)
    total = sum(n for _, n in counts)
    if total == 0:
        raise InvalidWeightTable(
            status_message=f"Reel {reel_index} resolves to an empty strip",
            details={"reel": reel_index}
        )

    placements = []
    for order, (symbol, n) in enumerate(counts):
        for k in range(n):
            placements.append(((2 * k + 1) / (2 * n), order, symbol))
    placements.sort(key=lambda item: (item[0], item[1]))
    return tuple(symbol for _, _, symbol in placements)


def config_fingerprint(weight_table: WeightTable, volatility) -> str:
    volatility = Volatility.parse(volatility)
    return hashlib.sha256(f"{weight_table.fingerprint()}:{volatility.value}".encode("utf-8")).hexdigest()


class ReelStripCache:
    """
    Lazily built strips keyed by (reel index, config fingerprint).

    Builds are pure, so two callers racing on the same key just store equal
    tuples; the last write wins.
    """

    def __init__(self):
        self._strips: Dict[Tuple[int, str], ReelStrip] = {}
        self.hits = 0
        self.misses = 0

    def get_strip(self, reel_index: int, weight_table: WeightTable, volatility) -> ReelStrip:
        key = (reel_index, config_fingerprint(weight_table, volatility))
        strip = self._strips.get(key)
        if strip is not None:
            self.hits += 1
            return strip
        self.misses += 1
        strip = build_strip(reel_index, weight_table, volatility)
        self._strips[key] = strip
        logger.debug(f"Built reel strip {reel_index} (length {len(strip)}) for fingerprint {key[1][:12]}")
        return strip

    def get_strips(self, weight_table: WeightTable, volatility) -> List[ReelStrip]:
        return [self.get_strip(i, weight_table, volatility) for i in range(weight_table.reel_count)]

    def invalidate(self):
        dropped = len(self._strips)
        self._strips = {}
        logger.debug(f"Reel strip cache invalidated ({dropped} strips dropped)")

    def __len__(self):
        return len(self._strips)

    def __contains__(self, key):
        return key in self._strips
