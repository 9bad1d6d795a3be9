"""
Paytable resolution: line pays, ways pays, cluster pays and scatter pays.

The engine only depends on ``evaluate(grid, bet) -> WinResult``; any object
with that method can replace WinEvaluator.
"""
from collections import deque
from typing import Dict, List, Optional, Sequence

from slot_engine.models import EMPTY, GameConfig, Grid, PayMode, Win, WinKind, WinResult

# ways wins are priced against a fixed 20-coin stake
WAYS_BET_DIVISOR = 20


def lookup_payout(payouts: Dict[int, float], count: int) -> float:
    """Multiplier for the largest configured count not above ``count``."""
    eligible = [key for key in payouts if key <= count]
    if not eligible:
        return 0.0
    return float(payouts[max(eligible)])


def evaluate_lines(grid: Grid, paylines: Sequence[Sequence[int]], paytable: Dict[str, Dict[int, float]],
                   bet: float, wild_symbol: Optional[str] = None, scatter_symbol: Optional[str] = None) -> List[Win]:
    """Left-to-right line wins, wilds substituting for any paying symbol except scatters."""
    if not paylines:
        return []
    bet_per_line = bet / len(paylines)
    wins = []

    for line_index, line in enumerate(paylines):
        match_symbol = None
        positions = []
        for reel, row in enumerate(line):
            cell = grid.cell(reel, row)
            if cell is EMPTY or cell == scatter_symbol:
                break
            if cell == wild_symbol:
                positions.append((reel, row))
                continue
            if match_symbol is None:
                match_symbol = cell
            elif cell != match_symbol:
                break
            positions.append((reel, row))

        if not positions:
            continue
        if match_symbol is None:
            match_symbol = wild_symbol
        count = len(positions)
        multiplier = paytable.get(match_symbol, {}).get(count, 0.0)
        if multiplier > 0:
            wins.append(Win(
                kind=WinKind.LINE,
                symbol=match_symbol,
                count=count,
                positions=tuple(positions),
                amount=bet_per_line * multiplier,
                line_id=f"line_{line_index + 1}"
            ))
    return wins


def evaluate_ways(grid: Grid, paytable: Dict[str, Dict[int, float]], bet: float,
                  wild_symbol: Optional[str] = None, scatter_symbol: Optional[str] = None) -> List[Win]:
    """
    Left-to-right ways: a symbol pays when it (or a wild) shows anywhere on
    consecutive reels from reel 0. The win is multiplied by the number of ways,
    the product of matching cells per reel, and the bet is spread over
    WAYS_BET_DIVISOR.
    """
    wins = []
    present = {cell for reel in grid.reels for cell in reel}
    for symbol in paytable:
        if symbol in (wild_symbol, scatter_symbol) or symbol not in present:
            continue

        positions = []
        ways = 1
        for reel in range(grid.reel_count):
            matches = [(reel, row) for row in range(grid.row_count)
                       if grid.cell(reel, row) is not EMPTY and grid.cell(reel, row) in (symbol, wild_symbol)]
            if not matches:
                break
            ways *= len(matches)
            positions.extend(matches)

        if not any(grid.cell(*p) == symbol for p in positions):
            continue
        reel_run = positions[-1][0] + 1
        multiplier = paytable[symbol].get(reel_run, 0.0)
        if multiplier > 0:
            wins.append(Win(
                kind=WinKind.WAY,
                symbol=symbol,
                count=reel_run,
                positions=tuple(positions),
                amount=bet / WAYS_BET_DIVISOR * multiplier * ways,
                line_id=f"ways_{symbol}_{ways}"
            ))
    return wins


def evaluate_clusters(grid: Grid, paytable: Dict[str, Dict[int, float]], bet: float, min_cluster_size: int,
                      wild_symbol: Optional[str] = None, scatter_symbol: Optional[str] = None) -> List[Win]:
    """
    Orthogonally connected groups of one symbol. Wilds join every adjacent
    group, so one wild can count towards several clusters.
    """
    wins = []
    seeded = set()

    for start in grid.positions():
        symbol = grid.cell(*start)
        if symbol is EMPTY or symbol in (wild_symbol, scatter_symbol) or start in seeded:
            continue

        component = {start}
        queue = deque([start])
        while queue:
            reel, row = queue.popleft()
            for neighbour in ((reel - 1, row), (reel + 1, row), (reel, row - 1), (reel, row + 1)):
                n_reel, n_row = neighbour
                if not (0 <= n_reel < grid.reel_count and 0 <= n_row < grid.row_count):
                    continue
                if neighbour in component:
                    continue
                if grid.cell(n_reel, n_row) in (symbol, wild_symbol) and grid.cell(n_reel, n_row) is not EMPTY:
                    component.add(neighbour)
                    queue.append(neighbour)
        seeded.update(p for p in component if grid.cell(*p) == symbol)

        size = len(component)
        if size < min_cluster_size:
            continue
        multiplier = lookup_payout(paytable.get(symbol, {}), size)
        if multiplier > 0:
            wins.append(Win(
                kind=WinKind.CLUSTER,
                symbol=symbol,
                count=size,
                positions=tuple(sorted(component)),
                amount=bet * multiplier,
                line_id=f"cluster_{symbol}_{size}"
            ))
    return wins


def evaluate_scatters(grid: Grid, scatter_symbol: Optional[str], scatter_payouts: Dict[int, float], bet: float) -> List[Win]:
    if scatter_symbol is None or not scatter_payouts:
        return []
    positions = grid.positions_of(scatter_symbol)
    multiplier = lookup_payout(scatter_payouts, len(positions))
    if multiplier <= 0:
        return []
    return [Win(
        kind=WinKind.SCATTER,
        symbol=scatter_symbol,
        count=len(positions),
        positions=tuple(positions),
        amount=bet * multiplier,
        line_id="scatter"
    )]


class WinEvaluator:
    """Resolves a grid against the game's paytable."""

    def __init__(self, game_config: GameConfig):
        self.game_config = game_config

    def evaluate(self, grid: Grid, bet: float) -> WinResult:
        cfg = self.game_config
        if cfg.pay_mode == PayMode.CLUSTER:
            wins = evaluate_clusters(grid, cfg.paytable, bet, cfg.min_cluster_size, cfg.wild_symbol, cfg.scatter_symbol)
        elif cfg.pay_mode == PayMode.WAYS:
            wins = evaluate_ways(grid, cfg.paytable, bet, cfg.wild_symbol, cfg.scatter_symbol)
        else:
            wins = evaluate_lines(grid, cfg.paylines, cfg.paytable, bet, cfg.wild_symbol, cfg.scatter_symbol)
        wins.extend(evaluate_scatters(grid, cfg.scatter_symbol, cfg.scatter_payouts, bet))
        return WinResult(tuple(wins))
