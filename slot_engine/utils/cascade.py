from typing import Iterable, Sequence

from slot_engine.models import EMPTY, Grid, Position
from slot_engine.utils.rng import RandomSource


def clear_positions(grid: Grid, win_positions: Iterable[Position]) -> Grid:
    """Returns a copy of the grid with every winning cell set to EMPTY."""
    new_grid = grid.copy()
    for reel, row in win_positions:
        if 0 <= reel < new_grid.reel_count and 0 <= row < new_grid.row_count:
            new_grid.reels[reel][row] = EMPTY
    return new_grid


def apply_gravity(grid: Grid) -> Grid:
    """Drops the remaining symbols of each reel to the bottom, keeping their order."""
    reels = []
    for reel in grid.reels:
        remaining = [symbol for symbol in reel if symbol is not EMPTY]
        reels.append([EMPTY] * (len(reel) - len(remaining)) + remaining)
    return Grid(reels)


def fill_empty(grid: Grid, rng: RandomSource, fill_symbols: Sequence[str]) -> Grid:
    """
    Fills EMPTY cells with uniform draws from ``fill_symbols``, reel by reel,
    top to bottom.
    """
    if not fill_symbols:
        raise ValueError("fill_empty requires at least one fill symbol")
    new_grid = grid.copy()
    for reel in new_grid.reels:
        for row, symbol in enumerate(reel):
            if symbol is EMPTY:
                reel[row] = fill_symbols[rng.next_index(len(fill_symbols))]
    return new_grid


def cascade(grid: Grid, win_positions: Iterable[Position], rng: RandomSource, fill_symbols: Sequence[str]) -> Grid:
    """
    One cascade step: clear winners, apply gravity per reel, refill from the top.

    A call without winning positions returns the grid untouched and draws
    nothing. The caller owns the iteration cap.
    """
    win_positions = list(win_positions)
    if not win_positions:
        return grid
    cleared = clear_positions(grid, win_positions)
    if not cleared.has_empty():
        return grid
    return fill_empty(apply_gravity(cleared), rng, fill_symbols)
