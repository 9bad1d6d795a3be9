from typing import List, Sequence

from slot_engine.error_codes import ErrorCodes
from slot_engine.exceptions import ConfigurationError
from slot_engine.models import Grid
from slot_engine.utils.rng import RandomSource


def sample_stops(strips: Sequence[Sequence[str]], rng: RandomSource) -> List[int]:
    """One uniform stop per reel, drawn in reel order."""
    if not strips:
        raise ConfigurationError(
            status_message="Cannot sample a spin without reel strips",
            error_code=ErrorCodes.INVALID_GEOMETRY
        )
    stops = []
    for reel_index, strip in enumerate(strips):
        if not strip:
            raise ConfigurationError(
                status_message=f"Reel strip {reel_index} is empty",
                error_code=ErrorCodes.INVALID_GEOMETRY
            )
        stops.append(rng.next_index(len(strip)))
    return stops


def window(strips: Sequence[Sequence[str]], stops: Sequence[int], row_count: int) -> Grid:
    """
    Reads ``row_count`` consecutive symbols from each strip starting at its stop,
    wrapping around the end of the strip.
    """
    if not isinstance(row_count, int) or row_count <= 0:
        raise ConfigurationError(
            status_message=f"row_count must be a positive integer, got {row_count!r}",
            error_code=ErrorCodes.INVALID_GEOMETRY
        )
    if len(stops) != len(strips):
        raise ConfigurationError(
            status_message=f"Expected {len(strips)} stops, got {len(stops)}",
            error_code=ErrorCodes.INVALID_GEOMETRY
        )
    reels = []
    for strip, start in zip(strips, stops):
        length = len(strip)
        reels.append([strip[(start + row) % length] for row in range(row_count)])
    return Grid(reels)


def sample(strips: Sequence[Sequence[str]], row_count: int, rng: RandomSource) -> Grid:
    if not isinstance(row_count, int) or row_count <= 0:
        raise ConfigurationError(
            status_message=f"row_count must be a positive integer, got {row_count!r}",
            error_code=ErrorCodes.INVALID_GEOMETRY
        )
    return window(strips, sample_stops(strips, rng), row_count)
