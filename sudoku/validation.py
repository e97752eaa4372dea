import math
from typing import Optional, Union

from rules.rules import EMPTY_VALUE, MAX_DIMENSION

from .errors import FormatError
from .types import SolveMode, Values


def validate_dimension(dim: int) -> None:
    if not isinstance(dim, int) or isinstance(dim, bool):
        raise ValueError("dimension must be an integer")
    if dim < 1 or dim > MAX_DIMENSION:
        raise ValueError(f"dimension must be between 1 and {MAX_DIMENSION}")


def validate_difficulty(difficulty: int) -> None:
    if not isinstance(difficulty, int) or isinstance(difficulty, bool):
        raise ValueError("difficulty must be an integer")
    if difficulty < 0:
        raise ValueError("difficulty must be >= 0")


def resolve_solve_mode(mode: Union[SolveMode, str]) -> SolveMode:
    try:
        return SolveMode(mode)
    except ValueError:
        allowed = ", ".join(item.value for item in SolveMode)
        raise ValueError(f"mode must be one of: {allowed}") from None


def dimension_for_side(side: int) -> int:
    """Return d such that d * d == side, or raise FormatError."""
    dim = math.isqrt(side)
    if side < 1 or dim * dim != side:
        raise FormatError(f"the side length of the grid must be a square integer, got {side}")
    return dim


def validate_known_grid(values: Values) -> int:
    """Check a square matrix of cell values and return its block dimension."""
    if not isinstance(values, list) or not values:
        raise FormatError("grid must be a non-empty list of rows")

    side = len(values)
    dim = dimension_for_side(side)
    if dim > MAX_DIMENSION:
        raise FormatError(f"grid dimension must be at most {MAX_DIMENSION}")

    for row_index, row in enumerate(values):
        if not isinstance(row, list) or len(row) != side:
            raise FormatError(f"row {row_index} must hold exactly {side} values")
        for value in row:
            if not isinstance(value, int) or isinstance(value, bool):
                raise FormatError("grid entries must be integers")
            if value < EMPTY_VALUE or value > side:
                raise FormatError(f"grid entries must be between {EMPTY_VALUE} and {side}")

    return dim


def validate_count_options(
    mode: str,
    max_seconds: Optional[float],
    max_nodes: Optional[int],
    sample_paths: int,
    progress_interval: int,
) -> None:
    if mode not in {"auto", "exact", "estimate"}:
        raise ValueError("mode must be one of: auto, exact, estimate")
    if max_seconds is not None and max_seconds < 0:
        raise ValueError("max_seconds must be >= 0")
    if max_nodes is not None and max_nodes < 1:
        raise ValueError("max_nodes must be >= 1")
    if sample_paths < 1:
        raise ValueError("sample_paths must be >= 1")
    if progress_interval < 1:
        raise ValueError("progress_interval must be >= 1")
