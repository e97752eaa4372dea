from functools import lru_cache

from .types import UnitType


def to_unit(unit_type: UnitType, row: int, column: int, dim: int) -> tuple[int, int]:
    """Map a (row, column) position to (unit index, position in unit) for the given unit family."""
    if unit_type == UnitType.ROW:
        return row, column
    if unit_type == UnitType.COLUMN:
        return column, row
    return (row // dim) * dim + (column // dim), (row % dim) * dim + (column % dim)


def to_xy(unit_type: UnitType, unit_index: int, position: int, dim: int) -> tuple[int, int]:
    """Inverse of to_unit."""
    if unit_type == UnitType.ROW:
        return unit_index, position
    if unit_type == UnitType.COLUMN:
        return position, unit_index
    return (unit_index // dim) * dim + position // dim, (unit_index % dim) * dim + position % dim


@lru_cache(maxsize=None)
def unit_cells(unit_type: UnitType, unit_index: int, dim: int) -> tuple[tuple[int, int], ...]:
    side = dim * dim
    return tuple(to_xy(unit_type, unit_index, position, dim) for position in range(side))


@lru_cache(maxsize=None)
def units_of(row: int, column: int, dim: int) -> tuple[tuple[UnitType, int], ...]:
    return tuple((unit_type, to_unit(unit_type, row, column, dim)[0]) for unit_type in UnitType)
