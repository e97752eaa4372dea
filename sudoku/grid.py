import io
import random
from typing import Optional, TextIO, Union

from rules.rules import DEFAULT_DIMENSION, EMPTY_VALUE, MIN_VALUE

from .cell import Cell
from .coords import to_xy, unit_cells, units_of
from .errors import FormatError, InvalidMutation, SearchBudgetExceeded
from .search import search_solutions
from .types import SolutionCallback, SolveMode, TraceLog, TraceStep, UnitType, Values
from .validation import resolve_solve_mode, validate_dimension, validate_known_grid


AlternativeKey = tuple[UnitType, int, int]


class Grid:
    """A sudoku board of block size ``dim`` and side ``dim * dim``.

    Besides the cells, the grid maintains the alternatives table: for every
    (unit type, unit index, value) the number of cells of that unit where the
    value is still possible. The table and the cell possibility sets are only
    ever changed by ``set_value``, which keeps both consistent.
    """

    def __init__(self, dim: int = DEFAULT_DIMENSION) -> None:
        validate_dimension(dim)
        self._dim = dim
        self._side = dim * dim
        self._cells = [Cell(self._side) for _ in range(self._side * self._side)]
        self._alternatives = [self._side] * (len(UnitType) * self._side * self._side)
        self._filled = 0
        self._conflicts = 0

    @classmethod
    def from_values(cls, values: Values, fixed: bool = True) -> "Grid":
        """Build a grid from a matrix of values, 0 standing for an empty cell."""
        grid = cls(validate_known_grid(values))
        for row, row_values in enumerate(values):
            for column, value in enumerate(row_values):
                if value != EMPTY_VALUE:
                    grid.set_value(row, column, value, fixed=fixed)
        return grid

    @classmethod
    def from_stream(cls, stream: TextIO, fixed: bool = True) -> "Grid":
        """Read the line-oriented text format.

        Each non-blank line holds the whitespace separated values of one row.
        The token count of the first line gives the side length, which must be
        a square integer; every other row must have the same length.
        """
        values: Values = []
        for line in stream:
            tokens = line.split()
            if not tokens:
                continue
            try:
                row = [int(token) for token in tokens]
            except ValueError:
                raise FormatError(f"row {len(values)} contains a non-numeric value") from None
            if values and len(row) != len(values[0]):
                raise FormatError(f"row {len(values)} has {len(row)} values, expected {len(values[0])}")
            values.append(row)

        if not values:
            raise FormatError("the grid is empty")
        if len(values) != len(values[0]):
            raise FormatError(f"the grid has {len(values)} rows, expected {len(values[0])}")
        return cls.from_values(values, fixed=fixed)

    @classmethod
    def from_text(cls, text: str, fixed: bool = True) -> "Grid":
        return cls.from_stream(io.StringIO(text), fixed=fixed)

    def copy(self) -> "Grid":
        clone = Grid.__new__(Grid)
        clone._dim = self._dim
        clone._side = self._side
        clone._cells = [cell.copy() for cell in self._cells]
        clone._alternatives = self._alternatives[:]
        clone._filled = self._filled
        clone._conflicts = self._conflicts
        return clone

    __copy__ = copy

    def __deepcopy__(self, memo: dict) -> "Grid":
        return self.copy()

    def dim(self) -> int:
        return self._dim

    def side_length(self) -> int:
        return self._side

    @property
    def filled(self) -> int:
        return self._filled

    @property
    def conflicts(self) -> int:
        """Number of placements that contradicted an earlier value in one of their units."""
        return self._conflicts

    def is_full(self) -> bool:
        return self._filled == len(self._cells)

    def cell(self, row: int, column: int) -> Cell:
        if not (0 <= row < self._side and 0 <= column < self._side):
            raise IndexError(f"position ({row}, {column}) is outside a {self._side}x{self._side} grid")
        return self._cells[row * self._side + column]

    def unit_cell(self, unit_type: UnitType, unit_index: int, position: int) -> Cell:
        row, column = to_xy(UnitType(unit_type), unit_index, position, self._dim)
        return self.cell(row, column)

    def alternatives(self, unit_type: UnitType, unit_index: int, value: int) -> int:
        return self._alternatives[self._alternative_index(unit_type, unit_index, value)]

    def values(self) -> Values:
        side = self._side
        return [[cell.value for cell in self._cells[row * side : (row + 1) * side]] for row in range(side)]

    def fixed_mask(self) -> list[list[bool]]:
        side = self._side
        return [[cell.fixed for cell in self._cells[row * side : (row + 1) * side]] for row in range(side)]

    def set_value(self, row: int, column: int, value: int, fixed: bool = False) -> None:
        """Place value in an empty cell and propagate the consequences.

        Every other value that was possible in the cell loses one slot in
        the three units of the cell. Every peer that still allowed value
        loses it, and each unit of that peer loses one slot for value.
        Finally value has no slot left in the units of the cell.
        """
        self._check_position(row, column)
        if not isinstance(value, int) or not MIN_VALUE <= value <= self._side:
            raise InvalidMutation(f"value must be between {MIN_VALUE} and {self._side}, got {value!r}")
        cell = self._cells[row * self._side + column]
        if cell.is_set:
            raise InvalidMutation(f"cell ({row}, {column}) already holds {cell.value}")

        if not cell.is_possible(value):
            self._conflicts += 1
        cell.value = value
        cell.fixed = fixed
        self._filled += 1

        own_units = units_of(row, column, self._dim)
        for other in cell.discard_possibilities():
            if other == value:
                continue
            for unit_type, unit_index in own_units:
                self._decrement_alternative(unit_type, unit_index, other)

        for unit_type, unit_index in own_units:
            for peer_row, peer_column in unit_cells(unit_type, unit_index, self._dim):
                peer = self._cells[peer_row * self._side + peer_column]
                if peer.is_set or not peer.clear_possible(value):
                    continue
                for peer_type, peer_unit in units_of(peer_row, peer_column, self._dim):
                    self._decrement_alternative(peer_type, peer_unit, value)
            self._alternatives[self._alternative_index(unit_type, unit_index, value)] = 0

    def min_alternative(self) -> tuple[int, Optional[AlternativeKey]]:
        """Smallest positive entry of the alternatives table, side + 1 when there is none."""
        side = self._side
        best = side + 1
        best_index = None
        for index, count in enumerate(self._alternatives):
            if 0 < count < best:
                best = count
                best_index = index
                if count == 1:
                    break
        if best_index is None:
            return best, None
        unit_type, rest = divmod(best_index, side * side)
        unit_index, value_offset = divmod(rest, side)
        return best, (UnitType(unit_type), unit_index, value_offset + MIN_VALUE)

    def min_remaining(self) -> tuple[int, Optional[tuple[int, int]]]:
        """Smallest remaining count among empty cells, side + 1 when the grid is full.

        A result of 0 means an empty cell has no candidate left.
        """
        side = self._side
        best = side + 1
        best_position = None
        for index, cell in enumerate(self._cells):
            if cell.is_set:
                continue
            if cell.remaining_count < best:
                best = cell.remaining_count
                best_position = divmod(index, side)
                if best <= 1:
                    break
        return best, best_position

    def slots_for(self, unit_type: UnitType, unit_index: int, value: int) -> list[tuple[int, int]]:
        """Positions of the empty cells of a unit that still allow value, in unit order."""
        slots = []
        for row, column in unit_cells(unit_type, unit_index, self._dim):
            cell = self._cells[row * self._side + column]
            if not cell.is_set and cell.is_possible(value):
                slots.append((row, column))
        return slots

    def solve(
        self,
        mode: Union[SolveMode, str] = SolveMode.FIND_ONE,
        callback: Optional[SolutionCallback] = None,
        rng: Optional[random.Random] = None,
        max_nodes: Optional[int] = None,
        trace: bool = False,
        trace_log: Optional[TraceLog] = None,
        trace_steps: Optional[list[TraceStep]] = None,
        trace_meta: Optional[dict[str, bool]] = None,
        trace_max_steps: int = 1000,
    ) -> int:
        """Count the solutions of a copy of this grid, up to the cap of mode.

        ``callback`` is called with every solved grid. The grid itself is
        never modified.
        """
        solve_mode = resolve_solve_mode(mode)
        progress_state = {"solutions_found": 0, "nodes_visited": 0}
        count, stopped = search_solutions(
            grid=self.copy(),
            mode=solve_mode,
            limit=None,
            callback=callback,
            rng=rng if rng is not None else random.Random(),
            deadline=None,
            max_nodes=max_nodes,
            stop_requested=None,
            progress_callback=None,
            progress_interval=1,
            progress_state=progress_state,
            trace_enabled=trace,
            trace_log=trace_log,
            trace_steps=trace_steps,
            trace_meta=trace_meta,
            trace_max_steps=trace_max_steps,
            depth=0,
        )
        if stopped:
            raise SearchBudgetExceeded(max_nodes, count)
        return count

    def fill(self, rng: Optional[random.Random] = None) -> bool:
        """Replace the content of the grid by a random solution; False when there is none."""
        found: list[Grid] = []
        if self.solve(SolveMode.FIND_ANY, callback=found.append, rng=rng) == 0:
            return False
        solution = found[0]
        self._cells = [cell.copy() for cell in solution._cells]
        self._alternatives = solution._alternatives[:]
        self._filled = solution._filled
        return True

    @staticmethod
    def generate(
        dimension: int = DEFAULT_DIMENSION,
        difficulty: int = 0,
        rng: Optional[random.Random] = None,
        trace: bool = False,
        trace_log: Optional[TraceLog] = None,
    ) -> tuple["Grid", "Grid"]:
        from .generator import generate

        return generate(dimension, difficulty, rng=rng, trace=trace, trace_log=trace_log)

    def write_to_stream(self, stream: TextIO, delimiter: str = " ") -> None:
        for row in self.values():
            stream.write(delimiter.join(str(value) for value in row))
            stream.write("\n")

    def to_text(self, delimiter: str = " ") -> str:
        buffer = io.StringIO()
        self.write_to_stream(buffer, delimiter=delimiter)
        return buffer.getvalue()

    def __str__(self) -> str:
        return self.to_text()

    def __repr__(self) -> str:
        return f"Grid(dim={self._dim}, filled={self._filled}/{len(self._cells)})"

    def _check_position(self, row: int, column: int) -> None:
        if not (0 <= row < self._side and 0 <= column < self._side):
            raise InvalidMutation(f"position ({row}, {column}) is outside a {self._side}x{self._side} grid")

    def _alternative_index(self, unit_type: UnitType, unit_index: int, value: int) -> int:
        return (int(unit_type) * self._side + unit_index) * self._side + value - MIN_VALUE

    def _decrement_alternative(self, unit_type: UnitType, unit_index: int, value: int) -> None:
        index = self._alternative_index(unit_type, unit_index, value)
        if self._alternatives[index] > 0:
            self._alternatives[index] -= 1
