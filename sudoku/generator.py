import random
from typing import Optional

from .errors import SudokuError
from .grid import Grid
from .types import SolveMode, TraceLog
from .utils import trace as _trace
from .validation import validate_difficulty, validate_dimension


def generate(
    dimension: int,
    difficulty: int,
    rng: Optional[random.Random] = None,
    trace: bool = False,
    trace_log: Optional[TraceLog] = None,
) -> tuple[Grid, Grid]:
    """Build a puzzle with exactly one solution; returns (puzzle, solution).

    The puzzle starts with ``side * dimension + difficulty`` clues copied at
    random from a random full grid. Clues are then added one at a time until
    the puzzle has a unique solution. Clues are marked fixed.
    """
    validate_dimension(dimension)
    validate_difficulty(difficulty)
    rng = rng if rng is not None else random.Random()

    solution = Grid(dimension)
    if not solution.fill(rng=rng):
        raise SudokuError(f"could not fill an empty grid of dimension {dimension}")

    side = solution.side_length()
    target_clues = min(side * dimension + difficulty, side * side)
    _trace(trace, trace_log, f"Generate puzzle: dimension={dimension}, difficulty={difficulty}, clues={target_clues}")

    puzzle = Grid(dimension)
    while puzzle.filled < target_clues:
        add_random_clue(puzzle, solution, rng)

    while puzzle.solve(SolveMode.FIND_UNIQUE) != 1:
        row, column = add_random_clue(puzzle, solution, rng)
        _trace(trace, trace_log, f"Puzzle not unique; add clue {solution.cell(row, column).value} at ({row}, {column})")

    _trace(trace, trace_log, f"Puzzle unique with {puzzle.filled} clues")
    return puzzle, solution


def add_random_clue(puzzle: Grid, solution: Grid, rng: random.Random) -> tuple[int, int]:
    """Copy the solution value of a uniformly chosen empty cell into puzzle as a fixed clue."""
    side = puzzle.side_length()
    empty = [(row, column) for row in range(side) for column in range(side) if not puzzle.cell(row, column).is_set]
    row, column = rng.choice(empty)
    puzzle.set_value(row, column, solution.cell(row, column).value, fixed=True)
    return row, column

