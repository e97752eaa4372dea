import random
import time
from typing import TYPE_CHECKING, Callable, Optional

from .types import SOLUTION_CAPS, ProgressState, SolutionCallback, SolveMode, TraceLog, TraceStep, UnitType
from .utils import indent, record_step, trace

if TYPE_CHECKING:
    from .grid import Grid


Placement = tuple[int, int, int]


def propagate(
    grid: "Grid",
    on_move: Optional[Callable[[str, int, int, int], None]] = None,
) -> tuple[int, Optional[tuple], int, Optional[tuple[int, int]]]:
    """Place forced values in grid until none is left.

    A value is forced when some unit has a single slot left for it, or when
    some cell has a single candidate left. The unit side is checked first.
    Returns the final (min_alt, alternative, min_cell, position) scan, where
    min_cell is 0 when an empty cell ran out of candidates.
    """
    while True:
        min_alt, alternative = grid.min_alternative()
        min_cell, position = grid.min_remaining()
        if grid.is_full() or min_cell == 0:
            return min_alt, alternative, min_cell, position

        if min_alt == 1:
            unit_type, unit_index, value = alternative
            row, column = grid.slots_for(unit_type, unit_index, value)[0]
            grid.set_value(row, column, value)
            if on_move is not None:
                on_move("deduce_unit", row, column, value)
        elif min_cell == 1:
            row, column = position
            value = grid.cell(row, column).candidates()[0]
            grid.set_value(row, column, value)
            if on_move is not None:
                on_move("deduce_cell", row, column, value)
        else:
            return min_alt, alternative, min_cell, position


def branch_placements(
    grid: "Grid",
    min_alt: int,
    alternative: Optional[tuple],
    min_cell: int,
    position: Optional[tuple[int, int]],
) -> tuple[str, list[Placement]]:
    """Pick the branching axis: the scarcest (unit, value) pair if it beats the most constrained cell."""
    if alternative is not None and min_alt < min_cell:
        unit_type, unit_index, value = alternative
        return "branch_unit", [(row, column, value) for row, column in grid.slots_for(unit_type, unit_index, value)]
    row, column = position
    return "branch_cell", [(row, column, value) for value in grid.cell(row, column).candidates()]


def search_solutions(
    grid: "Grid",
    mode: SolveMode,
    limit: Optional[int],
    callback: Optional[SolutionCallback],
    rng: random.Random,
    deadline: Optional[float],
    max_nodes: Optional[int],
    stop_requested: Optional[Callable[[], bool]],
    progress_callback: Optional[Callable[[ProgressState], None]],
    progress_interval: int,
    progress_state: ProgressState,
    trace_enabled: bool,
    trace_log: Optional[TraceLog],
    trace_steps: Optional[list[TraceStep]],
    trace_meta: Optional[dict[str, bool]],
    trace_max_steps: int,
    depth: int,
) -> tuple[int, bool]:
    """Solve grid in place, recursing on copies at every branching point.

    Returns the number of solutions found below this node, capped by
    ``limit`` (or by the cap of mode at the top level), and whether the
    search was stopped by the deadline, the node budget or stop_requested.
    """
    if limit is None:
        limit = SOLUTION_CAPS[mode]

    progress_state["nodes_visited"] += 1
    if progress_callback is not None and progress_state["nodes_visited"] % progress_interval == 0:
        progress_callback(dict(progress_state))

    if stop_requested is not None and stop_requested():
        return 0, True
    if deadline is not None and time.monotonic() >= deadline:
        return 0, True
    if max_nodes is not None and progress_state["nodes_visited"] > max_nodes:
        return 0, True

    def emit(
        event: str,
        message: str,
        row: Optional[int] = None,
        col: Optional[int] = None,
        value: Optional[int] = None,
        candidates: Optional[list[int]] = None,
    ) -> None:
        if not trace_enabled and trace_steps is None:
            return
        trace(trace_enabled, trace_log, message)
        record_step(
            trace_steps,
            trace_meta,
            trace_max_steps,
            event,
            message,
            depth,
            grid.values(),
            row=row,
            col=col,
            value=value,
            candidates=candidates,
        )

    if grid.conflicts:
        emit("dead_end", f"{indent(depth)}Grid holds {grid.conflicts} conflicting values")
        return 0, False

    def on_move(event: str, row: int, column: int, value: int) -> None:
        reason = "only slot in a unit" if event == "deduce_unit" else "only candidate of the cell"
        emit(event, f"{indent(depth)}Deduce value {value} at ({row}, {column}): {reason}", row=row, col=column, value=value)

    min_alt, alternative, min_cell, position = propagate(grid, on_move)

    if grid.is_full():
        progress_state["solutions_found"] += 1
        emit("solution", f"{indent(depth)}Grid filled; solution {progress_state['solutions_found']} found")
        if callback is not None:
            callback(grid)
        if progress_callback is not None:
            progress_callback(dict(progress_state))
        return 1, False

    if min_cell == 0:
        row, column = position
        emit("dead_end", f"{indent(depth)}No candidate left for ({row}, {column})", row=row, col=column)
        return 0, False

    event, placements = branch_placements(grid, min_alt, alternative, min_cell, position)
    if event == "branch_unit":
        unit_type, unit_index, value = alternative
        message = f"{indent(depth)}Branch on value {value} over {len(placements)} slots of {UnitType(unit_type).name.lower()} {unit_index}"
        emit(event, message, value=value)
    else:
        row, column = position
        message = f"{indent(depth)}Branch on cell ({row}, {column}) with {len(placements)} candidates"
        emit(event, message, row=row, col=column, candidates=[value for _, _, value in placements])

    if mode == SolveMode.FIND_ANY:
        rng.shuffle(placements)

    total = 0
    for row, column, value in placements:
        if limit is not None and total >= limit:
            break
        emit("try_value", f"{indent(depth)}Try value {value} at ({row}, {column})", row=row, col=column, value=value)
        hypothesis = grid.copy()
        hypothesis.set_value(row, column, value)
        count, stopped = search_solutions(
            grid=hypothesis,
            mode=mode,
            limit=None if limit is None else limit - total,
            callback=callback,
            rng=rng,
            deadline=deadline,
            max_nodes=max_nodes,
            stop_requested=stop_requested,
            progress_callback=progress_callback,
            progress_interval=progress_interval,
            progress_state=progress_state,
            trace_enabled=trace_enabled,
            trace_log=trace_log,
            trace_steps=trace_steps,
            trace_meta=trace_meta,
            trace_max_steps=trace_max_steps,
            depth=depth + 1,
        )
        total += count
        if stopped:
            return total, True

    return total, False
