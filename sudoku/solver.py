import random
from typing import Callable, Optional, Union

from .counting import count_all_solutions, deadline_from, estimate_solution_count
from .grid import Grid
from .types import CountResult, ProgressState, SolveMode, TraceLog, TraceStep, Values
from .validation import resolve_solve_mode, validate_count_options


def find_solutions(
    known_grid: Union[Grid, Values],
    mode: Union[SolveMode, str] = SolveMode.FIND_ONE,
    max_solutions: Optional[int] = None,
    rng: Optional[random.Random] = None,
    max_nodes: Optional[int] = None,
    trace: bool = False,
    trace_log: Optional[TraceLog] = None,
    trace_steps: Optional[list[TraceStep]] = None,
    trace_meta: Optional[dict[str, bool]] = None,
    trace_max_steps: int = 1000,
) -> tuple[list[Values], int]:
    """Run a solve and return (solutions kept, solution count).

    At most ``max_solutions`` solution grids are kept; the count is not
    affected by that cap.
    """
    grid = known_grid if isinstance(known_grid, Grid) else Grid.from_values(known_grid)
    solve_mode = resolve_solve_mode(mode)
    if max_solutions is not None and max_solutions < 1:
        raise ValueError("max_solutions must be >= 1")

    solutions: list[Values] = []

    def keep(solved: Grid) -> None:
        if max_solutions is None or len(solutions) < max_solutions:
            solutions.append(solved.values())

    count = grid.solve(
        solve_mode,
        callback=keep,
        rng=rng,
        max_nodes=max_nodes,
        trace=trace,
        trace_log=trace_log,
        trace_steps=trace_steps,
        trace_meta=trace_meta,
        trace_max_steps=trace_max_steps,
    )
    return solutions, count


def solve_puzzle(
    known_grid: Union[Grid, Values],
    mode: Union[SolveMode, str] = SolveMode.FIND_ONE,
    rng: Optional[random.Random] = None,
    trace: bool = False,
    trace_log: Optional[TraceLog] = None,
) -> Values:
    solutions, _ = find_solutions(known_grid, mode=mode, max_solutions=1, rng=rng, trace=trace, trace_log=trace_log)
    if not solutions:
        raise ValueError("No valid solution for the provided grid")
    return solutions[0]


def count_solutions(
    known_grid: Union[Grid, Values],
    mode: str = "auto",
    max_seconds: Optional[float] = 2.0,
    max_nodes: Optional[int] = None,
    sample_paths: int = 300,
    stop_requested: Optional[Callable[[], bool]] = None,
    progress_callback: Optional[Callable[[ProgressState], None]] = None,
    progress_interval: int = 200,
    rng: Optional[random.Random] = None,
) -> CountResult:
    validate_count_options(mode, max_seconds, max_nodes, sample_paths, progress_interval)
    grid = known_grid if isinstance(known_grid, Grid) else Grid.from_values(known_grid)

    exact_count = 0
    if mode in {"auto", "exact"}:
        progress_state: ProgressState = {"solutions_found": 0, "nodes_visited": 0}
        exact_count, timed_out = count_all_solutions(
            grid=grid,
            deadline=deadline_from(max_seconds),
            max_nodes=max_nodes,
            stop_requested=stop_requested,
            progress_callback=progress_callback,
            progress_interval=progress_interval,
            progress_state=progress_state,
        )

        if not timed_out:
            return {
                "mode_used": "exact",
                "exact": True,
                "count": exact_count,
                "message": "Exact count completed.",
            }

        if mode == "exact":
            return {
                "mode_used": "exact",
                "exact": False,
                "lower_bound": exact_count,
                "message": "Exact count stopped before completion.",
            }

    estimate, relative_error = estimate_solution_count(grid=grid, sample_paths=sample_paths, rng=rng)

    if mode == "estimate":
        return {
            "mode_used": "estimate",
            "exact": False,
            "estimated_count": estimate,
            "relative_error": relative_error,
            "message": "Estimated count using randomized search-tree sampling.",
        }

    return {
        "mode_used": "auto",
        "exact": False,
        "lower_bound": exact_count,
        "estimated_count": estimate,
        "relative_error": relative_error,
        "message": "Exact count stopped; returning lower bound plus estimate.",
    }
