import math
import random
import time
from typing import Callable, Optional

from .grid import Grid
from .search import branch_placements, propagate, search_solutions
from .types import ProgressState, SolveMode


def count_all_solutions(
    grid: Grid,
    deadline: Optional[float],
    max_nodes: Optional[int],
    stop_requested: Optional[Callable[[], bool]],
    progress_callback: Optional[Callable[[ProgressState], None]],
    progress_interval: int,
    progress_state: ProgressState,
) -> tuple[int, bool]:
    return search_solutions(
        grid=grid.copy(),
        mode=SolveMode.FIND_ALL,
        limit=None,
        callback=None,
        rng=random.Random(),
        deadline=deadline,
        max_nodes=max_nodes,
        stop_requested=stop_requested,
        progress_callback=progress_callback,
        progress_interval=progress_interval,
        progress_state=progress_state,
        trace_enabled=False,
        trace_log=None,
        trace_steps=None,
        trace_meta=None,
        trace_max_steps=0,
        depth=0,
    )


def estimate_solution_count(
    grid: Grid,
    sample_paths: int,
    rng: Optional[random.Random] = None,
) -> tuple[float, Optional[float]]:
    """Estimate the number of solutions by sampling random root-to-leaf paths.

    Each path follows the solver: propagate forced values, then pick one
    branch uniformly at random. The product of the branching factors along
    a path that ends on a solution is an unbiased estimate of the count.
    """
    rng = rng if rng is not None else random.Random()
    estimates: list[float] = []

    for _ in range(sample_paths):
        if grid.conflicts:
            estimates.append(0.0)
            continue

        sim_grid = grid.copy()
        weight = 1.0

        while True:
            min_alt, alternative, min_cell, position = propagate(sim_grid)
            if sim_grid.is_full():
                estimates.append(weight)
                break
            if min_cell == 0:
                estimates.append(0.0)
                break

            _, placements = branch_placements(sim_grid, min_alt, alternative, min_cell, position)
            weight *= len(placements)
            row, column, value = rng.choice(placements)
            sim_grid.set_value(row, column, value)

    mean_estimate = sum(estimates) / len(estimates)
    if len(estimates) < 2 or mean_estimate == 0:
        return mean_estimate, None

    variance = sum((value - mean_estimate) ** 2 for value in estimates) / (len(estimates) - 1)
    std_error = math.sqrt(variance / len(estimates))
    relative_error = std_error / mean_estimate
    return mean_estimate, relative_error


def deadline_from(max_seconds: Optional[float]) -> Optional[float]:
    return None if max_seconds is None else time.monotonic() + max_seconds
