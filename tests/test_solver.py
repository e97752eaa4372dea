import random
import unittest

from sudoku.errors import SearchBudgetExceeded
from sudoku.generator import generate
from sudoku.grid import Grid
from sudoku.search import branch_placements, propagate
from sudoku.solver import count_solutions, find_solutions, solve_puzzle
from sudoku.types import SolveMode, UnitType
from tests.helpers import (
    PUBLISHED_PUZZLE,
    PUBLISHED_SOLUTION,
    SMALL_PUZZLE,
    SMALL_SOLUTION,
    is_valid_solution,
    published_puzzle_values,
)


class TestSolve(unittest.TestCase):
    def test_find_one_returns_published_solution(self) -> None:
        grid = Grid.from_text(PUBLISHED_PUZZLE)
        solutions: list[list[list[int]]] = []
        count = grid.solve(SolveMode.FIND_ONE, callback=lambda solved: solutions.append(solved.values()))
        self.assertEqual(count, 1)
        self.assertEqual(solutions, [PUBLISHED_SOLUTION])

    def test_find_unique_reports_one_for_published_puzzle(self) -> None:
        grid = Grid.from_text(PUBLISHED_PUZZLE)
        self.assertEqual(grid.solve(SolveMode.FIND_UNIQUE), 1)

    def test_solve_does_not_modify_grid(self) -> None:
        grid = Grid.from_text(PUBLISHED_PUZZLE)
        grid.solve(SolveMode.FIND_ALL)
        self.assertEqual(grid.values(), published_puzzle_values())
        self.assertEqual(grid.filled, 30)

    def test_small_puzzle_has_unique_solution(self) -> None:
        grid = Grid.from_values(SMALL_PUZZLE)
        solutions, count = find_solutions(grid, mode=SolveMode.FIND_ALL)
        self.assertEqual(count, 1)
        self.assertEqual(solutions, [SMALL_SOLUTION])

    def test_find_all_enumerates_every_4x4_grid(self) -> None:
        solutions, count = find_solutions(Grid(2), mode="all")
        self.assertEqual(count, 288)
        self.assertEqual(len(solutions), 288)
        self.assertEqual(len({str(solution) for solution in solutions}), 288)
        self.assertTrue(all(is_valid_solution(solution) for solution in solutions))

    def test_find_all_respects_max_solutions_without_changing_count(self) -> None:
        solutions, count = find_solutions(Grid(2), mode="all", max_solutions=5)
        self.assertEqual(count, 288)
        self.assertEqual(len(solutions), 5)

    def test_mode_caps(self) -> None:
        grid = Grid(2)
        self.assertEqual(grid.solve(SolveMode.FIND_ONE), 1)
        self.assertEqual(grid.solve(SolveMode.FIND_ANY, rng=random.Random(3)), 1)
        self.assertEqual(grid.solve(SolveMode.FIND_UNIQUE), 2)

    def test_every_mode_reports_zero_for_duplicated_value(self) -> None:
        values = published_puzzle_values()
        values[0][8] = 5
        grid = Grid.from_values(values)
        for mode in SolveMode:
            self.assertEqual(grid.solve(mode, rng=random.Random(0)), 0)

    def test_every_mode_reports_zero_for_unsatisfiable_grid(self) -> None:
        grid = Grid.from_values(
            [
                [1, 2, 0, 0],
                [0, 0, 0, 3],
                [0, 0, 0, 0],
                [0, 0, 3, 0],
            ]
        )
        self.assertEqual(grid.conflicts, 0)
        for mode in SolveMode:
            self.assertEqual(grid.solve(mode, rng=random.Random(0)), 0)

    def test_find_any_is_reproducible_with_a_seed(self) -> None:
        first: list[list[list[int]]] = []
        second: list[list[list[int]]] = []
        Grid(3).solve(SolveMode.FIND_ANY, callback=lambda solved: first.append(solved.values()), rng=random.Random(11))
        Grid(3).solve(SolveMode.FIND_ANY, callback=lambda solved: second.append(solved.values()), rng=random.Random(11))
        self.assertEqual(first, second)
        self.assertTrue(is_valid_solution(first[0]))

    def test_solutions_of_every_mode_are_valid(self) -> None:
        for mode in SolveMode:
            solutions, _ = find_solutions(Grid(2), mode=mode, rng=random.Random(5))
            self.assertTrue(solutions)
            for solution in solutions:
                self.assertTrue(is_valid_solution(solution))

    def test_node_budget_stops_search(self) -> None:
        with self.assertRaises(SearchBudgetExceeded):
            Grid(3).solve(SolveMode.FIND_ALL, max_nodes=20)

    def test_unknown_mode_raises(self) -> None:
        with self.assertRaises(ValueError):
            Grid(2).solve("every")

    def test_trace_mode_records_search_steps(self) -> None:
        trace_log: list[str] = []
        Grid(2).solve(SolveMode.FIND_ONE, trace=True, trace_log=trace_log)
        self.assertTrue(any("Branch on cell" in line for line in trace_log))
        self.assertTrue(any("Try value" in line for line in trace_log))
        self.assertTrue(any("Deduce value" in line for line in trace_log))

    def test_trace_steps_are_capped(self) -> None:
        trace_steps: list[dict[str, object]] = []
        trace_meta = {"truncated": False}
        Grid(2).solve(SolveMode.FIND_ALL, trace_steps=trace_steps, trace_meta=trace_meta, trace_max_steps=10)
        self.assertEqual(len(trace_steps), 10)
        self.assertTrue(trace_meta["truncated"])
        self.assertIn("grid", trace_steps[0])

    def test_solve_puzzle_raises_when_no_solution_exists(self) -> None:
        with self.assertRaises(ValueError):
            solve_puzzle([[1, 1, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])

    def test_solve_puzzle_returns_solution(self) -> None:
        self.assertEqual(solve_puzzle(published_puzzle_values()), PUBLISHED_SOLUTION)


class TestForcedMovesAndBranching(unittest.TestCase):
    def test_unit_with_single_slot_is_used_before_single_candidate_cell(self) -> None:
        grid = Grid(2)
        grid.set_value(0, 0, 1)
        grid.set_value(0, 1, 2)
        grid.set_value(1, 0, 3)
        # Cell (1, 1) has one candidate left and is also the only slot for 4 in box 0.
        self.assertEqual(grid.cell(1, 1).candidates(), [4])
        self.assertEqual(grid.alternatives(UnitType.BOX, 0, 4), 1)

        moves: list[tuple[str, int, int, int]] = []
        propagate(grid, on_move=lambda event, row, column, value: moves.append((event, row, column, value)))

        self.assertEqual(moves[0], ("deduce_unit", 1, 1, 4))

    def test_branches_on_unit_slots_when_a_value_is_scarcer_than_any_cell(self) -> None:
        grid = Grid(3)
        grid.set_value(1, 3, 1)
        grid.set_value(2, 6, 1)

        moves: list[str] = []
        min_alt, alternative, min_cell, position = propagate(grid, on_move=lambda event, *_: moves.append(event))
        self.assertEqual(moves, [])
        self.assertEqual((min_alt, min_cell), (3, 8))
        self.assertEqual(alternative, (UnitType.ROW, 0, 1))

        event, placements = branch_placements(grid, min_alt, alternative, min_cell, position)
        self.assertEqual(event, "branch_unit")
        self.assertEqual(placements, [(0, 0, 1), (0, 1, 1), (0, 2, 1)])

    def test_branches_on_cell_candidates_when_no_value_is_scarcer(self) -> None:
        grid = Grid(2)
        min_alt, alternative, min_cell, position = propagate(grid)
        self.assertEqual((min_alt, min_cell), (4, 4))

        event, placements = branch_placements(grid, min_alt, alternative, min_cell, position)
        self.assertEqual(event, "branch_cell")
        self.assertEqual(placements, [(0, 0, 1), (0, 0, 2), (0, 0, 3), (0, 0, 4)])

    def test_search_trace_reports_unit_branch(self) -> None:
        grid = Grid(3)
        grid.set_value(1, 3, 1)
        grid.set_value(2, 6, 1)
        trace_steps: list[dict[str, object]] = []
        grid.solve(SolveMode.FIND_ONE, trace_steps=trace_steps, trace_max_steps=5)

        self.assertEqual(trace_steps[0]["event"], "branch_unit")
        self.assertEqual(trace_steps[0]["value"], 1)
        self.assertEqual(trace_steps[1]["event"], "try_value")
        self.assertEqual((trace_steps[1]["row"], trace_steps[1]["col"]), (0, 0))


class TestFill(unittest.TestCase):
    def test_fill_completes_empty_grid(self) -> None:
        grid = Grid(3)
        self.assertTrue(grid.fill(rng=random.Random(1)))
        self.assertTrue(grid.is_full())
        self.assertTrue(is_valid_solution(grid.values()))

    def test_fill_on_solved_grid_is_idempotent(self) -> None:
        grid = Grid.from_values(PUBLISHED_SOLUTION)
        self.assertTrue(grid.fill())
        self.assertEqual(grid.values(), PUBLISHED_SOLUTION)

    def test_fill_keeps_givens(self) -> None:
        grid = Grid.from_text(PUBLISHED_PUZZLE)
        self.assertTrue(grid.fill(rng=random.Random(2)))
        self.assertEqual(grid.values(), PUBLISHED_SOLUTION)
        self.assertTrue(grid.cell(0, 0).fixed)

    def test_fill_leaves_unsolvable_grid_unchanged(self) -> None:
        values = [[1, 1, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]]
        grid = Grid.from_values(values)
        self.assertFalse(grid.fill())
        self.assertEqual(grid.values(), values)


class TestGenerate(unittest.TestCase):
    def test_generated_9x9_puzzle_has_unique_solution(self) -> None:
        puzzle, solution = generate(3, 0, rng=random.Random(7))

        self.assertGreaterEqual(puzzle.filled, 27)
        self.assertEqual(puzzle.solve(SolveMode.FIND_UNIQUE), 1)
        self.assertTrue(is_valid_solution(solution.values()))

        found: list[list[list[int]]] = []
        puzzle.solve(SolveMode.FIND_ONE, callback=lambda solved: found.append(solved.values()))
        self.assertEqual(found, [solution.values()])

    def test_clues_are_fixed_and_match_solution(self) -> None:
        puzzle, solution = Grid.generate(3, 10, rng=random.Random(8))
        self.assertGreaterEqual(puzzle.filled, 37)
        for row in range(9):
            for column in range(9):
                cell = puzzle.cell(row, column)
                self.assertEqual(cell.fixed, cell.is_set)
                if cell.is_set:
                    self.assertEqual(cell.value, solution.cell(row, column).value)

    def test_generates_small_grids(self) -> None:
        for seed in range(5):
            puzzle, _ = generate(2, 0, rng=random.Random(seed))
            self.assertGreaterEqual(puzzle.filled, 8)
            self.assertEqual(puzzle.solve(SolveMode.FIND_ALL), 1)

    def test_generation_is_reproducible_with_a_seed(self) -> None:
        first, _ = generate(3, 5, rng=random.Random(42))
        second, _ = generate(3, 5, rng=random.Random(42))
        self.assertEqual(first.values(), second.values())

    def test_difficulty_beyond_cell_count_gives_full_grid(self) -> None:
        puzzle, solution = generate(2, 100, rng=random.Random(0))
        self.assertTrue(puzzle.is_full())
        self.assertEqual(puzzle.values(), solution.values())

    def test_rejects_negative_difficulty(self) -> None:
        with self.assertRaises(ValueError):
            generate(3, -1)

    def test_generation_trace(self) -> None:
        trace_log: list[str] = []
        generate(2, 0, rng=random.Random(1), trace=True, trace_log=trace_log)
        self.assertTrue(trace_log[0].startswith("Generate puzzle"))
        self.assertTrue(trace_log[-1].startswith("Puzzle unique"))


class TestCountSolutions(unittest.TestCase):
    def test_count_exact_for_empty_4x4(self) -> None:
        result = count_solutions(Grid(2), mode="exact", max_seconds=None)
        self.assertTrue(result["exact"])
        self.assertEqual(result["count"], 288)

    def test_count_exact_accepts_value_matrix(self) -> None:
        result = count_solutions(SMALL_PUZZLE, mode="exact", max_seconds=5.0)
        self.assertEqual(result["count"], 1)

    def test_count_exact_reports_lower_bound_when_node_budget_runs_out(self) -> None:
        result = count_solutions(Grid(3), mode="exact", max_seconds=None, max_nodes=50)
        self.assertFalse(result["exact"])
        self.assertIn("lower_bound", result)

    def test_count_estimate_is_exact_without_branching(self) -> None:
        result = count_solutions(published_puzzle_values(), mode="estimate", sample_paths=5, rng=random.Random(0))
        self.assertFalse(result["exact"])
        self.assertEqual(result["estimated_count"], 1.0)

    def test_count_estimate_for_empty_4x4(self) -> None:
        result = count_solutions(Grid(2), mode="estimate", sample_paths=200, rng=random.Random(0))
        self.assertGreater(result["estimated_count"], 0)
        self.assertIsNotNone(result["relative_error"])

    def test_count_auto_returns_partial_when_timed_out(self) -> None:
        result = count_solutions(Grid(2), mode="auto", max_seconds=0.0, sample_paths=60)
        self.assertFalse(result["exact"])
        self.assertEqual(result["mode_used"], "auto")
        self.assertIn("lower_bound", result)
        self.assertIn("estimated_count", result)

    def test_count_progress_callback_receives_solutions(self) -> None:
        progress: list[dict[str, int]] = []
        count_solutions(Grid(2), mode="exact", max_seconds=None, progress_callback=progress.append, progress_interval=10)
        self.assertTrue(progress)
        self.assertEqual(progress[-1]["solutions_found"], 288)

    def test_count_rejects_unknown_mode(self) -> None:
        with self.assertRaises(ValueError):
            count_solutions(Grid(2), mode="fast")

    def test_count_is_zero_for_conflicting_grid(self) -> None:
        result = count_solutions([[2, 0, 0, 2], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]], mode="exact")
        self.assertEqual(result["count"], 0)


if __name__ == "__main__":
    unittest.main()
