import argparse
import json
import random
from pathlib import Path
from typing import Any, Optional

from rules.rules import DEFAULT_DIFFICULTY, DEFAULT_DIMENSION, DEFAULT_MAX_SOLUTIONS
from sudoku.grid import Grid
from sudoku.solver import count_solutions, find_solutions
from sudoku.types import SolveMode
from sudoku.utils import format_grid_rows


def load_grid_from_file(input_path: str) -> Grid:
    path = Path(input_path)
    try:
        with path.open(encoding="utf-8") as stream:
            return Grid.from_stream(stream)
    except FileNotFoundError as exc:
        raise ValueError(f"input file not found: {input_path}") from exc


def run_solve(
    grid: Grid,
    mode: str = SolveMode.FIND_ONE.value,
    seed: Optional[int] = None,
    trace: bool = False,
    max_solutions: Optional[int] = DEFAULT_MAX_SOLUTIONS,
) -> dict[str, Any]:
    trace_log: list[str] = []
    solutions, count = find_solutions(
        grid,
        mode=mode,
        max_solutions=max_solutions,
        rng=random.Random(seed),
        trace=trace,
        trace_log=trace_log,
    )
    if count == 0:
        raise ValueError("No valid solution for the provided grid")

    result: dict[str, Any] = {"count": count, "solutions": solutions}
    if trace:
        result["trace"] = trace_log
    return result


def run_generate(
    dimension: int = DEFAULT_DIMENSION,
    difficulty: int = DEFAULT_DIFFICULTY,
    seed: Optional[int] = None,
) -> tuple[Grid, Grid]:
    return Grid.generate(dimension, difficulty, rng=random.Random(seed))


def _write_text(path: Optional[str], grid: Grid) -> None:
    if path is None:
        return
    Path(path).write_text(grid.to_text(), encoding="utf-8")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate and solve sudoku grids of any block size")
    subparsers = parser.add_subparsers(dest="command", required=True)

    solve_parser = subparsers.add_parser("solve", help="Solve a grid stored in the text format")
    solve_parser.add_argument("--input", required=True, help="Path to a text file with one row of values per line, 0 for empty cells")
    solve_parser.add_argument("--mode", default=SolveMode.FIND_ONE.value, choices=[mode.value for mode in SolveMode])
    solve_parser.add_argument("--seed", type=int, default=None, help="Seed for the random choices of mode 'any'")
    solve_parser.add_argument(
        "--max-solutions",
        type=int,
        default=DEFAULT_MAX_SOLUTIONS,
        help="Print at most this many solution grids in mode 'all'; the count still covers every solution",
    )
    solve_parser.add_argument("--trace", action="store_true", help="Include solver trace output")
    solve_parser.add_argument("--json", action="store_true", help="Print a JSON document instead of text grids")

    generate_parser = subparsers.add_parser("generate", help="Generate a puzzle with a unique solution")
    generate_parser.add_argument("--dimension", type=int, default=DEFAULT_DIMENSION, help="Block size, 3 for a classic 9x9 grid")
    generate_parser.add_argument("--difficulty", type=int, default=DEFAULT_DIFFICULTY, help="Extra clues on top of the minimum; larger is easier")
    generate_parser.add_argument("--seed", type=int, default=None)
    generate_parser.add_argument("--output", default=None, help="Write the puzzle to this file")
    generate_parser.add_argument("--solution-output", default=None, help="Write the solution to this file")
    generate_parser.add_argument("--json", action="store_true", help="Print a JSON document instead of text grids")

    count_parser = subparsers.add_parser("count", help="Count the solutions of a grid")
    count_parser.add_argument("--input", required=True)
    count_parser.add_argument("--mode", default="auto", choices=["auto", "exact", "estimate"])
    count_parser.add_argument("--max-seconds", type=float, default=2.0)
    count_parser.add_argument("--max-nodes", type=int, default=None)
    count_parser.add_argument("--sample-paths", type=int, default=300)
    count_parser.add_argument("--seed", type=int, default=None)
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = _build_parser().parse_args(argv)

    try:
        if args.command == "solve":
            result = run_solve(
                load_grid_from_file(args.input),
                mode=args.mode,
                seed=args.seed,
                trace=args.trace,
                max_solutions=args.max_solutions,
            )
            if args.json:
                print(json.dumps(result, indent=2))
                return
            for line in result.get("trace", []):
                print(line)
            blocks = ["\n".join(format_grid_rows(solution)) for solution in result["solutions"]]
            print("\n\n".join(blocks))
            if args.mode in {SolveMode.FIND_UNIQUE.value, SolveMode.FIND_ALL.value}:
                print(f"\nsolutions: {result['count']}")
        elif args.command == "generate":
            puzzle, solution = run_generate(args.dimension, args.difficulty, args.seed)
            _write_text(args.output, puzzle)
            _write_text(args.solution_output, solution)
            if args.json:
                print(json.dumps({"puzzle": puzzle.values(), "solution": solution.values(), "clues": puzzle.filled}, indent=2))
            else:
                print(puzzle.to_text(), end="")
        else:
            result = count_solutions(
                load_grid_from_file(args.input),
                mode=args.mode,
                max_seconds=args.max_seconds,
                max_nodes=args.max_nodes,
                sample_paths=args.sample_paths,
                rng=random.Random(args.seed),
            )
            print(json.dumps(result, indent=2))
    except ValueError as exc:
        raise SystemExit(f"Error: {exc}")


if __name__ == "__main__":
    main()
