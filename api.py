import os
import random
import threading
import time
import uuid
from typing import Mapping, Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from rules.rules import (
    CORS_ORIGINS_ENV,
    COUNT_JOB_TTL_SECONDS,
    DEFAULT_DIFFICULTY,
    DEFAULT_DIMENSION,
    DEFAULT_MAX_SOLUTIONS,
    MAX_COUNT_JOBS,
    MAX_DIMENSION,
)
from sudoku.grid import Grid
from sudoku.solver import count_solutions, find_solutions
from sudoku.types import SolveMode
from sudoku.utils import format_grid_rows


class SolveRequest(BaseModel):
    grid: list[list[int]] = Field(..., description="Square grid of values with 0 for empty cells; the side must be a square integer")
    mode: str = Field(default="one", description="Solve mode: one, any, unique, or all")
    seed: Optional[int] = Field(default=None, description="Seed for the random branch order of mode 'any'")
    max_solutions: int = Field(default=DEFAULT_MAX_SOLUTIONS, ge=1, le=1000, description="Maximum number of solution grids returned in mode 'all'")
    max_nodes: Optional[int] = Field(default=None, ge=1, description="Abort the search after this many search nodes")
    trace: bool = Field(default=False, description="Include solver trace output in the response")
    trace_steps: bool = Field(default=False, description="Include structured trace steps for walkthrough/debugging.")
    trace_max_steps: int = Field(default=1000, ge=1, le=20000, description="Maximum number of trace steps to return.")


class TraceStepResponse(BaseModel):
    event: str
    message: str
    depth: int
    row: Optional[int] = None
    col: Optional[int] = None
    value: Optional[int] = None
    candidates: Optional[list[int]] = None
    grid: list[list[int]]


class SolveResponse(BaseModel):
    count: int
    solution: Optional[list[list[int]]] = None
    solutions: list[list[list[int]]]
    grid_rows: list[str]
    grid_text: str
    trace: Optional[list[str]] = None
    trace_steps: Optional[list[TraceStepResponse]] = None
    trace_truncated: bool = False


class GenerateRequest(BaseModel):
    dimension: int = Field(default=DEFAULT_DIMENSION, ge=1, le=MAX_DIMENSION, description="Block size; 3 gives a 9x9 grid")
    difficulty: int = Field(default=DEFAULT_DIFFICULTY, ge=0, description="Clues kept beyond the minimum; larger is easier")
    seed: Optional[int] = Field(default=None, description="Seed for a reproducible puzzle")


class GenerateResponse(BaseModel):
    puzzle: list[list[int]]
    solution: list[list[int]]
    fixed: list[list[bool]]
    clues: int
    grid_rows: list[str]
    grid_text: str


class CountRequest(BaseModel):
    grid: list[list[int]] = Field(..., description="Square grid of values with 0 for empty cells")
    mode: str = Field(default="auto", description="Counting mode: auto, exact, or estimate")
    max_seconds: Optional[float] = Field(
        default=2.0,
        ge=0.0,
        description="Time budget for exact counting in auto/exact mode. Use null to run exact mode to completion.",
    )
    max_nodes: Optional[int] = Field(default=None, ge=1, description="Node budget for exact counting")
    sample_paths: int = Field(default=300, ge=1, description="Number of randomized paths used in estimate mode")
    seed: Optional[int] = Field(default=None, description="Seed for the sampling of estimate mode")


class CountResponse(BaseModel):
    mode_used: str
    exact: bool
    count: Optional[int] = None
    lower_bound: Optional[int] = None
    estimated_count: Optional[float] = None
    relative_error: Optional[float] = None
    message: str


class CountJobStartResponse(BaseModel):
    job_id: str
    status: str


class CountJobStatusResponse(BaseModel):
    job_id: str
    status: str
    elapsed_seconds: float
    mode_requested: str
    nodes_visited: int
    exact: Optional[bool] = None
    count: Optional[int] = None
    lower_bound: Optional[int] = None
    estimated_count: Optional[float] = None
    relative_error: Optional[float] = None
    message: Optional[str] = None
    error: Optional[str] = None


app = FastAPI(
    title="Sudoku API",
    description="Generate sudoku puzzles with a unique solution and solve or count the solutions of any grid.",
    version="0.1.0",
)


def cors_origins(environ: Mapping[str, str] = os.environ) -> list[str]:
    """Comma separated browser origins allowed to call the API; none by default."""
    raw = environ.get(CORS_ORIGINS_ENV, "")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


_ALLOWED_ORIGINS = cors_origins()
if _ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

_FINISHED_STATUSES = {"completed", "canceled", "failed"}
_COUNT_JOBS: dict[str, dict] = {}
_COUNT_JOBS_LOCK = threading.Lock()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/solve", response_model=SolveResponse)
def solve(request: SolveRequest) -> SolveResponse:
    try:
        trace_log: list[str] = []
        trace_steps: list[dict[str, object]] = []
        trace_meta = {"truncated": False}
        solutions, count = find_solutions(
            Grid.from_values(request.grid),
            mode=request.mode,
            max_solutions=request.max_solutions,
            rng=random.Random(request.seed),
            max_nodes=request.max_nodes,
            trace=request.trace or request.trace_steps,
            trace_log=trace_log,
            trace_steps=trace_steps if request.trace_steps else None,
            trace_meta=trace_meta,
            trace_max_steps=request.trace_max_steps,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if count == 0 and request.mode in {SolveMode.FIND_ONE.value, SolveMode.FIND_ANY.value}:
        raise HTTPException(status_code=400, detail="No valid solution for the provided grid")

    solution = solutions[0] if solutions else None
    grid_rows = format_grid_rows(solution) if solution is not None else []
    return SolveResponse(
        count=count,
        solution=solution,
        solutions=solutions,
        grid_rows=grid_rows,
        grid_text="\n".join(grid_rows),
        trace=trace_log if request.trace else None,
        trace_steps=trace_steps if request.trace_steps else None,
        trace_truncated=trace_meta["truncated"],
    )


@app.post("/generate", response_model=GenerateResponse)
def generate(request: GenerateRequest) -> GenerateResponse:
    try:
        puzzle, solution = Grid.generate(request.dimension, request.difficulty, rng=random.Random(request.seed))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    grid_rows = format_grid_rows(puzzle.values())
    return GenerateResponse(
        puzzle=puzzle.values(),
        solution=solution.values(),
        fixed=puzzle.fixed_mask(),
        clues=puzzle.filled,
        grid_rows=grid_rows,
        grid_text="\n".join(grid_rows),
    )


@app.post("/count", response_model=CountResponse)
def count(request: CountRequest) -> CountResponse:
    try:
        result = count_solutions(
            Grid.from_values(request.grid),
            mode=request.mode,
            max_seconds=request.max_seconds,
            max_nodes=request.max_nodes,
            sample_paths=request.sample_paths,
            rng=random.Random(request.seed),
        )
        return CountResponse(**result)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/count/jobs/start", response_model=CountJobStartResponse, status_code=status.HTTP_202_ACCEPTED)
def count_start(request: CountRequest) -> CountJobStartResponse:
    now = time.time()
    job_id = str(uuid.uuid4())
    job = {
        "job_id": job_id,
        "status": "queued",
        "created_at": now,
        "started_at": None,
        "completed_at": None,
        "request": request.model_dump(),
        "result": None,
        "lower_bound": 0,
        "nodes_visited": 0,
        "error": None,
        "cancel_event": threading.Event(),
    }

    with _COUNT_JOBS_LOCK:
        _evict_finished_jobs(now)
        _COUNT_JOBS[job_id] = job

    threading.Thread(target=_run_count_job, args=(job_id,), daemon=True).start()
    return CountJobStartResponse(job_id=job_id, status="queued")


@app.get("/count/jobs/{job_id}", response_model=CountJobStatusResponse)
def count_status(job_id: str) -> CountJobStatusResponse:
    with _COUNT_JOBS_LOCK:
        return _build_job_status_response(_get_job_or_404(job_id))


@app.post("/count/jobs/{job_id}/cancel", response_model=CountJobStatusResponse)
def count_cancel(job_id: str) -> CountJobStatusResponse:
    with _COUNT_JOBS_LOCK:
        job = _get_job_or_404(job_id)
        if job["status"] not in _FINISHED_STATUSES:
            job["cancel_event"].set()
            if job["status"] == "queued":
                _mark_finished(job, "canceled")
            else:
                job["status"] = "canceling"
        return _build_job_status_response(job)


def _evict_finished_jobs(now: float) -> None:
    """Drop finished jobs older than the retention time, then the oldest ones while the store is full.

    Jobs still queued or running are never dropped. Call with the lock held.
    """
    finished = sorted(
        (job for job in _COUNT_JOBS.values() if job["status"] in _FINISHED_STATUSES),
        key=lambda job: job["completed_at"],
    )
    for job in finished:
        expired = now - job["completed_at"] >= COUNT_JOB_TTL_SECONDS
        if not expired and len(_COUNT_JOBS) < MAX_COUNT_JOBS:
            break
        del _COUNT_JOBS[job["job_id"]]


def _get_job_or_404(job_id: str) -> dict:
    job = _COUNT_JOBS.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="count job not found")
    return job


def _mark_finished(job: dict, final_status: str) -> None:
    job["status"] = final_status
    job["completed_at"] = time.time()


def _run_count_job(job_id: str) -> None:
    with _COUNT_JOBS_LOCK:
        job = _COUNT_JOBS.get(job_id)
        if job is None or job["status"] == "canceled":
            return
        job["status"] = "running"
        job["started_at"] = time.time()
        request_data = job["request"]
        cancel_event = job["cancel_event"]

    def on_progress(progress: dict[str, int]) -> None:
        with _COUNT_JOBS_LOCK:
            running_job = _COUNT_JOBS.get(job_id)
            if running_job is not None:
                running_job["lower_bound"] = progress["solutions_found"]
                running_job["nodes_visited"] = max(running_job["nodes_visited"], progress["nodes_visited"])

    try:
        result = count_solutions(
            Grid.from_values(request_data["grid"]),
            mode=request_data["mode"],
            max_seconds=request_data["max_seconds"],
            max_nodes=request_data["max_nodes"],
            sample_paths=request_data["sample_paths"],
            stop_requested=cancel_event.is_set,
            progress_callback=on_progress,
            rng=random.Random(request_data["seed"]),
        )
    except ValueError as exc:
        _fail_job(job_id, str(exc))
        return
    except Exception as exc:  # pragma: no cover
        _fail_job(job_id, f"unexpected error: {exc}")
        return

    with _COUNT_JOBS_LOCK:
        finished_job = _COUNT_JOBS.get(job_id)
        if finished_job is None:
            return
        if cancel_event.is_set():
            result.update(
                exact=False,
                count=None,
                lower_bound=finished_job["lower_bound"],
                message="Count canceled. Returning latest lower bound.",
            )
            _mark_finished(finished_job, "canceled")
        else:
            finished_job["lower_bound"] = result.get("lower_bound", result.get("count", finished_job["lower_bound"]))
            _mark_finished(finished_job, "completed")
        finished_job["result"] = result


def _fail_job(job_id: str, error: str) -> None:
    with _COUNT_JOBS_LOCK:
        failed_job = _COUNT_JOBS.get(job_id)
        if failed_job is not None:
            failed_job["error"] = error
            _mark_finished(failed_job, "failed")


def _build_job_status_response(job: dict) -> CountJobStatusResponse:
    if job["started_at"] is None:
        elapsed_seconds = 0.0
    else:
        elapsed_seconds = (job["completed_at"] or time.time()) - job["started_at"]

    result = job["result"] or {}
    return CountJobStatusResponse(
        job_id=job["job_id"],
        status=job["status"],
        elapsed_seconds=elapsed_seconds,
        mode_requested=job["request"]["mode"],
        nodes_visited=job["nodes_visited"],
        exact=result.get("exact"),
        count=result.get("count"),
        lower_bound=result.get("lower_bound", job["lower_bound"]),
        estimated_count=result.get("estimated_count"),
        relative_error=result.get("relative_error"),
        message=result.get("message"),
        error=job["error"],
    )
