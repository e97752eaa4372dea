from typing import Optional

from .types import TraceLog, TraceStep, Values


def trace(enabled: bool, trace_log: Optional[TraceLog], message: str) -> None:
    if not enabled:
        return
    if trace_log is not None:
        trace_log.append(message)
    else:
        print(message)


def indent(depth: int) -> str:
    return "  " * depth


def record_step(
    trace_steps: Optional[list[TraceStep]],
    trace_meta: Optional[dict[str, bool]],
    trace_max_steps: int,
    event: str,
    message: str,
    depth: int,
    values: Values,
    row: Optional[int] = None,
    col: Optional[int] = None,
    value: Optional[int] = None,
    candidates: Optional[list[int]] = None,
) -> None:
    if trace_steps is None:
        return
    if len(trace_steps) >= trace_max_steps:
        if trace_meta is not None:
            trace_meta["truncated"] = True
        return
    trace_steps.append(
        {
            "event": event,
            "message": message,
            "depth": depth,
            "row": row,
            "col": col,
            "value": value,
            "candidates": candidates,
            "grid": values,
        }
    )


def format_grid_rows(values: Values, delimiter: str = " ") -> list[str]:
    return [delimiter.join(str(value) for value in row) for row in values]
