from enum import Enum, IntEnum
from typing import Callable


Values = list[list[int]]
TraceLog = list[str]
TraceStep = dict[str, object]
CountResult = dict[str, object]
ProgressState = dict[str, int]
SolutionCallback = Callable[["Grid"], None]


class UnitType(IntEnum):
    ROW = 0
    COLUMN = 1
    BOX = 2


class SolveMode(str, Enum):
    FIND_ONE = "one"
    FIND_ANY = "any"
    FIND_UNIQUE = "unique"
    FIND_ALL = "all"


SOLUTION_CAPS = {
    SolveMode.FIND_ONE: 1,
    SolveMode.FIND_ANY: 1,
    SolveMode.FIND_UNIQUE: 2,
    SolveMode.FIND_ALL: None,
}
