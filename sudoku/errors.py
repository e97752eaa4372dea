class SudokuError(ValueError):
    """Base class for every error raised by the sudoku package."""


class FormatError(SudokuError):
    """Raised when a serialized grid cannot be parsed."""


class InvalidMutation(SudokuError):
    """Raised when set_value would corrupt the grid bookkeeping."""


class SearchBudgetExceeded(SudokuError):
    """Raised when a solve exceeds its explicit node budget."""

    def __init__(self, max_nodes: int, solutions_found: int) -> None:
        super().__init__(f"search stopped after {max_nodes} nodes with {solutions_found} solutions found")
        self.max_nodes = max_nodes
        self.solutions_found = solutions_found
