from rules.rules import EMPTY_VALUE, MIN_VALUE


class Cell:
    """One square of a grid.

    While the value is unset, the cell keeps a bitset of the values still
    possible (bit ``v - 1`` stands for value ``v``) and the number of bits
    set. Once a value is assigned the bitset is discarded.
    """

    __slots__ = ("value", "fixed", "_side", "_possible", "_remaining")

    def __init__(self, side: int) -> None:
        self.value = EMPTY_VALUE
        self.fixed = False
        self._side = side
        self._possible = (1 << side) - 1
        self._remaining = side

    def copy(self) -> "Cell":
        clone = Cell.__new__(Cell)
        clone.value = self.value
        clone.fixed = self.fixed
        clone._side = self._side
        clone._possible = self._possible
        clone._remaining = self._remaining
        return clone

    @property
    def remaining_count(self) -> int:
        return self._remaining

    @property
    def is_set(self) -> bool:
        return self.value != EMPTY_VALUE

    def is_possible(self, value: int) -> bool:
        return bool(self._possible >> (value - MIN_VALUE) & 1)

    def clear_possible(self, value: int) -> bool:
        """Remove value from the possibility set; returns False when it was already absent."""
        bit = 1 << (value - MIN_VALUE)
        if not self._possible & bit:
            return False
        self._possible &= ~bit
        self._remaining -= 1
        return True

    def candidates(self) -> list[int]:
        return [value for value in range(MIN_VALUE, self._side + MIN_VALUE) if self.is_possible(value)]

    def discard_possibilities(self) -> list[int]:
        dropped = self.candidates()
        self._possible = 0
        self._remaining = 0
        return dropped

    def __repr__(self) -> str:
        if self.is_set:
            return f"Cell(value={self.value}, fixed={self.fixed})"
        return f"Cell(candidates={self.candidates()})"
