import math

PUBLISHED_PUZZLE = """\
5 3 0 0 7 0 0 0 0
6 0 0 1 9 5 0 0 0
0 9 8 0 0 0 0 6 0
8 0 0 0 6 0 0 0 3
4 0 0 8 0 3 0 0 1
7 0 0 0 2 0 0 0 6
0 6 0 0 0 0 2 8 0
0 0 0 4 1 9 0 0 5
0 0 0 0 8 0 0 7 9
"""

PUBLISHED_SOLUTION = [
    [5, 3, 4, 6, 7, 8, 9, 1, 2],
    [6, 7, 2, 1, 9, 5, 3, 4, 8],
    [1, 9, 8, 3, 4, 2, 5, 6, 7],
    [8, 5, 9, 7, 6, 1, 4, 2, 3],
    [4, 2, 6, 8, 5, 3, 7, 9, 1],
    [7, 1, 3, 9, 2, 4, 8, 5, 6],
    [9, 6, 1, 5, 3, 7, 2, 8, 4],
    [2, 8, 7, 4, 1, 9, 6, 3, 5],
    [3, 4, 5, 2, 8, 6, 1, 7, 9],
]

SMALL_PUZZLE = [
    [1, 2, 0, 0],
    [3, 0, 1, 0],
    [0, 1, 0, 3],
    [0, 0, 2, 1],
]

SMALL_SOLUTION = [
    [1, 2, 3, 4],
    [3, 4, 1, 2],
    [2, 1, 4, 3],
    [4, 3, 2, 1],
]


def published_puzzle_values() -> list[list[int]]:
    return [[int(token) for token in line.split()] for line in PUBLISHED_PUZZLE.splitlines()]


def is_valid_solution(values: list[list[int]]) -> bool:
    side = len(values)
    dim = math.isqrt(side)
    expected = set(range(1, side + 1))
    for index in range(side):
        if set(values[index]) != expected:
            return False
        if {values[row][index] for row in range(side)} != expected:
            return False
        top, left = (index // dim) * dim, (index % dim) * dim
        box = {values[top + r][left + c] for r in range(dim) for c in range(dim)}
        if box != expected:
            return False
    return True
