from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from daily_sudoku.board import (
    BOX,
    EMPTY,
    FULL_MASK,
    PEERS,
    SIZE,
    UNITS,
    bit,
    box_index,
    copy_grid,
    mask_to_digits,
)
from daily_sudoku.models import RC, Grid
from daily_sudoku.rng import SeededRandom

logger = logging.getLogger(__name__)

DIGITS = tuple(range(1, 10))
DIAGONAL_BOXES = (0, 4, 8)


class GenerationError(RuntimeError):
    """Backtracking could not build a grid. Always a bug, never player input."""


def popcount(x: int) -> int:
    return int(x).bit_count()


# ------------------ conflict scan ------------------
def get_conflicts(grid: Grid, row: int, col: int, value: int) -> List[RC]:
    """Other cells in the row, column or box of (row, col) that hold value."""
    return [(r, c) for (r, c) in PEERS[(row, col)] if grid[r][c] == value]


def is_safe(grid: Grid, row: int, col: int, value: int) -> bool:
    return not get_conflicts(grid, row, col, value)


def legal_digits(grid: Grid, row: int, col: int) -> List[int]:
    return [d for d in DIGITS if is_safe(grid, row, col, d)]


def is_valid_solution(grid: Grid) -> bool:
    """Every row, column and box holds 1..9 exactly once."""
    for _, _, unit in UNITS:
        if sorted(grid[r][c] for (r, c) in unit) != list(DIGITS):
            return False
    return True


# ------------------ used-mask state ------------------
def init_state(grid: Grid) -> Tuple[bool, List[int], List[int], List[int]]:
    """
    Build used masks for rows/cols/boxes.
    Returns (ok, row_used, col_used, box_used); ok is False on a duplicate.
    """
    row_used = [0] * SIZE
    col_used = [0] * SIZE
    box_used = [0] * SIZE

    for r in range(SIZE):
        for c in range(SIZE):
            v = grid[r][c]
            if v == EMPTY:
                continue
            b = bit(v)
            bi = box_index(r, c)
            if (row_used[r] & b) or (col_used[c] & b) or (box_used[bi] & b):
                return False, row_used, col_used, box_used
            row_used[r] |= b
            col_used[c] |= b
            box_used[bi] |= b

    return True, row_used, col_used, box_used


def _backtrack(grid: Grid, row_used, col_used, box_used, limit: int, found: List[Grid]) -> bool:
    """
    Depth-first search over the most constrained empty cell.
    Appends completed grids to found; returns True once limit is reached.
    """
    best: Optional[RC] = None
    best_mask = 0
    best_count = 10
    for r in range(SIZE):
        for c in range(SIZE):
            if grid[r][c] != EMPTY:
                continue
            allowed = FULL_MASK & ~(row_used[r] | col_used[c] | box_used[box_index(r, c)])
            n = popcount(allowed)
            if n == 0:
                return False  # dead end
            if n < best_count:
                best, best_mask, best_count = (r, c), allowed, n
                if n == 1:
                    break
        if best_count == 1:
            break

    if best is None:
        found.append(copy_grid(grid))
        return len(found) >= limit

    r, c = best
    bi = box_index(r, c)
    for d in mask_to_digits(best_mask):
        b = bit(d)
        grid[r][c] = d
        row_used[r] |= b
        col_used[c] |= b
        box_used[bi] |= b

        done = _backtrack(grid, row_used, col_used, box_used, limit, found)

        grid[r][c] = EMPTY
        row_used[r] &= ~b
        col_used[c] &= ~b
        box_used[bi] &= ~b
        if done:
            return True
    return False


def _search(grid: Grid, limit: int) -> List[Grid]:
    work = copy_grid(grid)
    ok, row_used, col_used, box_used = init_state(work)
    if not ok:
        return []
    found: List[Grid] = []
    _backtrack(work, row_used, col_used, box_used, limit, found)
    return found


# ------------------ public API ------------------
def count_solutions(grid: Grid, cap: int = 2) -> int:
    """Number of completions of grid, counting no further than cap."""
    if cap <= 0:
        return 0
    return len(_search(grid, cap))


def has_unique_solution(grid: Grid) -> bool:
    return count_solutions(grid, cap=2) == 1


def solve(grid: Grid) -> Optional[Grid]:
    """First completion found by backtracking, or None if there is none."""
    found = _search(grid, 1)
    return found[0] if found else None


def fill_complete(grid: Grid, rng: SeededRandom) -> bool:
    """
    Fill an empty grid in place with a complete valid solution.
    Diagonal boxes first (they never constrain each other), then the
    remaining cells row-major, digit order shuffled by rng at each cell.
    """
    for bi in DIAGONAL_BOXES:
        digits = rng.shuffle(list(DIGITS))
        br = (bi // BOX) * BOX
        bc = (bi % BOX) * BOX
        for i in range(BOX):
            for j in range(BOX):
                grid[br + i][bc + j] = digits[i * BOX + j]

    remaining = [
        (r, c)
        for r in range(SIZE)
        for c in range(SIZE)
        if box_index(r, c) not in DIAGONAL_BOXES
    ]
    for (r, c) in remaining:
        grid[r][c] = EMPTY

    def fill_from(i: int) -> bool:
        if i == len(remaining):
            return True
        r, c = remaining[i]
        for d in rng.shuffle(list(DIGITS)):
            if is_safe(grid, r, c, d):
                grid[r][c] = d
                if fill_from(i + 1):
                    return True
                grid[r][c] = EMPTY
        return False

    if not fill_from(0) or not is_valid_solution(grid):
        logger.error(f"Backtracking failed to complete a grid (seed={rng.seed})")
        raise GenerationError(f"Could not complete a Sudoku grid for seed {rng.seed}")
    return True
