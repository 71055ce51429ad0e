from __future__ import annotations

from typing import Dict, List, Optional

from daily_sudoku.board import BOXES, COLS, ROWS, empty_cells
from daily_sudoku.models import RC, Grid, HintKind, HintResult, RegionType
from daily_sudoku.solver import legal_digits, solve

LegalMap = Dict[RC, List[int]]


def _fmt_cell(r: int, c: int) -> str:
    return f"(r{r+1}, c{c+1})"


def legal_map(grid: Grid) -> LegalMap:
    return {(r, c): legal_digits(grid, r, c) for (r, c) in empty_cells(grid)}


# ------------------ Technique hint finders ------------------
def hint_naked_single(grid: Grid, legal: LegalMap) -> Optional[HintResult]:
    for (r, c), digits in legal.items():
        if len(digits) == 1:
            d = digits[0]
            msg = (
                f"Naked Single found at {_fmt_cell(r, c)}.\n"
                f"Only one candidate is possible: {d}.\n"
                f"Hint: place {d} in {_fmt_cell(r, c)}."
            )
            return HintResult(HintKind.NAKED_SINGLE, r, c, d, [d], None, msg)
    return None


def _single_spot(unit: List[RC], d: int, legal: LegalMap) -> Optional[RC]:
    spots = [cell for cell in unit if d in legal.get(cell, ())]
    return spots[0] if len(spots) == 1 else None


def hint_hidden_single(grid: Grid, legal: LegalMap) -> Optional[HintResult]:
    for d in range(1, 10):
        for region, units in ((RegionType.ROW, ROWS), (RegionType.COLUMN, COLS), (RegionType.BOX, BOXES)):
            for idx, unit in enumerate(units):
                spot = _single_spot(unit, d, legal)
                if spot is None:
                    continue
                rr, cc = spot
                msg = (
                    f"Hidden Single ({region.value.capitalize()}) in {region.value} {idx+1}.\n"
                    f"Digit {d} can only go in {_fmt_cell(rr, cc)}.\n"
                    f"Hint: place {d} in {_fmt_cell(rr, cc)}."
                )
                return HintResult(HintKind.HIDDEN_SINGLE, rr, cc, d, [d], region, msg)
    return None


def hint_candidate_elimination(grid: Grid, legal: LegalMap) -> Optional[HintResult]:
    for (r, c), digits in legal.items():
        if 2 <= len(digits) <= 3:
            msg = (
                f"Narrow down {_fmt_cell(r, c)}.\n"
                f"Only {digits} are still possible there."
            )
            return HintResult(HintKind.CANDIDATE_ELIMINATION, r, c, 0, list(digits), None, msg)
    return None


def hint_solved_fallback(grid: Grid, legal: LegalMap) -> Optional[HintResult]:
    solution = solve(grid)
    if solution is None:
        return None
    for (r, c) in empty_cells(grid):
        d = solution[r][c]
        msg = f"Try {d} in {_fmt_cell(r, c)}."
        return HintResult(HintKind.SOLVED_FALLBACK, r, c, d, [d], None, msg)
    return None


FINDERS = [
    hint_naked_single,
    hint_hidden_single,
    hint_candidate_elimination,
    hint_solved_fallback,
]


def next_hint(grid: Grid) -> HintResult:
    """First technique that produces a step wins; see FINDERS for the order."""
    if not empty_cells(grid):
        return HintResult(HintKind.NO_HINT_NEEDED, message="No hint needed: every cell is filled.")

    legal = legal_map(grid)
    for finder in FINDERS:
        h = finder(grid, legal)
        if h is not None:
            return h

    return HintResult(
        HintKind.UNSOLVABLE,
        message="No hint available: the current entries contradict each other, so the grid cannot be completed.",
    )
