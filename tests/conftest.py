# tests/conftest.py
import sys
from pathlib import Path

import pytest

# Add project root to sys.path so "daily_sudoku" and "flask_api" can be imported in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from daily_sudoku.board import copy_grid, parse_81  # noqa: E402
from daily_sudoku.models import DailyPuzzle, Difficulty  # noqa: E402

CLASSIC_PUZZLE = (
    "530070000"
    "600195000"
    "098000060"
    "800060003"
    "400803001"
    "700020006"
    "060000280"
    "000419005"
    "000080079"
)

CLASSIC_SOLUTION = (
    "534678912"
    "672195348"
    "198342567"
    "859761423"
    "426853791"
    "713924856"
    "961537284"
    "287419635"
    "345286179"
)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def classic_daily():
    return DailyPuzzle(
        puzzle=parse_81(CLASSIC_PUZZLE),
        solution=parse_81(CLASSIC_SOLUTION),
        difficulty=Difficulty.EASY,
        date_key="2025-09-22",
        seed=20250922,
    )


@pytest.fixture
def one_blank_daily():
    """Solved grid with only (0, 0) left to fill."""
    solution = parse_81(CLASSIC_SOLUTION)
    puzzle = copy_grid(solution)
    puzzle[0][0] = 0
    return DailyPuzzle(puzzle, solution, Difficulty.MEDIUM, "2025-09-22", 20250922)
