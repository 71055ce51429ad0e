from __future__ import annotations

import math
from typing import Dict, Union

from daily_sudoku.models import Difficulty

MISTAKE_TIME_PENALTY = 30  # seconds added per mistake

DIFFICULTY_MULTIPLIERS: Dict[Difficulty, float] = {
    Difficulty.EASY: 1,
    Difficulty.MEDIUM: 1.5,
    Difficulty.HARD: 2,
}


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def adjusted_time(time_seconds: float, mistakes: float, penalty: float = MISTAKE_TIME_PENALTY) -> float:
    return time_seconds + mistakes * penalty


def calculate_score(
    time_seconds: float,
    mistakes: float,
    difficulty: Union[Difficulty, str],
    penalty: float = MISTAKE_TIME_PENALTY,
) -> int:
    """
    score = round((1000 / adjusted_minutes) * multiplier)
    A zero adjusted time is clamped to one second.
    """
    level = Difficulty.parse(difficulty)
    adjusted = max(adjusted_time(time_seconds, mistakes, penalty), 1)
    return round_half_up((1000 / (adjusted / 60)) * DIFFICULTY_MULTIPLIERS[level])


def format_time(seconds: int) -> str:
    seconds = int(seconds)
    return f"{seconds // 60}:{seconds % 60:02d}"
