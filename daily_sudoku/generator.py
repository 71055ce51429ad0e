from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Dict, List, Union

from daily_sudoku.board import EMPTY, SIZE, copy_grid, empty_grid
from daily_sudoku.models import RC, DailyPuzzle, Difficulty, Grid
from daily_sudoku.rng import SeededRandom, seed_from_date
from daily_sudoku.solver import GenerationError, fill_complete, has_unique_solution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DifficultySettings:
    clues: int      # upper end of the clue range
    min_clues: int  # lower end of the clue range


DIFFICULTY_SETTINGS: Dict[Difficulty, DifficultySettings] = {
    Difficulty.EASY: DifficultySettings(clues=40, min_clues=35),
    Difficulty.MEDIUM: DifficultySettings(clues=32, min_clues=28),
    Difficulty.HARD: DifficultySettings(clues=26, min_clues=22),
}


class PuzzleGenerator:
    """
    Deterministic daily puzzles: the same (date, difficulty) always gives
    the same puzzle, solution and seed.
    """

    def generate_daily_puzzle(self, date_key: str, difficulty: Union[Difficulty, str] = Difficulty.MEDIUM) -> DailyPuzzle:
        level = Difficulty.parse(difficulty)
        seed = seed_from_date(date_key)
        rng = SeededRandom(seed)
        started = time.perf_counter()

        solution = empty_grid()
        fill_complete(solution, rng)
        puzzle = self.create_puzzle(solution, level, rng)

        elapsed_ms = (time.perf_counter() - started) * 1000
        clues = sum(1 for row in puzzle for v in row if v != EMPTY)
        logger.debug(f"Generated {level.value} puzzle for {date_key} (seed={seed}, clues={clues}, {elapsed_ms:.1f}ms)")

        return DailyPuzzle(
            puzzle=puzzle,
            solution=solution,
            difficulty=level,
            date_key=date_key,
            seed=seed,
        )

    def target_clues(self, difficulty: Difficulty, rng: SeededRandom) -> int:
        settings = DIFFICULTY_SETTINGS[difficulty]
        # lands in [min_clues, clues]
        return settings.clues + math.floor(rng.next() * (settings.min_clues - settings.clues))

    def create_puzzle(self, solution: Grid, difficulty: Difficulty, rng: SeededRandom) -> Grid:
        puzzle = copy_grid(solution)

        positions: List[RC] = [(r, c) for r in range(SIZE) for c in range(SIZE)]
        rng.shuffle(positions)
        target = self.target_clues(difficulty, rng)

        clues = SIZE * SIZE
        for (r, c) in positions:
            if clues <= target:
                break

            backup = puzzle[r][c]
            puzzle[r][c] = EMPTY
            if has_unique_solution(puzzle):
                clues -= 1
            else:
                puzzle[r][c] = backup

        if clues > target:
            logger.debug(f"Stopped at {clues} clues, target was {target} ({difficulty.value})")

        if not has_unique_solution(puzzle):
            logger.error(f"Carved {difficulty.value} puzzle lost its unique solution")
            raise GenerationError("Carved puzzle does not have a unique solution")
        return puzzle

    def todays_puzzles(self, date_key: str) -> Dict[Difficulty, DailyPuzzle]:
        return {level: self.generate_daily_puzzle(date_key, level) for level in Difficulty}


def generate_daily_puzzle(date_key: str, difficulty: Union[Difficulty, str] = Difficulty.MEDIUM) -> DailyPuzzle:
    return PuzzleGenerator().generate_daily_puzzle(date_key, difficulty)
