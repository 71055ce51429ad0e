from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

from daily_sudoku.generator import PuzzleGenerator
from daily_sudoku.models import DailyPuzzle, Difficulty, GameResult
from daily_sudoku.rng import parse_date_key
from daily_sudoku.session import SolvingSession
from daily_sudoku.settings import DEFAULT_SETTINGS
from daily_sudoku.store import GameStore, StoreError

logger = logging.getLogger(__name__)

GameKey = Tuple[str, str, Difficulty]  # (date, player, difficulty)


def today_key() -> str:
    return date.today().isoformat()


class DailyPuzzles:
    """
    A player's view of the daily puzzles: starts sessions, remembers what
    was completed, and mirrors finished games to the store.

    Local results are authoritative; the store is best effort.
    """

    def __init__(
        self,
        player: str,
        store: Optional[GameStore] = None,
        generator: Optional[PuzzleGenerator] = None,
        settings: Optional[Dict[str, Any]] = None,
    ):
        self.player = player
        self.store = store
        self.generator = generator or PuzzleGenerator()
        self.settings = DEFAULT_SETTINGS.copy()
        self.settings.update(settings or {})

        self.game_results: List[GameResult] = []
        self.completions: Dict[GameKey, GameResult] = {}
        self.last_warning: Optional[str] = None

    def _key(self, date_key: str, difficulty: Difficulty) -> GameKey:
        return (date_key, self.player, difficulty)

    def is_completed(self, date_key: str, difficulty: Union[Difficulty, str]) -> bool:
        return self._key(date_key, Difficulty.parse(difficulty)) in self.completions

    def start_daily_game(self, difficulty: Union[Difficulty, str], date_key: Optional[str] = None) -> Optional[SolvingSession]:
        """New session for the day's puzzle, or None if already completed."""
        level = Difficulty.parse(difficulty)
        date_key = date_key or today_key()
        parse_date_key(date_key)

        if self.is_completed(date_key, level):
            logger.info(f"{self.player} already completed the {level.value} puzzle for {date_key}")
            return None

        daily = self.generator.generate_daily_puzzle(date_key, level)
        logger.info(f"Started {level.value} puzzle for {self.player} on {date_key} ({daily.clue_count} clues)")
        return SolvingSession(
            daily,
            player=self.player,
            result_sink=self.record_game_result,
            max_history=int(self.settings["max_history"]),
            hint_penalty=float(self.settings["hint_penalty"]),
            mistake_time_penalty=float(self.settings["mistake_time_penalty"]),
            auto_candidate_difficulties=self.settings["auto_candidate_difficulties"],
        )

    def record_game_result(self, result: GameResult) -> Optional[str]:
        """Keep the result locally, then mirror it. Returns a warning if the mirror failed."""
        self.game_results.append(result)
        self.completions[self._key(result.date, result.difficulty)] = result
        self.last_warning = None

        if self.store is None:
            return None
        try:
            self.store.save_game_result(result)
        except StoreError as e:
            logger.warning(f"Failed to save game result to store: {e}")
            self.last_warning = "Game saved locally. Will sync when online."
        return self.last_warning

    def load_completions(self, date_key: Optional[str] = None) -> Dict[Difficulty, bool]:
        """Merge the store's completions for a date into the local map."""
        date_key = date_key or today_key()
        if self.store is not None:
            try:
                remote = self.store.get_daily_completions(self.player, date_key)
            except StoreError as e:
                logger.warning(f"Failed to load completions from store, using local data: {e}")
                remote = {}
            for difficulty, info in remote.items():
                level = Difficulty.parse(difficulty)
                key = self._key(date_key, level)
                if info.get("completed") and key not in self.completions:
                    self.completions[key] = self._remote_result(date_key, level)
        return {level: self.is_completed(date_key, level) for level in Difficulty}

    def _remote_result(self, date_key: str, level: Difficulty) -> GameResult:
        details: Dict[str, Any] = {}
        try:
            details = self.store.get_game_results(self.player, date_key).get(level.value, {})
        except StoreError as e:
            logger.warning(f"Failed to load game results from store: {e}")
        return GameResult(
            date=date_key,
            player=self.player,
            difficulty=level,
            time_seconds=int(details.get("timeSeconds") or 0),
            mistakes=float(details.get("mistakes") or 0),
            hints_used=int(details.get("hintsUsed") or 0),
            completed=True,
            score=int(details.get("score") or 0),
        )

    def todays_puzzles(self, date_key: Optional[str] = None) -> Dict[Difficulty, DailyPuzzle]:
        return self.generator.todays_puzzles(date_key or today_key())

    def recent_games(self, limit: int = 10) -> List[GameResult]:
        return list(reversed(self.game_results[-limit:]))
