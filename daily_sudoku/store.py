"""
Persistence for finished games.

GameStore is the narrow interface the game talks to. Two implementations:
  - SqliteGameStore: local database (a file, or ":memory:")
  - HttpGameStore: client for the /api/games endpoints in flask_api.py

Every failure is raised as StoreError so callers can treat the store as a
best-effort mirror of local state.
"""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Union

import requests

from daily_sudoku.models import Difficulty, GameResult

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """The store could not be reached or rejected the request."""


class GameStore(ABC):
    """
    Abstract persistence collaborator.

    save_game_result is an upsert keyed by (date, player, difficulty):
    the last write wins.
    """

    @abstractmethod
    def save_game_result(self, result: GameResult) -> None:
        pass

    @abstractmethod
    def get_daily_completions(self, player: str, date: str) -> Dict[str, Dict[str, Any]]:
        """difficulty -> {"completed": bool, "completedAt": iso timestamp}"""
        pass

    @abstractmethod
    def get_game_results(self, player: str, date: str) -> Dict[str, Dict[str, Any]]:
        """difficulty -> {"timeSeconds", "mistakes", "hintsUsed", "score", "completed"}"""
        pass

    @abstractmethod
    def get_leaderboard(self, difficulty: Union[Difficulty, str], limit: int = 10) -> List[Dict[str, Any]]:
        """[{"player", "bestTime", "bestScore", "gamesPlayed"}], best score first, then best time."""
        pass


SCHEMA = """
CREATE TABLE IF NOT EXISTS sudoku_games (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    player TEXT NOT NULL,
    difficulty TEXT NOT NULL,
    time_seconds INTEGER NOT NULL,
    mistakes REAL DEFAULT 0,
    hints_used INTEGER DEFAULT 0,
    completed INTEGER DEFAULT 1,
    score INTEGER,
    created_at TEXT NOT NULL,
    UNIQUE(date, player, difficulty)
);
CREATE TABLE IF NOT EXISTS daily_completions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    player TEXT NOT NULL,
    difficulty TEXT NOT NULL,
    completed INTEGER DEFAULT 0,
    completed_at TEXT,
    UNIQUE(date, player, difficulty)
);
"""


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteGameStore(GameStore):
    def __init__(self, path: str = "daily_sudoku.db"):
        self.path = str(path)
        # an in-memory database only lives as long as its connection
        self._shared: Optional[sqlite3.Connection] = (
            sqlite3.connect(":memory:", check_same_thread=False) if self.path == ":memory:" else None
        )
        with self._connection() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._shared or sqlite3.connect(self.path)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open database {self.path}: {e}") from e
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StoreError(f"Database error: {e}") from e
        finally:
            if conn is not self._shared:
                conn.close()

    def save_game_result(self, result: GameResult) -> None:
        now = _utc_now()
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO sudoku_games (date, player, difficulty, time_seconds, mistakes, hints_used, completed, score, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (date, player, difficulty)
                DO UPDATE SET
                    time_seconds = excluded.time_seconds,
                    mistakes = excluded.mistakes,
                    hints_used = excluded.hints_used,
                    completed = excluded.completed,
                    score = excluded.score,
                    created_at = excluded.created_at
                """,
                (
                    result.date, result.player, result.difficulty.value, result.time_seconds,
                    result.mistakes, result.hints_used, int(result.completed), result.score, now,
                ),
            )
            conn.execute(
                """
                INSERT INTO daily_completions (date, player, difficulty, completed, completed_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (date, player, difficulty)
                DO UPDATE SET
                    completed = excluded.completed,
                    completed_at = excluded.completed_at
                """,
                (result.date, result.player, result.difficulty.value, int(result.completed), now),
            )
        logger.info(f"Saved {result.difficulty.value} result for {result.player} on {result.date} (score={result.score})")

    def get_daily_completions(self, player: str, date: str) -> Dict[str, Dict[str, Any]]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT difficulty, completed, completed_at FROM daily_completions WHERE player = ? AND date = ?",
                (player, date),
            ).fetchall()
        return {
            difficulty: {"completed": bool(completed), "completedAt": completed_at}
            for (difficulty, completed, completed_at) in rows
        }

    def get_game_results(self, player: str, date: str) -> Dict[str, Dict[str, Any]]:
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT difficulty, time_seconds, mistakes, hints_used, score, completed
                FROM sudoku_games
                WHERE player = ? AND date = ?
                """,
                (player, date),
            ).fetchall()
        return {
            difficulty: {
                "timeSeconds": time_seconds,
                "mistakes": mistakes,
                "hintsUsed": hints_used,
                "score": score,
                "completed": bool(completed),
            }
            for (difficulty, time_seconds, mistakes, hints_used, score, completed) in rows
        }

    def get_leaderboard(self, difficulty: Union[Difficulty, str], limit: int = 10) -> List[Dict[str, Any]]:
        level = Difficulty.parse(difficulty)
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT player, MIN(time_seconds) AS best_time, MAX(score) AS best_score, COUNT(*) AS games_played
                FROM sudoku_games
                WHERE difficulty = ? AND completed = 1
                GROUP BY player
                ORDER BY best_score DESC, best_time ASC
                LIMIT ?
                """,
                (level.value, int(limit)),
            ).fetchall()
        return [
            {"player": player, "bestTime": best_time, "bestScore": best_score, "gamesPlayed": games_played}
            for (player, best_time, best_score, games_played) in rows
        ]

    def clear_date(self, date: str) -> int:
        """Remove every result and completion for a date; returns games removed."""
        with self._connection() as conn:
            removed = conn.execute("DELETE FROM sudoku_games WHERE date = ?", (date,)).rowcount
            conn.execute("DELETE FROM daily_completions WHERE date = ?", (date,))
        logger.info(f"Cleared {removed} game(s) for {date}")
        return removed


class HttpGameStore(GameStore):
    """Talks to a running flask_api.py instance."""

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def _request(self, method: str, **kwargs) -> Any:
        url = f"{self.base_url}/api/games"
        try:
            r = self.http.request(method, url, timeout=self.timeout, **kwargs)
            r.raise_for_status()
            return r.json()
        except requests.RequestException as e:
            raise StoreError(f"{method} {url} failed: {e}") from e
        except ValueError as e:
            raise StoreError(f"{method} {url} returned invalid JSON: {e}") from e

    def save_game_result(self, result: GameResult) -> None:
        self._request("POST", json=result.to_dict())

    def get_daily_completions(self, player: str, date: str) -> Dict[str, Dict[str, Any]]:
        return self._request("GET", params={"action": "completions", "player": player, "date": date})

    def get_game_results(self, player: str, date: str) -> Dict[str, Dict[str, Any]]:
        return self._request("GET", params={"action": "results", "player": player, "date": date})

    def get_leaderboard(self, difficulty: Union[Difficulty, str], limit: int = 10) -> List[Dict[str, Any]]:
        level = Difficulty.parse(difficulty)
        return self._request("GET", params={"action": "leaderboard", "difficulty": level.value, "limit": limit})
