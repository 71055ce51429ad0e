from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

RC = Tuple[int, int]  # (row, col)
Grid = List[List[int]]


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value) -> "Difficulty":
        if isinstance(value, Difficulty):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown difficulty '{value}', expected one of: easy, medium, hard")


class RegionType(str, Enum):
    ROW = "row"
    COLUMN = "column"
    BOX = "box"


class HintKind(str, Enum):
    NAKED_SINGLE = "naked_single"
    HIDDEN_SINGLE = "hidden_single"
    CANDIDATE_ELIMINATION = "candidate_elimination"
    SOLVED_FALLBACK = "solved_fallback"
    NO_HINT_NEEDED = "no_hint_needed"   # grid has no empty cells
    UNSOLVABLE = "unsolvable"           # earlier entries make the grid contradictory


class SessionState(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETE = "COMPLETE"


class InputMode(str, Enum):
    NORMAL = "normal"
    CANDIDATE = "candidate"


class Outcome(str, Enum):
    APPLIED = "APPLIED"
    GIVEN_CELL = "GIVEN_CELL"
    CELL_NOT_EMPTY = "CELL_NOT_EMPTY"
    INVALID_CELL = "INVALID_CELL"
    INVALID_VALUE = "INVALID_VALUE"
    NOT_ACTIVE = "NOT_ACTIVE"
    ALREADY_EMPTY = "ALREADY_EMPTY"
    NOTHING_TO_UNDO = "NOTHING_TO_UNDO"
    NOTHING_TO_REDO = "NOTHING_TO_REDO"
    NO_HINT_NEEDED = "NO_HINT_NEEDED"
    NO_HINT_AVAILABLE = "NO_HINT_AVAILABLE"


@dataclass(frozen=True)
class DailyPuzzle:
    puzzle: Grid
    solution: Grid
    difficulty: Difficulty
    date_key: str
    seed: int

    @property
    def clue_count(self) -> int:
        return sum(1 for row in self.puzzle for v in row if v != 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "puzzle": [row[:] for row in self.puzzle],
            "solution": [row[:] for row in self.solution],
            "difficulty": self.difficulty.value,
            "date": self.date_key,
            "seed": self.seed,
        }


@dataclass(frozen=True)
class HintResult:
    kind: HintKind
    row: int = -1
    col: int = -1
    value: int = 0
    candidates: List[int] = field(default_factory=list)
    region: Optional[RegionType] = None
    message: str = ""

    @property
    def has_hint(self) -> bool:
        return self.kind not in (HintKind.NO_HINT_NEEDED, HintKind.UNSOLVABLE)

    @property
    def fills_value(self) -> bool:
        return self.kind in (HintKind.NAKED_SINGLE, HintKind.HIDDEN_SINGLE, HintKind.SOLVED_FALLBACK)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "has_hint": self.has_hint,
            "row": self.row,
            "col": self.col,
            "value": self.value,
            "candidates": list(self.candidates),
            "region": self.region.value if self.region else None,
            "message": self.message,
        }


@dataclass(frozen=True)
class MoveResult:
    outcome: Outcome
    cell: Optional[RC] = None
    conflicts: List[RC] = field(default_factory=list)
    is_mistake: bool = False
    hint: Optional[HintResult] = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.APPLIED


@dataclass(frozen=True)
class GameResult:
    date: str
    player: str
    difficulty: Difficulty
    time_seconds: int
    mistakes: float
    hints_used: int
    completed: bool = True
    score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "player": self.player,
            "difficulty": self.difficulty.value,
            "timeSeconds": self.time_seconds,
            "mistakes": self.mistakes,
            "hintsUsed": self.hints_used,
            "completed": self.completed,
            "score": self.score,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "GameResult":
        # older clients post "time" instead of "timeSeconds"
        time_seconds = data.get("timeSeconds", data.get("time"))
        if not data.get("date") or not data.get("player") or not data.get("difficulty") or time_seconds is None:
            raise ValueError("Missing required game data (date, player, difficulty, timeSeconds)")
        try:
            return GameResult(
                date=str(data["date"]),
                player=str(data["player"]),
                difficulty=Difficulty.parse(data["difficulty"]),
                time_seconds=int(time_seconds),
                mistakes=float(data.get("mistakes") or 0),
                hints_used=int(data.get("hintsUsed") or 0),
                completed=bool(data.get("completed", True)),
                score=int(data.get("score") or 0),
            )
        except TypeError as e:
            raise ValueError(f"Malformed game data: {e}") from e


@dataclass(frozen=True)
class SessionEvent:
    kind: str          # "cell" | "candidates" | "mistake" | "hint" | "history" | "state" | "completed"
    data: Dict[str, Any] = field(default_factory=dict)


CandidateMap = Dict[RC, Set[int]]
