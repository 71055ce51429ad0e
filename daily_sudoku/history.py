from __future__ import annotations
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from daily_sudoku.models import RC, CandidateMap, Grid

DEFAULT_MAX_HISTORY = 50


@dataclass(frozen=True)
class Snapshot:
    grid: Tuple[Tuple[int, ...], ...]
    candidates: Tuple[Tuple[RC, FrozenSet[int]], ...]
    mistakes: int
    score_mistakes: float
    errors: FrozenSet[RC]

    @staticmethod
    def capture(grid: Grid, candidates: CandidateMap, mistakes: int, score_mistakes: float, errors) -> "Snapshot":
        return Snapshot(
            grid=tuple(tuple(row) for row in grid),
            candidates=tuple(sorted((cell, frozenset(marks)) for cell, marks in candidates.items() if marks)),
            mistakes=mistakes,
            score_mistakes=score_mistakes,
            errors=frozenset(errors),
        )

    def grid_copy(self) -> Grid:
        return [list(row) for row in self.grid]

    def candidates_copy(self) -> CandidateMap:
        return {cell: set(marks) for cell, marks in self.candidates}


class History:
    """
    Linear undo/redo history.
    entries[index] is always the snapshot of the current state; recording
    after an undo drops the redo branch; oldest entries are evicted past
    max_size.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_HISTORY):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.entries: List[Snapshot] = []
        self.index = -1

    def __len__(self) -> int:
        return len(self.entries)

    def reset(self, initial: Snapshot) -> None:
        self.entries = [initial]
        self.index = 0

    def record(self, snapshot: Snapshot) -> None:
        if self.index < len(self.entries) - 1:
            del self.entries[self.index + 1:]
        self.entries.append(snapshot)
        if len(self.entries) > self.max_size:
            del self.entries[0]
        self.index = len(self.entries) - 1

    @property
    def can_undo(self) -> bool:
        return self.index > 0

    @property
    def can_redo(self) -> bool:
        return self.index < len(self.entries) - 1

    def undo(self) -> Optional[Snapshot]:
        if not self.can_undo:
            return None
        self.index -= 1
        return self.entries[self.index]

    def redo(self) -> Optional[Snapshot]:
        if not self.can_redo:
            return None
        self.index += 1
        return self.entries[self.index]

    @property
    def current(self) -> Optional[Snapshot]:
        return self.entries[self.index] if self.index >= 0 else None
