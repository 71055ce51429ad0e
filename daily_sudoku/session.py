from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from daily_sudoku.board import EMPTY, PEERS, SIZE, copy_grid, empty_cells, in_bounds, is_filled
from daily_sudoku.hints import next_hint
from daily_sudoku.history import DEFAULT_MAX_HISTORY, History, Snapshot
from daily_sudoku.models import (
    RC,
    CandidateMap,
    DailyPuzzle,
    Difficulty,
    GameResult,
    HintKind,
    InputMode,
    MoveResult,
    Outcome,
    SessionEvent,
    SessionState,
)
from daily_sudoku.scoring import MISTAKE_TIME_PENALTY, calculate_score
from daily_sudoku.solver import get_conflicts, is_valid_solution, legal_digits
from daily_sudoku.store import StoreError

logger = logging.getLogger(__name__)

HINT_PENALTY = 0.5
AUTO_CANDIDATE_DIFFICULTIES = (Difficulty.MEDIUM, Difficulty.HARD)

Listener = Callable[[SessionEvent], None]
# Receives the finished game; may return a warning string for the player.
ResultSink = Callable[[GameResult], Optional[str]]


class SolvingSession:
    """
    One player's attempt at one daily puzzle.

    Owns current_grid, pencil marks, counters, clock and undo/redo history.
    Every player operation returns a MoveResult; rejected operations leave
    the session untouched. Rendering code subscribes to SessionEvents and
    reads state, it never reaches into the session otherwise.

    Undo/redo follow the same rule as every other mutation: ACTIVE only.
    """

    def __init__(
        self,
        daily: DailyPuzzle,
        player: str = "player",
        result_sink: Optional[ResultSink] = None,
        clock: Callable[[], float] = time.monotonic,
        max_history: int = DEFAULT_MAX_HISTORY,
        hint_penalty: float = HINT_PENALTY,
        mistake_time_penalty: float = MISTAKE_TIME_PENALTY,
        auto_candidate_difficulties: Iterable[Difficulty] = AUTO_CANDIDATE_DIFFICULTIES,
    ):
        self.daily = daily
        self.puzzle = copy_grid(daily.puzzle)
        self.solution = copy_grid(daily.solution)
        self.difficulty = daily.difficulty
        self.date_key = daily.date_key
        self.player = player

        self.hint_penalty = hint_penalty
        self.mistake_time_penalty = mistake_time_penalty
        self.auto_candidate_difficulties = {Difficulty.parse(d) for d in auto_candidate_difficulties}

        self._result_sink = result_sink
        self._clock = clock
        self._listeners: List[Listener] = []
        self._queued: List[SessionEvent] = []
        self.history = History(max_history)

        self.result: Optional[GameResult] = None
        self.persistence_warning: Optional[str] = None
        self._start()

    def _start(self) -> None:
        self.current_grid = copy_grid(self.puzzle)
        self.candidates: CandidateMap = {}
        self.errors: Set[RC] = set()
        self.selected: Optional[RC] = None
        self.mode = InputMode.NORMAL
        self.show_all_candidates = False
        self.state = SessionState.ACTIVE
        self.mistakes = 0
        self.score_mistakes = 0.0
        self.hints_used = 0

        if self.difficulty in self.auto_candidate_difficulties:
            self.candidates = self.auto_candidates()

        self.history.reset(self._snapshot())

        self._accumulated = 0.0
        self._run_started: Optional[float] = self._clock()
        self.elapsed_seconds = 0

    # ------------------ observers ------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: str, **data: Any) -> None:
        self._queued.append(SessionEvent(kind, data))

    def _flush(self) -> None:
        """Deliver queued events once the move is recorded; listeners see a settled session."""
        events, self._queued = self._queued, []
        for event in events:
            for listener in list(self._listeners):
                listener(event)

    # ------------------ guards ------------------
    def is_given(self, row: int, col: int) -> bool:
        return self.puzzle[row][col] != EMPTY

    def _reject(self, row: int, col: int, value: Optional[int] = None) -> Optional[MoveResult]:
        if self.state != SessionState.ACTIVE:
            return MoveResult(Outcome.NOT_ACTIVE)
        if not in_bounds(row, col):
            return MoveResult(Outcome.INVALID_CELL)
        if self.is_given(row, col):
            return MoveResult(Outcome.GIVEN_CELL, (row, col))
        if value is not None and not (isinstance(value, int) and 1 <= value <= 9):
            return MoveResult(Outcome.INVALID_VALUE, (row, col))
        return None

    # ------------------ moves ------------------
    def input_number(self, row: int, col: int, value: int) -> MoveResult:
        """Number pad entry: routed by the current input mode."""
        if self.mode == InputMode.CANDIDATE:
            return self.toggle_candidate(row, col, value)
        return self.set_number(row, col, value)

    def set_number(self, row: int, col: int, value: int) -> MoveResult:
        rejected = self._reject(row, col, value)
        if rejected:
            return rejected

        conflicts = get_conflicts(self.current_grid, row, col, value)
        is_mistake = bool(conflicts) or value != self.solution[row][col]

        self._place(row, col, value)
        if is_mistake:
            self.mistakes += 1
            self.score_mistakes += 1
            self.errors.add((row, col))
            self._emit("mistake", cell=(row, col), value=value, conflicts=conflicts)
        else:
            self.errors.discard((row, col))

        self._record()
        self._check_completion()
        self._flush()
        return MoveResult(Outcome.APPLIED, (row, col), conflicts, is_mistake)

    def toggle_candidate(self, row: int, col: int, value: int) -> MoveResult:
        rejected = self._reject(row, col, value)
        if rejected:
            return rejected
        if self.current_grid[row][col] != EMPTY:
            return MoveResult(Outcome.CELL_NOT_EMPTY, (row, col))

        marks = self.candidates.setdefault((row, col), set())
        if value in marks:
            marks.discard(value)
            if not marks:
                del self.candidates[(row, col)]
        else:
            marks.add(value)

        self._emit("candidates", cell=(row, col))
        self._record()
        self._flush()
        return MoveResult(Outcome.APPLIED, (row, col))

    def clear_cell(self, row: int, col: int) -> MoveResult:
        rejected = self._reject(row, col)
        if rejected:
            return rejected

        if self.mode == InputMode.CANDIDATE:
            if (row, col) not in self.candidates:
                return MoveResult(Outcome.ALREADY_EMPTY, (row, col))
            del self.candidates[(row, col)]
            self._emit("candidates", cell=(row, col))
        else:
            if self.current_grid[row][col] == EMPTY:
                return MoveResult(Outcome.ALREADY_EMPTY, (row, col))
            self.current_grid[row][col] = EMPTY
            self.errors.discard((row, col))
            self._emit("cell", cell=(row, col), value=EMPTY)

        self._record()
        self._flush()
        return MoveResult(Outcome.APPLIED, (row, col))

    def apply_hint(self) -> MoveResult:
        if self.state != SessionState.ACTIVE:
            return MoveResult(Outcome.NOT_ACTIVE)

        hint = next_hint(self.current_grid)
        if hint.kind == HintKind.NO_HINT_NEEDED:
            return MoveResult(Outcome.NO_HINT_NEEDED, hint=hint)
        if hint.kind == HintKind.UNSOLVABLE:
            return MoveResult(Outcome.NO_HINT_AVAILABLE, hint=hint)

        cell = (hint.row, hint.col)
        self.hints_used += 1
        self.score_mistakes += self.hint_penalty

        if hint.fills_value:
            self._place(hint.row, hint.col, hint.value)
            self.errors.discard(cell)
        else:
            self.candidates[cell] = set(hint.candidates)
            self._emit("candidates", cell=cell)

        logger.debug(f"Hint {hint.kind.value} at {cell} ({self.hints_used} used)")
        self._emit("hint", hint=hint)
        self._record()
        self._check_completion()
        self._flush()
        return MoveResult(Outcome.APPLIED, cell, hint=hint)

    def reveal_cell(self, row: int, col: int) -> MoveResult:
        """Write the solution value into a cell; counted as a hint."""
        rejected = self._reject(row, col)
        if rejected:
            return rejected

        self._place(row, col, self.solution[row][col])
        self.errors.discard((row, col))
        self.hints_used += 1
        self._record()
        self._check_completion()
        self._flush()
        return MoveResult(Outcome.APPLIED, (row, col))

    def _place(self, row: int, col: int, value: int) -> None:
        self.current_grid[row][col] = value
        self.candidates.pop((row, col), None)
        touched = []
        for peer in PEERS[(row, col)]:
            marks = self.candidates.get(peer)
            if marks and value in marks:
                marks.discard(value)
                if not marks:
                    del self.candidates[peer]
                touched.append(peer)
        self._emit("cell", cell=(row, col), value=value)
        if touched:
            self._emit("candidates", cells=touched)

    # ------------------ history ------------------
    def _snapshot(self) -> Snapshot:
        return Snapshot.capture(self.current_grid, self.candidates, self.mistakes, self.score_mistakes, self.errors)

    def _record(self) -> None:
        self.history.record(self._snapshot())

    def _restore(self, snap: Snapshot) -> None:
        self.current_grid = snap.grid_copy()
        self.candidates = snap.candidates_copy()
        self.mistakes = snap.mistakes
        self.score_mistakes = snap.score_mistakes
        self.errors = set(snap.errors)
        self._emit("history", index=self.history.index)

    def undo(self) -> MoveResult:
        if self.state != SessionState.ACTIVE:
            return MoveResult(Outcome.NOT_ACTIVE)
        snap = self.history.undo()
        if snap is None:
            return MoveResult(Outcome.NOTHING_TO_UNDO)
        self._restore(snap)
        self._flush()
        return MoveResult(Outcome.APPLIED)

    def redo(self) -> MoveResult:
        if self.state != SessionState.ACTIVE:
            return MoveResult(Outcome.NOT_ACTIVE)
        snap = self.history.redo()
        if snap is None:
            return MoveResult(Outcome.NOTHING_TO_REDO)
        self._restore(snap)
        self._check_completion()
        self._flush()
        return MoveResult(Outcome.APPLIED)

    # ------------------ clock ------------------
    def _now_elapsed(self) -> float:
        running = self._clock() - self._run_started if self._run_started is not None else 0.0
        return self._accumulated + running

    def tick(self) -> int:
        """Periodic refresh; recomputes from the clock, so repeated calls agree."""
        self.elapsed_seconds = int(math.floor(self._now_elapsed()))
        return self.elapsed_seconds

    def pause(self) -> MoveResult:
        if self.state != SessionState.ACTIVE:
            return MoveResult(Outcome.NOT_ACTIVE)
        self._accumulated = self._now_elapsed()
        self._run_started = None
        self.state = SessionState.PAUSED
        self.tick()
        self._emit("state", state=self.state)
        self._flush()
        return MoveResult(Outcome.APPLIED)

    def resume(self) -> MoveResult:
        if self.state != SessionState.PAUSED:
            return MoveResult(Outcome.NOT_ACTIVE)
        self._run_started = self._clock()
        self.state = SessionState.ACTIVE
        self._emit("state", state=self.state)
        self._flush()
        return MoveResult(Outcome.APPLIED)

    # ------------------ completion ------------------
    def _check_completion(self) -> bool:
        if self.state == SessionState.ACTIVE and is_filled(self.current_grid) and is_valid_solution(self.current_grid):
            self._complete()
            return True
        return False

    def _complete(self) -> GameResult:
        if self.result is not None:
            return self.result

        self._accumulated = self._now_elapsed()
        self._run_started = None
        self.state = SessionState.COMPLETE
        time_seconds = self.tick()

        self.result = GameResult(
            date=self.date_key,
            player=self.player,
            difficulty=self.difficulty,
            time_seconds=time_seconds,
            mistakes=self.score_mistakes,
            hints_used=self.hints_used,
            completed=True,
            score=calculate_score(time_seconds, self.score_mistakes, self.difficulty, self.mistake_time_penalty),
        )
        logger.info(
            f"{self.player} completed {self.difficulty.value} puzzle for {self.date_key} "
            f"in {time_seconds}s (mistakes={self.score_mistakes}, hints={self.hints_used}, score={self.result.score})"
        )
        self._emit("state", state=self.state)
        self._emit("completed", result=self.result)

        if self._result_sink is not None:
            try:
                self.persistence_warning = self._result_sink(self.result)
            except StoreError as e:
                logger.warning(f"Could not save game result: {e}")
                self.persistence_warning = f"Game saved locally only: {e}"
        return self.result

    # ------------------ candidates & views ------------------
    def auto_candidates(self) -> CandidateMap:
        out: CandidateMap = {}
        for (r, c) in empty_cells(self.current_grid):
            digits = legal_digits(self.current_grid, r, c)
            if digits:
                out[(r, c)] = set(digits)
        return out

    def visible_candidates(self) -> CandidateMap:
        """What the board shows: the auto view when toggled on, the player's marks otherwise."""
        source = self.auto_candidates() if self.show_all_candidates else self.candidates
        return {cell: set(marks) for cell, marks in source.items()}

    def toggle_global_candidates(self) -> bool:
        self.show_all_candidates = not self.show_all_candidates
        self._emit("candidates", show_all=self.show_all_candidates)
        self._flush()
        return self.show_all_candidates

    def toggle_mode(self) -> InputMode:
        self.mode = InputMode.CANDIDATE if self.mode == InputMode.NORMAL else InputMode.NORMAL
        return self.mode

    def select_cell(self, row: int, col: int) -> bool:
        if not in_bounds(row, col):
            return False
        self.selected = (row, col)
        return True

    def check_puzzle(self) -> List[RC]:
        """Filled cells currently in conflict with another cell."""
        bad = []
        for r in range(SIZE):
            for c in range(SIZE):
                v = self.current_grid[r][c]
                if v != EMPTY and get_conflicts(self.current_grid, r, c, v):
                    bad.append((r, c))
        return bad

    def digit_counts(self) -> Dict[int, int]:
        counts = {d: 0 for d in range(1, 10)}
        for row in self.current_grid:
            for v in row:
                if v != EMPTY:
                    counts[v] += 1
        return counts

    def reset(self) -> MoveResult:
        """Start the same puzzle over; not allowed once complete."""
        if self.state == SessionState.COMPLETE:
            return MoveResult(Outcome.NOT_ACTIVE)
        self._start()
        self._emit("state", state=self.state)
        self._flush()
        return MoveResult(Outcome.APPLIED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date_key,
            "player": self.player,
            "difficulty": self.difficulty.value,
            "state": self.state.value,
            "mode": self.mode.value,
            "grid": copy_grid(self.current_grid),
            "puzzle": copy_grid(self.puzzle),
            "candidates": {f"{r},{c}": sorted(m) for (r, c), m in self.visible_candidates().items()},
            "errors": sorted(self.errors),
            "selected": self.selected,
            "mistakes": self.mistakes,
            "scoreMistakes": self.score_mistakes,
            "hintsUsed": self.hints_used,
            "elapsedSeconds": self.tick(),
            "canUndo": self.history.can_undo,
            "canRedo": self.history.can_redo,
        }
