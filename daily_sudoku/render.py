from __future__ import annotations

import sys
from typing import List, TextIO

from daily_sudoku.board import EMPTY, SIZE
from daily_sudoku.models import SessionEvent, SessionState
from daily_sudoku.scoring import format_time
from daily_sudoku.session import SolvingSession


def render_board(session: SolvingSession) -> str:
    """
    Digits as entered, errored cells suffixed with '!', '.' for empty.
    Pencil marks are not drawn here, see render_candidates.
    """
    grid = session.current_grid
    lines: List[str] = ["    " + " ".join(str(c + 1) + ("  " if c in (2, 5) else "") for c in range(SIZE)).rstrip()]
    for r in range(SIZE):
        if r in (3, 6):
            lines.append("   " + "-" * 21)
        row = []
        for c in range(SIZE):
            if c in (3, 6):
                row.append("| ")
            v = grid[r][c]
            if v == EMPTY:
                cell = ". "
            elif (r, c) in session.errors:
                cell = f"{v}!"
            else:
                cell = f"{v} "
            row.append(cell)
        lines.append(f"{r+1}   " + "".join(row).rstrip())
    return "\n".join(lines)


def render_candidates(session: SolvingSession) -> str:
    marks = session.visible_candidates()
    if not marks:
        return "(no candidates)"
    return "\n".join(
        f"r{r+1}c{c+1}: {''.join(str(d) for d in sorted(ds))}"
        for (r, c), ds in sorted(marks.items())
    )


def render_status(session: SolvingSession) -> str:
    parts = [
        f"{session.difficulty.value.upper()} {session.date_key}",
        f"time {format_time(session.tick())}",
        f"mistakes {session.mistakes}",
        f"hints {session.hints_used}",
        f"mode {session.mode.value}",
    ]
    if session.state != SessionState.ACTIVE:
        parts.append(session.state.value)
    return " | ".join(parts)


class TextRenderer:
    """Session subscriber that reports mistakes, hints and completion."""

    def __init__(self, session: SolvingSession, out: TextIO = sys.stdout):
        self.session = session
        self.out = out
        self.unsubscribe = session.subscribe(self.on_event)

    def on_event(self, event: SessionEvent) -> None:
        if event.kind == "mistake":
            self.out.write(f"Invalid placement at r{event.data['cell'][0]+1}c{event.data['cell'][1]+1}.\n")
        elif event.kind == "hint":
            self.out.write(event.data["hint"].message + "\n")
        elif event.kind == "completed":
            result = event.data["result"]
            self.out.write(f"Puzzle completed in {format_time(result.time_seconds)}! Score: {result.score}\n")

    def draw(self) -> None:
        self.out.write(render_board(self.session) + "\n")
        self.out.write(render_status(self.session) + "\n")
