"""Tests for the text renderer and the command line."""

import io

import pytest

from conftest import CLASSIC_PUZZLE
from daily_sudoku.main import main
from daily_sudoku.render import TextRenderer, render_board, render_candidates, render_status
from daily_sudoku.session import SolvingSession
from daily_sudoku.store import StoreError


@pytest.fixture
def session(classic_daily, clock):
    return SolvingSession(classic_daily, clock=clock)


def test_render_board_marks_errors(session):
    session.set_number(0, 2, 5)
    lines = render_board(session).splitlines()
    assert lines[1].startswith("1   5 3 5!| . 7 . |")
    assert lines[2].startswith("2   6 . . | 1 9 5 |")
    assert len(lines) == 12


def test_render_candidates(session):
    assert render_candidates(session) == "(no candidates)"
    session.toggle_candidate(0, 2, 4)
    session.toggle_candidate(0, 2, 1)
    assert render_candidates(session) == "r1c3: 14"


def test_render_status(session, clock):
    clock.advance(75)
    assert render_status(session) == "EASY 2025-09-22 | time 1:15 | mistakes 0 | hints 0 | mode normal"
    session.pause()
    assert render_status(session).endswith("PAUSED")


def test_text_renderer_reports_events(one_blank_daily, clock):
    s = SolvingSession(one_blank_daily, clock=clock)
    out = io.StringIO()
    view = TextRenderer(s, out)
    s.set_number(0, 0, 3)
    clock.advance(90)
    s.set_number(0, 0, 5)
    text = out.getvalue()
    assert "Invalid placement at r1c1." in text
    assert "Puzzle completed in 1:30!" in text
    view.unsubscribe()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_cli_score(workdir, capsys):
    assert main(["score", "--time", "300", "--mistakes", "2", "--difficulty", "medium"]) == 0
    assert capsys.readouterr().out.strip() == "250"


def test_cli_check(workdir, capsys):
    assert main(["check", "--grid", CLASSIC_PUZZLE]) == 0
    assert "unique solution" in capsys.readouterr().out
    assert main(["check", "--grid", "55" + "0" * 79]) == 1
    assert "digit 5 repeated in row 1" in capsys.readouterr().out


def test_cli_hint(workdir, capsys):
    assert main(["hint", "--grid", CLASSIC_PUZZLE]) == 0
    assert "naked_single" in capsys.readouterr().out


def test_cli_bad_grid(workdir, capsys):
    assert main(["hint", "--grid", "123"]) == 2
    assert "Error:" in capsys.readouterr().err


def test_cli_generate(workdir, capsys):
    assert main(["generate", "--date", "2025-09-22", "--difficulty", "easy", "--show-solution"]) == 0
    out = capsys.readouterr().out
    assert "PUZZLE 2025-09-22 EASY (seed 20250922" in out
    assert "SOLUTION:" in out


def test_cli_leaderboard_empty(workdir, capsys):
    assert main(["leaderboard", "--difficulty", "hard"]) == 0
    assert "No completed games yet." in capsys.readouterr().out


def test_cli_play_session(workdir, capsys, monkeypatch):
    commands = iter(["help", "pause", "set 1 1 1", "resume", "mode", "quit"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(commands))
    assert main(["play", "--date", "2025-09-22", "--difficulty", "easy", "--player", "alice"]) == 0
    out = capsys.readouterr().out
    assert "Not allowed: NOT_ACTIVE" in out
    assert "Mode: candidate" in out
    assert "Game quit." in out


def test_cli_play_without_store(workdir, capsys, monkeypatch):
    def unavailable(path):
        raise StoreError(f"Cannot open database {path}")

    monkeypatch.setattr("daily_sudoku.main.SqliteGameStore", unavailable)
    commands = iter(["hint", "quit"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(commands))
    assert main(["play", "--date", "2025-09-22", "--difficulty", "easy"]) == 0
    out = capsys.readouterr().out
    assert "hints 1" in out
    assert "Game quit." in out
