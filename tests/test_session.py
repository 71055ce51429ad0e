"""Tests for a single solving session: moves, history, clock and completion."""

from dataclasses import replace

import pytest

from daily_sudoku.board import parse_81
from daily_sudoku.models import Difficulty, HintKind, HintResult, InputMode, Outcome, SessionState
from daily_sudoku.scoring import calculate_score
from daily_sudoku.session import SolvingSession
from daily_sudoku.solver import legal_digits
from daily_sudoku.store import StoreError


@pytest.fixture
def session(classic_daily, clock):
    return SolvingSession(classic_daily, player="alice", clock=clock)


@pytest.fixture
def finishing(one_blank_daily, clock):
    """Session one correct move away from completion, recording results."""
    saved = []
    s = SolvingSession(one_blank_daily, player="alice", result_sink=lambda r: saved.append(r), clock=clock)
    s.saved = saved
    return s


def test_given_cells_are_immutable(session):
    before = [row[:] for row in session.current_grid]
    assert session.set_number(0, 0, 1).outcome == Outcome.GIVEN_CELL
    assert session.clear_cell(0, 0).outcome == Outcome.GIVEN_CELL
    assert session.toggle_candidate(0, 0, 1).outcome == Outcome.GIVEN_CELL
    assert session.reveal_cell(0, 0).outcome == Outcome.GIVEN_CELL
    assert session.current_grid == before
    assert not session.history.can_undo


def test_invalid_cell_and_value(session):
    assert session.set_number(9, 0, 1).outcome == Outcome.INVALID_CELL
    assert session.set_number(0, -1, 1).outcome == Outcome.INVALID_CELL
    assert session.set_number(0, 2, 0).outcome == Outcome.INVALID_VALUE
    assert session.set_number(0, 2, 10).outcome == Outcome.INVALID_VALUE
    assert session.mistakes == 0


def test_conflicting_entry_is_a_mistake(session):
    result = session.set_number(0, 2, 5)
    assert result.ok
    assert result.is_mistake
    assert result.conflicts == [(0, 0)]
    assert session.current_grid[0][2] == 5
    assert session.mistakes == 1
    assert session.score_mistakes == 1
    assert (0, 2) in session.errors
    assert session.check_puzzle() == [(0, 0), (0, 2)]


def test_wrong_but_legal_entry_is_a_mistake(session):
    result = session.set_number(0, 2, 1)
    assert result.is_mistake
    assert result.conflicts == []
    assert session.mistakes == 1


def test_correct_entry_clears_error(session):
    session.set_number(0, 2, 5)
    result = session.set_number(0, 2, 4)
    assert result.ok and not result.is_mistake
    assert (0, 2) not in session.errors
    assert session.mistakes == 1


def test_toggle_candidate(session):
    assert session.toggle_candidate(0, 2, 1).ok
    assert session.toggle_candidate(0, 2, 2).ok
    assert session.candidates[(0, 2)] == {1, 2}
    session.toggle_candidate(0, 2, 1)
    session.toggle_candidate(0, 2, 2)
    assert (0, 2) not in session.candidates


def test_toggle_candidate_on_filled_cell(session):
    session.set_number(0, 2, 4)
    assert session.toggle_candidate(0, 2, 1).outcome == Outcome.CELL_NOT_EMPTY


def test_placing_value_clears_peer_marks(session):
    session.toggle_candidate(0, 2, 1)
    session.toggle_candidate(0, 3, 4)
    session.toggle_candidate(0, 3, 6)
    session.toggle_candidate(8, 2, 4)  # same column as (0, 2)
    session.toggle_candidate(4, 4, 4)  # not a peer
    session.set_number(0, 2, 4)
    assert (0, 2) not in session.candidates
    assert session.candidates[(0, 3)] == {6}
    assert (8, 2) not in session.candidates
    assert session.candidates[(4, 4)] == {4}


def test_input_number_follows_mode(session):
    assert session.toggle_mode() == InputMode.CANDIDATE
    session.input_number(0, 2, 1)
    assert session.current_grid[0][2] == 0
    assert session.candidates[(0, 2)] == {1}
    assert session.toggle_mode() == InputMode.NORMAL
    session.input_number(0, 2, 4)
    assert session.current_grid[0][2] == 4


def test_clear_cell(session):
    assert session.clear_cell(0, 2).outcome == Outcome.ALREADY_EMPTY
    session.set_number(0, 2, 5)
    assert session.clear_cell(0, 2).ok
    assert session.current_grid[0][2] == 0
    assert (0, 2) not in session.errors
    assert session.mistakes == 1


def test_clear_cell_in_candidate_mode(session):
    session.toggle_candidate(0, 2, 1)
    session.toggle_mode()
    assert session.clear_cell(0, 2).ok
    assert (0, 2) not in session.candidates
    assert session.clear_cell(0, 2).outcome == Outcome.ALREADY_EMPTY


def test_undo_redo_round_trip(session, classic_daily):
    session.set_number(0, 2, 5)
    session.toggle_candidate(0, 3, 6)
    session.set_number(0, 2, 4)
    after = ([row[:] for row in session.current_grid], dict(session.candidates), session.mistakes)

    for _ in range(3):
        assert session.undo().ok
    assert session.undo().outcome == Outcome.NOTHING_TO_UNDO
    assert session.current_grid == classic_daily.puzzle
    assert session.candidates == {}
    assert session.mistakes == 0
    assert session.score_mistakes == 0
    assert session.errors == set()

    for _ in range(3):
        assert session.redo().ok
    assert session.redo().outcome == Outcome.NOTHING_TO_REDO
    assert (session.current_grid, session.candidates, session.mistakes) == after


def test_new_move_after_undo_drops_redo(session):
    session.set_number(0, 2, 4)
    session.undo()
    session.set_number(0, 2, 1)
    assert session.redo().outcome == Outcome.NOTHING_TO_REDO
    assert session.current_grid[0][2] == 1


def test_history_cap(classic_daily, clock):
    s = SolvingSession(classic_daily, clock=clock, max_history=3)
    for v in (1, 2, 4, 1, 2):
        s.set_number(0, 2, v)
    assert s.undo().ok
    assert s.undo().ok
    assert s.undo().outcome == Outcome.NOTHING_TO_UNDO
    assert s.current_grid[0][2] == 4


def test_pause_and_resume_timing(session, clock):
    clock.advance(10)
    assert session.pause().ok
    assert session.state == SessionState.PAUSED
    clock.advance(100)
    assert session.tick() == 10
    assert session.resume().ok
    clock.advance(5)
    assert session.tick() == 15
    assert session.tick() == 15


def test_paused_session_rejects_moves(session):
    session.set_number(0, 2, 4)
    session.pause()
    assert session.set_number(0, 3, 6).outcome == Outcome.NOT_ACTIVE
    assert session.toggle_candidate(0, 3, 6).outcome == Outcome.NOT_ACTIVE
    assert session.apply_hint().outcome == Outcome.NOT_ACTIVE
    assert session.undo().outcome == Outcome.NOT_ACTIVE
    assert session.pause().outcome == Outcome.NOT_ACTIVE
    assert session.current_grid[0][2] == 4
    session.resume()
    assert session.resume().outcome == Outcome.NOT_ACTIVE


def test_completion_records_one_result(finishing, clock):
    events = []
    finishing.subscribe(lambda e: events.append(e.kind))
    clock.advance(300)
    result = finishing.set_number(0, 0, 5)
    assert result.ok
    assert finishing.state == SessionState.COMPLETE
    assert len(finishing.saved) == 1
    game = finishing.saved[0]
    assert game is finishing.result
    assert (game.player, game.difficulty, game.time_seconds) == ("alice", Difficulty.MEDIUM, 300)
    assert game.score == calculate_score(300, 0, "medium") == 300
    assert events.count("completed") == 1

    assert finishing.set_number(0, 0, 5).outcome == Outcome.NOT_ACTIVE
    assert finishing.undo().outcome == Outcome.NOT_ACTIVE
    assert finishing.reset().outcome == Outcome.NOT_ACTIVE
    assert finishing.pause().outcome == Outcome.NOT_ACTIVE
    assert len(finishing.saved) == 1


def test_clock_stops_on_completion(finishing, clock):
    clock.advance(42)
    finishing.set_number(0, 0, 5)
    clock.advance(1000)
    assert finishing.tick() == 42


def test_filled_but_wrong_grid_is_not_complete(finishing):
    result = finishing.set_number(0, 0, 3)
    assert result.is_mistake
    assert finishing.state == SessionState.ACTIVE
    finishing.set_number(0, 0, 5)
    assert finishing.state == SessionState.COMPLETE
    assert finishing.result.mistakes == 1


def test_hint_costs_half_a_mistake(finishing, clock):
    clock.advance(60)
    result = finishing.apply_hint()
    assert result.ok
    assert result.hint.kind == HintKind.NAKED_SINGLE
    assert finishing.current_grid[0][0] == 5
    assert finishing.mistakes == 0
    assert finishing.hints_used == 1
    assert finishing.result.mistakes == 0.5
    assert finishing.result.hints_used == 1
    assert finishing.result.score == calculate_score(60, 0.5, "medium")


def test_candidate_hint_sets_marks(session, monkeypatch):
    hint = HintResult(HintKind.CANDIDATE_ELIMINATION, 0, 2, 0, [1, 2, 4], None, "Narrow down (r1, c3).")
    monkeypatch.setattr("daily_sudoku.session.next_hint", lambda grid: hint)
    result = session.apply_hint()
    assert result.ok and result.cell == (0, 2)
    assert session.current_grid[0][2] == 0
    assert session.candidates[(0, 2)] == {1, 2, 4}
    assert session.score_mistakes == 0.5

    session.undo()
    assert session.score_mistakes == 0
    assert session.hints_used == 1


def test_no_hint_available(session, monkeypatch):
    monkeypatch.setattr(
        "daily_sudoku.session.next_hint",
        lambda grid: HintResult(HintKind.UNSOLVABLE, message="stuck"),
    )
    result = session.apply_hint()
    assert result.outcome == Outcome.NO_HINT_AVAILABLE
    assert session.hints_used == 0
    assert session.score_mistakes == 0


def test_reveal_cell(session):
    assert session.reveal_cell(0, 2).ok
    assert session.current_grid[0][2] == 4
    assert session.hints_used == 1
    assert session.score_mistakes == 0


def test_store_failure_becomes_warning(one_blank_daily, clock):
    def broken_sink(result):
        raise StoreError("database is locked")

    s = SolvingSession(one_blank_daily, result_sink=broken_sink, clock=clock)
    s.set_number(0, 0, 5)
    assert s.state == SessionState.COMPLETE
    assert s.result is not None
    assert "database is locked" in s.persistence_warning


def test_global_candidates_keep_player_marks(session):
    session.toggle_candidate(0, 2, 1)
    assert session.toggle_global_candidates() is True
    shown = session.visible_candidates()
    assert shown == session.auto_candidates()
    assert shown[(0, 2)] == {1, 2, 4}
    assert session.toggle_global_candidates() is False
    assert session.visible_candidates() == {(0, 2): {1}}


def test_medium_starts_with_auto_candidates(classic_daily, clock):
    s = SolvingSession(replace(classic_daily, difficulty=Difficulty.MEDIUM), clock=clock)
    assert s.candidates[(0, 2)] == {1, 2, 4}
    for (r, c), marks in s.candidates.items():
        assert marks == set(legal_digits(s.current_grid, r, c))


def test_easy_starts_without_candidates(session):
    assert session.candidates == {}


def test_subscribe_and_unsubscribe(session):
    seen = []
    unsubscribe = session.subscribe(seen.append)
    session.set_number(0, 2, 5)
    assert [e.kind for e in seen] == ["cell", "mistake"]
    assert seen[1].data["conflicts"] == [(0, 0)]
    unsubscribe()
    session.set_number(0, 2, 4)
    assert len(seen) == 2


def test_reset_starts_over(session, classic_daily, clock):
    session.set_number(0, 2, 5)
    clock.advance(30)
    assert session.reset().ok
    assert session.current_grid == classic_daily.puzzle
    assert session.mistakes == 0
    assert not session.history.can_undo
    assert session.tick() == 0


def test_digit_counts_and_to_dict(session):
    counts = session.digit_counts()
    assert sum(counts.values()) == 30
    assert counts[5] == 3
    data = session.to_dict()
    assert data["state"] == "ACTIVE"
    assert data["difficulty"] == "easy"
    assert data["canUndo"] is False
    assert data["grid"] == parse_81(
        "530070000600195000098000060800060003400803001700020006060000280000419005000080079"
    )


def test_select_cell(session):
    assert session.select_cell(4, 4)
    assert session.selected == (4, 4)
    assert not session.select_cell(9, 9)
    assert session.selected == (4, 4)


def test_listener_error_leaves_move_recorded(session):
    def broken(event):
        raise RuntimeError("renderer crashed")

    session.subscribe(broken)
    with pytest.raises(RuntimeError):
        session.set_number(0, 2, 4)
    assert session.current_grid[0][2] == 4
    assert session.history.can_undo
    assert session.history.current.grid[0][2] == 4


def test_listeners_see_recorded_state(finishing):
    seen = []
    finishing.subscribe(lambda e: seen.append((e.kind, finishing.history.can_undo, finishing.state)))
    finishing.set_number(0, 0, 5)
    assert ("cell", True, SessionState.COMPLETE) in seen
    assert seen[-1] == ("completed", True, SessionState.COMPLETE)
