from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import BadRequest

from daily_sudoku.board import check_grid, find_duplicates, grid_to_81, parse_81
from daily_sudoku.daily import today_key
from daily_sudoku.generator import PuzzleGenerator
from daily_sudoku.hints import next_hint
from daily_sudoku.models import GameResult
from daily_sudoku.scoring import calculate_score
from daily_sudoku.settings import load_settings
from daily_sudoku.store import GameStore, SqliteGameStore, StoreError

logger = logging.getLogger(__name__)


def _norm81(s) -> str:
    if s is None:
        s = ""
    if not isinstance(s, str):
        raise ValueError("grid must be an 81-character string or a 9x9 list")
    s = s.replace(".", "0")
    s = "".join(s.split())
    if len(s) != 81:
        raise ValueError(f"Expected 81 characters, got {len(s)}")
    if any(ch not in "0123456789" for ch in s):
        raise ValueError("Only digits, 0, '.' and whitespace are allowed")
    return s


def _json_object() -> dict:
    data = request.get_json(force=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _duplicate_cells(grid):
    """
    Cells involved in any row/col/box duplicate, de-duplicated by cell.
    cells: list of {"r": int, "c": int, "digit": int} (1-indexed)
    """
    uniq = {}
    for _region, _idx, digit, cells in find_duplicates(grid):
        for (r, c) in cells:
            uniq[(r, c)] = {"r": r + 1, "c": c + 1, "digit": digit}
    return [uniq[k] for k in sorted(uniq)]


def create_app(store: Optional[GameStore] = None, settings: Optional[dict] = None) -> Flask:
    settings = settings or load_settings()
    store = store or SqliteGameStore(settings["database_path"])
    generator = PuzzleGenerator()

    app = Flask(__name__)
    CORS(app)

    @app.errorhandler(ValueError)
    def bad_request(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(BadRequest)
    def malformed(e):
        return jsonify({"error": e.description}), 400

    @app.errorhandler(StoreError)
    def store_failed(e):
        logger.error(f"Store error: {e}")
        return jsonify({"error": "Internal server error", "details": str(e)}), 500

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    @app.get("/api/puzzle")
    def puzzle():
        date_key = request.args.get("date") or today_key()
        difficulty = request.args.get("difficulty", "medium")
        daily = generator.generate_daily_puzzle(date_key, difficulty)
        data = daily.to_dict()
        data["puzzle81"] = grid_to_81(daily.puzzle)
        data["clues"] = daily.clue_count
        return jsonify(data)

    @app.post("/api/hint")
    def hint():
        data = _json_object()
        raw = data.get("grid", "")
        grid = check_grid(raw) if isinstance(raw, list) else parse_81(_norm81(raw))

        duplicates = _duplicate_cells(grid)
        h = next_hint(grid)
        return jsonify({
            "validation": {"ok": not duplicates},
            "duplicates": duplicates,
            "hint": h.to_dict(),
        })

    @app.get("/api/games")
    def games():
        action = request.args.get("action")
        player = request.args.get("player", "")
        date_key = request.args.get("date") or today_key()

        if action == "completions":
            return jsonify(store.get_daily_completions(player, date_key))

        if action == "results":
            return jsonify(store.get_game_results(player, date_key))

        if action == "leaderboard":
            difficulty = request.args.get("difficulty", "medium")
            limit = int(request.args.get("limit", settings["leaderboard_limit"]))
            return jsonify(store.get_leaderboard(difficulty, limit))

        return jsonify({"error": "Invalid action parameter"}), 400

    @app.post("/api/games")
    def save_game():
        data = _json_object()
        result = GameResult.from_dict(data)
        if data.get("score") is None:
            result = replace(result, score=calculate_score(result.time_seconds, result.mistakes, result.difficulty))
        store.save_game_result(result)
        return jsonify({"success": True, "message": "Game result saved successfully"})

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    cfg = load_settings()
    create_app(settings=cfg).run(host=cfg["api_host"], port=int(cfg["api_port"]), debug=True)
