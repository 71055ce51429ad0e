import argparse
import logging
import sys

from daily_sudoku.board import find_duplicates, parse_81, pretty
from daily_sudoku.daily import DailyPuzzles, today_key
from daily_sudoku.generator import generate_daily_puzzle
from daily_sudoku.hints import next_hint
from daily_sudoku.models import Outcome
from daily_sudoku.render import TextRenderer, render_candidates
from daily_sudoku.scoring import calculate_score
from daily_sudoku.settings import load_settings
from daily_sudoku.solver import count_solutions
from daily_sudoku.store import HttpGameStore, SqliteGameStore, StoreError

logger = logging.getLogger(__name__)

PLAY_HELP = """Commands:
  set R C V     place V at row R, column C (1-based)
  cand R C V    toggle pencil mark V
  clear R C     clear cell (value, or marks in candidate mode)
  hint | reveal R C | undo | redo | mode | all | cands
  check | pause | resume | show | help | quit"""


def print_grid(grid):
    print(pretty(grid))


def make_store(settings):
    if settings.get("remote_api_url"):
        return HttpGameStore(settings["remote_api_url"])
    return SqliteGameStore(settings["database_path"])


def cmd_generate(args, settings) -> int:
    daily = generate_daily_puzzle(args.date, args.difficulty)
    print(f"\nPUZZLE {daily.date_key} {daily.difficulty.value.upper()} (seed {daily.seed}, {daily.clue_count} clues):\n")
    print_grid(daily.puzzle)
    if args.show_solution:
        print("\nSOLUTION:\n")
        print_grid(daily.solution)
    print()
    return 0


def cmd_hint(args, settings) -> int:
    grid = parse_81(args.grid)
    hint = next_hint(grid)
    print("HINT REPORT")
    print("-" * 60)
    print(f"Kind: {hint.kind.value}")
    print(hint.message)
    print("-" * 60)
    return 0 if hint.has_hint else 1


def cmd_check(args, settings) -> int:
    grid = parse_81(args.grid)
    print("\nGRID:\n")
    print_grid(grid)
    print()
    print("VALIDATION REPORT")
    print("-" * 60)
    duplicates = find_duplicates(grid)
    if duplicates:
        print("Status: FAIL")
        for region, idx, digit, cells in duplicates:
            where = ", ".join(f"(r{r+1}, c{c+1})" for (r, c) in cells)
            print(f"- digit {digit} repeated in {region.value} {idx+1}: {where}")
        print("-" * 60)
        return 1
    solutions = count_solutions(grid, cap=2)
    status = {0: "no solution", 1: "unique solution"}.get(solutions, "multiple solutions")
    print(f"Status: PASS (no row/col/box duplicates, {status})")
    print("-" * 60)
    return 0


def cmd_score(args, settings) -> int:
    score = calculate_score(args.time, args.mistakes, args.difficulty, settings["mistake_time_penalty"])
    print(score)
    return 0


def cmd_leaderboard(args, settings) -> int:
    store = make_store(settings)
    rows = store.get_leaderboard(args.difficulty, args.limit or settings["leaderboard_limit"])
    print(f"LEADERBOARD ({args.difficulty.upper()})")
    print("=" * 60)
    if not rows:
        print("No completed games yet.")
    for i, row in enumerate(rows, 1):
        print(f"{i:>2}. {row['player']:<20} score {row['bestScore']:>6}  best time {row['bestTime']}s  games {row['gamesPlayed']}")
    print("=" * 60)
    return 0


def _cell_args(parts, count):
    if len(parts) != count:
        raise ValueError("wrong number of arguments")
    return [int(p) - 1 if i < 2 else int(p) for i, p in enumerate(parts)]


def cmd_play(args, settings) -> int:
    try:
        store = make_store(settings)
    except StoreError as e:
        logger.warning(f"Store unavailable, results will only be kept for this game: {e}")
        store = None
    manager = DailyPuzzles(args.player or settings["default_player"], store, settings=settings)
    date_key = args.date or today_key()
    manager.load_completions(date_key)
    session = manager.start_daily_game(args.difficulty, date_key)
    if session is None:
        print(f"You already completed the {args.difficulty} puzzle for {date_key}!")
        return 0

    view = TextRenderer(session)
    view.draw()
    print(PLAY_HELP)

    while True:
        try:
            line = input("> ").strip()
        except EOFError:
            break
        if not line:
            continue
        cmd, *parts = line.split()
        try:
            if cmd == "quit":
                print("Game quit. Your progress was not saved.")
                break
            elif cmd == "help":
                print(PLAY_HELP)
                continue
            elif cmd == "set":
                r, c, v = _cell_args(parts, 3)
                result = session.set_number(r, c, v)
            elif cmd == "cand":
                r, c, v = _cell_args(parts, 3)
                result = session.toggle_candidate(r, c, v)
            elif cmd == "clear":
                r, c = _cell_args(parts, 2)
                result = session.clear_cell(r, c)
            elif cmd == "reveal":
                r, c = _cell_args(parts, 2)
                result = session.reveal_cell(r, c)
            elif cmd == "hint":
                result = session.apply_hint()
            elif cmd == "undo":
                result = session.undo()
            elif cmd == "redo":
                result = session.redo()
            elif cmd == "pause":
                result = session.pause()
            elif cmd == "resume":
                result = session.resume()
            elif cmd == "mode":
                print(f"Mode: {session.toggle_mode().value}")
                continue
            elif cmd == "all":
                shown = session.toggle_global_candidates()
                print(f"Showing {'all' if shown else 'your'} candidates")
                continue
            elif cmd == "cands":
                print(render_candidates(session))
                continue
            elif cmd == "check":
                bad = session.check_puzzle()
                print("Errors found! " + ", ".join(f"r{r+1}c{c+1}" for r, c in bad) if bad else "No errors found! Keep going!")
                continue
            elif cmd == "show":
                view.draw()
                continue
            else:
                print(f"Unknown command '{cmd}'. Type help.")
                continue
        except ValueError as e:
            print(f"Bad input: {e}")
            continue

        if result.outcome != Outcome.APPLIED:
            print(f"Not allowed: {result.outcome.value}")
        view.draw()
        if session.result is not None:
            if session.persistence_warning:
                print(session.persistence_warning)
            break
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="daily-sudoku", description="Daily Sudoku puzzles with score tracking")
    p.add_argument("--config", help="Path to a JSON settings file")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    g = sub.add_parser("generate", help="Print the puzzle for a date")
    g.add_argument("--date", default=today_key(), help="YYYY-MM-DD (default: today)")
    g.add_argument("--difficulty", default="medium", choices=["easy", "medium", "hard"])
    g.add_argument("--show-solution", action="store_true")
    g.set_defaults(func=cmd_generate)

    h = sub.add_parser("hint", help="Print one next-step hint for a grid")
    h.add_argument("--grid", required=True, help="81-char grid (digits + . or 0)")
    h.set_defaults(func=cmd_hint)

    c = sub.add_parser("check", help="Validate a grid")
    c.add_argument("--grid", required=True, help="81-char grid (digits + . or 0)")
    c.set_defaults(func=cmd_check)

    s = sub.add_parser("score", help="Compute a score")
    s.add_argument("--time", type=int, required=True, help="Seconds")
    s.add_argument("--mistakes", type=float, default=0)
    s.add_argument("--difficulty", default="medium", choices=["easy", "medium", "hard"])
    s.set_defaults(func=cmd_score)

    lb = sub.add_parser("leaderboard", help="Best players for a difficulty")
    lb.add_argument("--difficulty", default="medium", choices=["easy", "medium", "hard"])
    lb.add_argument("--limit", type=int)
    lb.set_defaults(func=cmd_leaderboard)

    pl = sub.add_parser("play", help="Play the daily puzzle in the terminal")
    pl.add_argument("--difficulty", default="medium", choices=["easy", "medium", "hard"])
    pl.add_argument("--date", help="YYYY-MM-DD (default: today)")
    pl.add_argument("--player")
    pl.set_defaults(func=cmd_play)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    settings = load_settings(args.config)
    try:
        return args.func(args, settings)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except StoreError as e:
        logger.error(f"Store unavailable: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
