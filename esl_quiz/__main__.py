"""CLI entry point for esl-quiz.

Usage:
  python -m esl_quiz serve [--port PORT] [--host HOST]
  python -m esl_quiz stop
  python -m esl_quiz restart [--port PORT]
  python -m esl_quiz status
  python -m esl_quiz import FILE [--owner NAME] [--public]
  python -m esl_quiz lists
  python -m esl_quiz leaderboard [--period YYYY-MM] [--top N]
"""
from __future__ import annotations

import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "import":
        _import_list(args[1:])
    elif command == "lists":
        _lists()
    elif command == "leaderboard":
        _leaderboard(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, restart, status, import, lists, leaderboard")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _read_pid() -> int | None:
    """Read PID from file, return None if stale or missing."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None


def _stop() -> bool:
    """Stop a running server. Returns True if a server was stopped."""
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
        print(f"Stopped server (PID {pid}).")
        PID_FILE.unlink(missing_ok=True)
        return True
    except ProcessLookupError:
        print("Server was not running (stale PID file removed).")
        PID_FILE.unlink(missing_ok=True)
        return False


def _status():
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
    else:
        print(f"Server is running (PID {pid}).")


def _restart(args: list[str]):
    import time
    _stop()
    time.sleep(1)
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    port = int(_parse_flag(args, "--port", "8766"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    PID_FILE.write_text(str(os.getpid()))

    print(f"Starting ESL Quiz on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run(
            "esl_quiz.app:app",
            host=host,
            port=port,
            reload=False,
            timeout_graceful_shutdown=5,
        )
    finally:
        PID_FILE.unlink(missing_ok=True)


def _import_list(args: list[str]):
    from esl_quiz.config import load_settings
    from esl_quiz.db import Database
    from esl_quiz.parsers.wordlist_parser import parse_word_list_file

    owner = _parse_flag(args, "--owner", "")
    files = []
    skip = False
    for a in args:
        if skip:
            skip = False
        elif a == "--owner":
            skip = True
        elif not a.startswith("--"):
            files.append(a)
    if not files:
        print("Usage: python -m esl_quiz import FILE [--owner NAME] [--public]")
        sys.exit(1)

    settings = load_settings()
    db = Database(settings.db_full_path)
    for name in files:
        path = Path(name)
        if not path.exists():
            print(f"  Skipping (not found): {path}")
            continue
        parsed = parse_word_list_file(path)
        if not parsed.words:
            print(f"  Skipping (no words): {path.name}")
            continue
        list_id = db.create_word_list(
            title=parsed.title,
            words=parsed.words,
            created_by=owner,
            difficulty=parsed.difficulty,
            is_public="--public" in args,
            description=parsed.description,
            category=parsed.category,
            language=parsed.language,
            tags=parsed.tags,
        )
        print(f"  {parsed.title}: {len(parsed.words)} words -> {list_id}")
    db.close()


def _lists():
    from esl_quiz.config import load_settings
    from esl_quiz.db import Database

    settings = load_settings()
    db = Database(settings.db_full_path)
    lists = db.get_all_word_lists()
    if not lists:
        print("No word lists.")
    for wl in lists:
        visibility = "public " if wl.is_public else "private"
        print(f"{wl.id}  {wl.title:30s} {visibility} {len(wl.words):3d} words  used {wl.usage_count}x")
    db.close()


def _leaderboard(args: list[str]):
    from esl_quiz.config import load_settings
    from esl_quiz.db import Database
    from esl_quiz.ranking import period_key, top_n

    settings = load_settings()
    key = _parse_flag(args, "--period", period_key())
    n = int(_parse_flag(args, "--top", str(settings.leaderboard_size)))

    db = Database(settings.db_full_path)
    players = top_n(db.fetch_period_entries(key), n)
    db.close()

    print(f"Leaderboard {key}")
    print("=" * 40)
    if not players:
        print("No scores yet.")
    for p in players:
        print(f"{p.rank:3d}. {p.display_name:24s} {p.total_score:6d}  ({p.games_played} games)")


if __name__ == "__main__":
    main()
