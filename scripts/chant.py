#!/usr/bin/env python3
"""Count mantra repetitions from the terminal.

Usage:
    python scripts/chant.py --target 108     # press Enter once per repetition
    python scripts/chant.py --history        # list completed sessions
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from bhakthas.chant import PRESET_TARGETS, AchievementHistory, ChantSession
from bhakthas.config import Config
from bhakthas.errors import BhakthasError


def bell() -> None:
    sys.stdout.write("\a")
    sys.stdout.flush()


def show_history(history: AchievementHistory) -> None:
    entries = history.entries()
    if not entries:
        print("No completed sessions yet.")
        return
    for number, entry in enumerate(entries[-15:], start=max(1, len(entries) - 14)):
        print(f"#{number}  {entry['target']:>6} mantras  {entry['completed_at']}")
    print(f"{len(entries)} total")


def run_session(session: ChantSession) -> None:
    print(f"Chanting towards {session.target}. Press Enter per repetition, 'r' to reset, 'q' to quit.")
    session.start_manual()
    while True:
        try:
            line = input(f"{session.count}/{session.target} > ").strip().lower()
        except EOFError:
            break
        if line == "q":
            break
        if line == "r":
            session.reset()
            session.start_manual()
            continue
        try:
            session.increment()
        except BhakthasError as exc:
            print(exc.message)
            continue
        if session.completed:
            print(f"You've successfully chanted {session.target} mantras. OM!")


def main() -> None:
    parser = argparse.ArgumentParser(description="Mantra chant counter")
    parser.add_argument("--target", default="108",
                        help=f"Repetitions to reach: one of {', '.join(map(str, PRESET_TARGETS))} or any custom number")
    parser.add_argument("--history", action="store_true", help="Show completed sessions and exit")
    parser.add_argument("--history-file", default=Config.CHANT_HISTORY_PATH)
    args = parser.parse_args()

    history = AchievementHistory(args.history_file)
    if args.history:
        show_history(history)
        return

    try:
        session = ChantSession(target=args.target, history=history, tone=bell)
    except BhakthasError as exc:
        sys.exit(exc.message)
    run_session(session)


if __name__ == "__main__":
    main()
