import argparse
from typing import Optional, Sequence

from recall.app import AppSettings, migrate, run_study, show_stats, unbury

__all__ = ["main", "build_parser"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="recall", description="Spaced-repetition flashcard study tool.")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("migrate", help="Apply database migrations.")

    study = commands.add_parser("study", help="Study the due and new cards of a deck.")
    study.add_argument("deck_id", type=int)

    commands.add_parser("stats", help="Show study statistics.")

    unbury_parser = commands.add_parser("unbury", help="Return buried cards to the study queues.")
    unbury_parser.add_argument(
        "--keep-today",
        action="store_true",
        help="Only unbury cards buried before today.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the application."""
    args = build_parser().parse_args(argv)
    settings = AppSettings.from_env()

    if args.command == "migrate":
        migrate(settings)
        return 0
    if args.command == "study":
        return run_study(settings, args.deck_id)
    if args.command == "stats":
        show_stats(settings)
        return 0
    unbury(settings, keep_today=args.keep_today)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
