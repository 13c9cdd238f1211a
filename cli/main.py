#!/usr/bin/env python3
"""CLI for importing floorball shot exports.

Usage:
    python -m cli.main import exports/TeamA_TeamB.csv --date 2024-01-01
    python -m cli.main import shots.csv --game-name "Team A - Team B" --yes
    python -m cli.main save
    python -m cli.main status
    python -m cli.main games
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from floorball_shots.config import load_config
from floorball_shots.database import Database
from floorball_shots.errors import DurabilityError, ShotImportError
from floorball_shots.ingest import game_name_from_filename, read_csv_file
from floorball_shots.models import Game
from floorball_shots.service import ImportCoordinator, ImportResult, build_saver
from floorball_shots.structured_log import StructuredLogSink


def configure_logging(level: str = "WARNING", logging_config: dict[str, Any] | None = None) -> None:
    """Configure logging for CLI usage."""
    logger.remove()
    logger.add(sys.stderr, level=level, format="<level>{level}</level>: {message}")

    logging_config = logging_config or {}
    endpoint_url = logging_config.get("endpoint_url")
    jsonl_path = logging_config.get("jsonl_path")
    if endpoint_url or jsonl_path:
        logger.add(
            StructuredLogSink(endpoint_url=endpoint_url, jsonl_path=jsonl_path),
            level="INFO",
        )


def confirm(prompt: str) -> bool:
    """Ask a yes/no question; anything but 'y' is no."""
    try:
        answer = input(f"{prompt} [y/N]: ")
    except EOFError:
        return False
    return answer.strip().lower() == "y"


def open_database(config: dict[str, Any]) -> Database:
    """Load the database from its snapshot file."""
    return Database.from_snapshot_file(Path(config["database"]["snapshot_path"]))


def close_saver(saver: Any) -> None:
    close = getattr(saver, "close", None)
    if close is not None:
        close()


def print_result(result: ImportResult) -> None:
    """Print a finished import."""
    print()
    print("=" * 60)
    print("Import finished")
    print("=" * 60)
    print(f"  Game ID: {result.game_id if result.game_id is not None else '-'}"
          f" ({'new' if result.is_new_game else 'existing'} game)")
    print(f"  Inserted: {result.inserted_count}")
    if result.duplicate_count:
        print(f"  Duplicates skipped: {result.duplicate_count}")
    if result.skipped_count:
        print(f"  Rejected: {result.skipped_count}")
        for error in result.errors[:5]:
            print(f"    - {error}")
    if result.summary:
        s = result.summary
        print(
            f"  Results: {s.goals} goals, {s.saves} saved, {s.blocked} blocked, "
            f"{s.missed} missed, {s.turnovers} turnovers"
        )
    print(f"  Saved: {'yes' if result.saved else 'no'}")


def cmd_import(args: argparse.Namespace, config: dict[str, Any]) -> int:
    """Import a CSV export into a game."""
    csv_path = Path(args.csv)
    if not csv_path.exists():
        print(f"ERROR: File not found: {csv_path}")
        return 1

    game_name = args.game_name or game_name_from_filename(csv_path)
    if not game_name:
        print("ERROR: Could not derive a game name from the filename. Use --game-name.")
        return 1

    db = open_database(config)
    saver = build_saver(config)
    coordinator = ImportCoordinator(
        db, saver, atomic_batches=config["import"]["atomic_batches"]
    )

    try:
        shots = coordinator.parse(read_csv_file(csv_path))
        game_date = args.date or shots[0].date
        plan = coordinator.check(game_name, game_date)

        print(f"Game: {game_name} ({game_date})")
        print(f"  Shots in file: {plan.total}")
        print(f"  New: {plan.unique_count}  Duplicates: {plan.duplicate_count}")

        try:
            result = coordinator.commit(force=args.force)
            if result.conflict is not None:
                print(f"\nWARNING: {result.conflict.message}.")
                print(f"Only the {plan.unique_count} new shots will be imported.")
                if not (args.yes or confirm("Continue?")):
                    print("Cancelled.")
                    return 0
                result = coordinator.force_import()
        except DurabilityError as e:
            print(f"\nERROR: {e}")
            while True:
                if not confirm("Retry saving?"):
                    print("Import is applied in memory only and was not saved.")
                    return 1
                try:
                    result = coordinator.retry_save()
                    break
                except DurabilityError as retry_error:
                    print(f"ERROR: {retry_error}")

        print_result(result)
        return 0

    except ShotImportError as e:
        print(f"ERROR: {e}")
        return 1
    finally:
        close_saver(saver)
        db.close()


def cmd_save(args: argparse.Namespace, config: dict[str, Any]) -> int:
    """Save the current database snapshot again."""
    db = open_database(config)
    saver = build_saver(config)
    try:
        outcome = saver.save(db.export_snapshot())
    finally:
        close_saver(saver)
        db.close()

    if not outcome.success:
        print(f"ERROR: Save failed: {outcome.error}")
        return 1
    print("Database saved.")
    return 0


def cmd_status(args: argparse.Namespace, config: dict[str, Any]) -> int:
    """Show database summary."""
    db = open_database(config)
    try:
        stats = db.get_database_stats()
    finally:
        db.close()

    print("=" * 60)
    print("Database Status")
    print("=" * 60)
    print()
    print(f"  Snapshot: {config['database']['snapshot_path']}")
    print(f"  Games: {stats['total_games']}")
    print(f"  Shots: {stats['total_shots']:,}")
    print(f"  Goals: {stats['total_goals']:,}")
    if stats["first_game_date"]:
        print(f"  Dates: {stats['first_game_date']} to {stats['last_game_date']}")
    return 0


def cmd_games(args: argparse.Namespace, config: dict[str, Any]) -> int:
    """List stored games."""
    db = open_database(config)
    try:
        games = [Game.from_row(row) for row in db.list_games()]
    finally:
        db.close()

    if not games:
        print("No games stored.")
        return 0

    print(f"{'ID':>4}  {'Date':<12} {'Shots':>5}  Name")
    print("-" * 60)
    for game in games:
        print(f"{game.game_id:>4}  {game.date:<12} {game.shot_count:>5}  {game.name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Floorball Shot Import Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m cli.main import TeamA_TeamB.csv --date 2024-01-01   # Import an export
  python -m cli.main import shots.csv --game-name "A - B" --yes # Skip confirmation
  python -m cli.main save                                       # Re-save the database
  python -m cli.main status                                     # Show database summary
  python -m cli.main games                                      # List stored games
        """,
    )
    parser.add_argument("--config", default=None, help="Path to import config YAML")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    import_parser = subparsers.add_parser("import", help="Import a shot CSV")
    import_parser.add_argument("csv", help="CSV export file")
    import_parser.add_argument(
        "--game-name", default=None, help="Game name (default: derived from filename)"
    )
    import_parser.add_argument(
        "--date", default=None, help="Game date (default: Date column of the first row)"
    )
    import_parser.add_argument(
        "--force", action="store_true", help="Import new shots without asking about duplicates"
    )
    import_parser.add_argument(
        "--yes", action="store_true", help="Answer yes to the duplicate confirmation"
    )

    subparsers.add_parser("save", help="Save the current database snapshot")
    subparsers.add_parser("status", help="Show database summary")
    subparsers.add_parser("games", help="List stored games")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        return 1

    level = "DEBUG" if args.verbose else config["logging"]["level"]
    configure_logging(level, config["logging"])

    commands = {
        "import": cmd_import,
        "save": cmd_save,
        "status": cmd_status,
        "games": cmd_games,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 0

    try:
        return command(args, config)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
