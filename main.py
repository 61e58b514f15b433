#!/usr/bin/env python3
"""
Manifootball

Usage:
    python main.py [--verbose] live --game GAME [--topic TOPIC]
    python main.py [--verbose] scoreboard --week N [options]
    python main.py [--verbose] autocreate --week N --poll {ap,cfp} [--game GAME]
    python main.py [--verbose] comment --week N [--game GAME]

Commands:
    live            Follow one event on the live feed, dumping snapshots to live-data/
    scoreboard      Print the scoreboard with matching market probabilities
    autocreate      Match games to markets, create missing ones and keep them in sync
    comment         Post line movement and head-to-head comments on matched markets
"""

import argparse
import asyncio
import logging
import sys

from manifootball.commands import AutocreateCommand, CommentCommand, LiveCommand, ScoreboardCommand
from manifootball.commands.scoreboard import CLASSIFICATIONS, STATUSES
from manifootball.config import Topic, load_config


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


async def run_command(args: argparse.Namespace) -> None:
    """Dispatch to the selected subcommand."""
    logger = logging.getLogger(__name__)
    config = load_config()
    logger.debug(f"run command {args.command}")

    if args.command == "live":
        await LiveCommand(config).run(args.game, args.topic)
    elif args.command == "scoreboard":
        await ScoreboardCommand(config).run(
            week=args.week,
            classification=args.classification,
            conference=args.conference,
            statuses=args.status,
            since=args.since,
            unresolved=args.unresolved,
        )
    elif args.command == "autocreate":
        await AutocreateCommand(config).run(week=args.week, poll=args.poll, game_id=args.game)
    elif args.command == "comment":
        await CommentCommand(config).run(week=args.week, game_id=args.game)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mf",
        description="Manifootball",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    live = subparsers.add_parser("live", help="Record live snapshots for one event")
    live.add_argument("--game", required=True, help="Event id, e.g. 401520000")
    live.add_argument(
        "--topic",
        default=Topic.COLLEGE_FOOTBALL,
        choices=Topic.ALL,
        help="Sport/league of the event",
    )

    scoreboard = subparsers.add_parser("scoreboard", help="Show the scoreboard with market odds")
    scoreboard.add_argument("--week", type=int, required=True, help="Season week")
    scoreboard.add_argument("--classification", default="fbs", choices=CLASSIFICATIONS)
    scoreboard.add_argument("--conference", help="Conference abbreviation, e.g. sec")
    scoreboard.add_argument("--status", nargs="+", choices=STATUSES, help="Only show these statuses")
    scoreboard.add_argument(
        "--since",
        default="any",
        help="any, yesterday, today, tomorrow or <N>h",
    )
    scoreboard.add_argument(
        "--unresolved",
        action="store_true",
        help="Hide games whose market is resolved",
    )

    autocreate = subparsers.add_parser("autocreate", help="Create and sync markets for a week of games")
    autocreate.add_argument("--week", type=int, required=True, help="Season week")
    autocreate.add_argument("--poll", required=True, choices=["ap", "cfp"], help="Poll used for team ranks")
    autocreate.add_argument("--game", help="Only this game id")

    comment = subparsers.add_parser("comment", help="Comment on the markets of upcoming games")
    comment.add_argument("--week", type=int, required=True, help="Season week")
    comment.add_argument("--game", help="Only this game id")

    return parser


def main() -> None:
    """CLI entry point."""
    args = build_parser().parse_args()
    # live always logs every frame
    setup_logging(args.verbose or args.command == "live")

    try:
        asyncio.run(run_command(args))
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Interrupted by user")
    except Exception as e:
        logging.getLogger(__name__).exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
