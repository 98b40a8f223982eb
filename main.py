"""Command-line entry point: record a mood and print a user's insights."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from mindtrack.constants import DATABASE_PATH, SNAPSHOT_REPORT_TEMPLATE
from mindtrack.errors import FetchFailed, InvalidEntry, WriteFailed
from mindtrack.service import TrackerSession


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show mood insights for a user.")
    parser.add_argument("user_id")
    parser.add_argument("--db", type=Path, default=DATABASE_PATH)
    parser.add_argument("--add-mood", metavar="LABEL")
    parser.add_argument("--energy", type=int, default=5)
    parser.add_argument("--notes")
    parser.add_argument("--export", type=Path, metavar="CSV_PATH")
    return parser


async def run(args: argparse.Namespace) -> str:
    session = TrackerSession.open(args.db)
    if args.add_mood:
        await session.entries.record_mood(
            args.user_id, args.add_mood, args.energy, notes=args.notes
        )
    if args.export:
        await session.export_csv(args.user_id, args.export)
    snapshot = await session.insights.get_insights(args.user_id)
    return SNAPSHOT_REPORT_TEMPLATE.render(user_id=args.user_id, snapshot=snapshot)


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run one session and print the report."""
    args = build_parser().parse_args(argv)
    try:
        report = asyncio.run(run(args))
    except (FetchFailed, WriteFailed, InvalidEntry) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(report, end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
