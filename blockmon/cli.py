"""Replay saved webhook payloads through the pipeline without Telegram.

Usage:
    python -m blockmon.cli replay payload.json
    python -m blockmon.cli replay pending.json confirmed.json
    python -m blockmon.cli replay --database-url sqlite+aiosqlite:///./.tmp/state.db payload.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from blockmon.names import NameDirectory, NameResolver
from blockmon.pipeline import IngestReport, NotificationPipeline
from blockmon.store.db import Database
from blockmon.utils.logging import configure_logging


class ConsoleTransport:
    """Transport that prints messages instead of posting them."""

    def __init__(self, stream: TextIO = sys.stdout) -> None:
        self.stream = stream
        self._next_id = 0

    async def send(self, text: str) -> int:
        self._next_id += 1
        self.stream.write(f"--- send #{self._next_id}\n{text}\n")
        return self._next_id

    async def edit(self, message_id: int, text: str) -> None:
        self.stream.write(f"--- edit #{message_id}\n{text}\n")


class _NoNames:
    async def get(self, address: str) -> Optional[str]:
        return None


async def replay(
    paths: List[Path],
    database_url: Optional[str] = None,
    stream: TextIO = sys.stdout,
) -> IngestReport:
    """Feed each payload file, in order, through one pipeline instance."""
    db: Optional[Database] = None
    directory = _NoNames()
    if database_url:
        db = Database(database_url)
        db.connect()
        await db.init_models()
        directory = NameDirectory(db)

    pipeline = NotificationPipeline(ConsoleTransport(stream), NameResolver(directory))
    total = IngestReport()
    try:
        for path in paths:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
            report = await pipeline.ingest(payload)
            total.sent += report.sent
            total.edited += report.edited
            total.rejected += report.rejected
            total.failed += report.failed
    finally:
        if db:
            await db.dispose()
    return total


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blockmon",
        description="Offline tools for the blockmon notification pipeline.",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    replay_parser = sub.add_parser("replay", help="Render webhook payload files")
    replay_parser.add_argument("paths", nargs="+", type=Path)
    replay_parser.add_argument("--database-url", default=None)
    replay_parser.add_argument("--log-level", default="WARNING")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    report = asyncio.run(replay(args.paths, args.database_url))
    print(
        f"sent={report.sent} edited={report.edited} "
        f"rejected={report.rejected} failed={report.failed}"
    )
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
