"""Link unlinked daily records to their weekly aggregates and rescore touched weeks.

Usage:
    python -m habitscore.scripts.backfill_weeks [--dry-run]
"""

import argparse
import asyncio
import json
import sys

import structlog

from habitscore.config import settings
from habitscore.db.database import async_session_factory, engine, transaction
from habitscore.domains.weekly.daily_records import DailyRecordService
from habitscore.domains.weekly.models import BackfillReport
from habitscore.shared.logging import setup_logging

logger = structlog.get_logger()


async def run_backfill(dry_run: bool) -> BackfillReport:
    service = DailyRecordService()
    try:
        async with async_session_factory() as session:
            async with transaction(session):
                return await service.backfill_links(session, dry_run=dry_run)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Backfill weekly aggregate links for daily records")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only count unlinked records; write nothing",
    )
    args = parser.parse_args(argv)

    setup_logging(settings.log_level, json_output=False)
    report = asyncio.run(run_backfill(args.dry_run))
    print(json.dumps(report.model_dump(), indent=2))

    if report.skipped_owners:
        print(
            f"Skipped {len(report.skipped_owners)} owner(s) without a scoring scheme",
            file=sys.stderr,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
