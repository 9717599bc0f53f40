"""Seed script for loading the default billing program catalog.

Usage:
    python -m app.scripts.seed_program_catalog [--update]

Inserts the CMS 2025 RPM/RTM/CCM definitions into ``billing_programs``.
Programs already present (matched on ``billing_program_code``) are left
alone so administrator edits survive re-seeding, unless ``--update`` is
given.
"""

import argparse
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.database import async_session_maker, engine
from app.models import BillingProgram
from app.schemas.billing import BillingProgramDefinition
from app.services.program_catalog import default_catalog

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def upsert_programs(
    session: Session,
    programs: list[BillingProgramDefinition],
    update_existing: bool = False,
) -> dict[str, int]:
    """Insert missing programs, optionally overwriting existing ones.

    Returns:
        Counts of inserted, updated and skipped programs.
    """
    counts = {"inserted": 0, "updated": 0, "skipped": 0}
    existing = {
        row.billing_program_code: row
        for row in session.execute(select(BillingProgram)).scalars().all()
    }

    for program in programs:
        row = existing.get(program.billing_program_code)
        if row is None:
            session.add(BillingProgram(**program.model_dump()))
            counts["inserted"] += 1
        elif update_existing:
            for field, value in program.model_dump().items():
                setattr(row, field, value)
            counts["updated"] += 1
        else:
            counts["skipped"] += 1

    session.flush()
    return counts


async def seed_program_catalog(update_existing: bool = False) -> dict[str, int]:
    """Main function to seed the program catalog.

    Args:
        update_existing: Overwrite programs that already exist.
    """
    logger.info("Starting program catalog seed...")

    async with async_session_maker() as session:
        counts = await session.run_sync(upsert_programs, default_catalog(), update_existing)
        await session.commit()

    logger.info(
        f"Program catalog seed completed: {counts['inserted']} inserted, "
        f"{counts['updated']} updated, {counts['skipped']} skipped"
    )
    return counts


async def main() -> None:
    """Entry point for running seed script."""
    parser = argparse.ArgumentParser(description="Seed the default billing program catalog")
    parser.add_argument("--update", action="store_true", help="overwrite existing program definitions")
    args = parser.parse_args()
    try:
        await seed_program_catalog(update_existing=args.update)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
