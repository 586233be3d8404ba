"""Create tables and seed the violation type catalog.

Usage:
    python scripts/seed_violation_types.py [--overwrite]

--overwrite resets label, fine, icon and description of existing rows to the
standard values. Reports already submitted keep the fine and reward they were
created with.
"""
import argparse
import asyncio
import sys

from spotted.core import database
from spotted.services.catalog import seed_violation_types


async def main(overwrite: bool) -> int:
    await database.init_db()
    async with database.AsyncSessionLocal() as db:
        changed = await seed_violation_types(db, overwrite=overwrite)
    await database.engine.dispose()
    return changed


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--overwrite", action="store_true", help="reset existing catalog rows")
    args = parser.parse_args()

    try:
        changed = asyncio.run(main(args.overwrite))
    except Exception as e:
        print(f"Error occurred: {e}")
        print(f"Error type: {type(e).__name__}")
        sys.exit(1)

    print(f"Violation types seeded: {changed} row(s) changed")
