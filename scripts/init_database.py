#!/usr/bin/env python3
"""
Create (or recreate) the Library Ledger database.

Creates the schema, optionally loads the sample library, then refuses to
finish if a table is missing or any book's available copies disagree with its
open loans.

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data]
        [--extra-members N] [--seed N] [--database-url URL]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from library_ledger.config import get_config
from library_ledger.database.schema import Base
from library_ledger.database.seed import seed_database
from library_ledger.database.session import DatabaseManager
from library_ledger.ledger import LendingLedger

logger = logging.getLogger("init_database")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--drop-existing", action="store_true", help="drop every table first")
    parser.add_argument("--sample-data", action="store_true", help="load the sample library")
    parser.add_argument(
        "--extra-members",
        type=int,
        default=20,
        metavar="N",
        help="Faker-generated members on top of the named ones (default: 20)",
    )
    parser.add_argument("--seed", type=int, default=42, help="random seed for sample data")
    parser.add_argument("--database-url", help="SQLite URL; defaults to the configured path")
    return parser


def initialize(db_manager: DatabaseManager, args: argparse.Namespace) -> int:
    """Run every step against ``db_manager``; returns the process exit code."""
    if not db_manager.verify_connection():
        return 1

    db_manager.init_database(drop_existing=args.drop_existing)

    missing = set(Base.metadata.tables) - set(inspect(db_manager.engine).get_table_names())
    if missing:
        logger.error("Tables not created: %s", ", ".join(sorted(missing)))
        return 1

    if args.sample_data:
        summary = seed_database(db_manager, extra_members=args.extra_members, seed=args.seed)
        logger.info(
            "Loaded %(books)d books, %(members)d members and %(transactions)d loans "
            "(%(active_loans)d still out)",
            summary,
        )

    drifts = LendingLedger(db_manager).check_integrity()
    for drift in drifts:
        logger.error(
            "Book %s '%s': %d available recorded, %d expected",
            drift.book_id,
            drift.title,
            drift.stored_available,
            drift.expected_available,
        )
    return 1 if drifts else 0


def main() -> None:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    args = build_parser().parse_args()
    database_url = args.database_url or get_config().get_database_url()
    logger.info("Initializing %s", database_url)

    db_manager = DatabaseManager(database_url)
    try:
        status = initialize(db_manager, args)
    except Exception:
        logger.exception("Database initialization failed")
        status = 1
    finally:
        db_manager.close()

    if status == 0:
        logger.info("Database ready")
    sys.exit(status)


if __name__ == "__main__":
    main()
