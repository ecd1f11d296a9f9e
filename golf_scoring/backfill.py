"""
Finalize results of every competition whose scoring window is over.

    python -m golf_scoring.backfill
    python -m golf_scoring.backfill --competition 12 --force
"""
import argparse
import sys

import structlog

from .config import LOG_JSON, LOG_LEVEL
from .db import init_db, session_scope
from .logging_config import configure_logging
from .results import finalize_competition_results, finalize_due_competitions

logger = structlog.get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Finalize competition results")
    parser.add_argument("--competition", type=int, help="only this competition id")
    parser.add_argument("--force", action="store_true", help="rewrite an existing snapshot")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(LOG_LEVEL, LOG_JSON)
    init_db()
    logger.info("backfill_started", competition_id=args.competition, force=args.force)

    with session_scope() as db:
        if args.competition is not None:
            finalized = finalize_competition_results(db, args.competition, force=args.force)
            print(f"Competition {args.competition}: {'finalized' if finalized else 'already final'}")
            return 0

        summary = finalize_due_competitions(db)

    print(f"Processed: {summary.processed}")
    print(f"Skipped: {summary.skipped}")
    print(f"Errors: {summary.errors}")
    print(f"Total: {summary.total}")
    return 1 if summary.errors else 0


if __name__ == "__main__":
    sys.exit(main())
