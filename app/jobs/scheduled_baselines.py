"""
Scheduled baseline updates — the periodic trigger for the batch run.

Usage:
    baseline-scheduled                    # recompute every due user
    baseline-scheduled --user-id <id>     # force one user
    baseline-scheduled --workers 1        # strictly sequential

Exit code 1 when the run could not select users at all; per-user failures
are logged and do not change the exit code.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from app.core.config import settings
from app.core.errors import BaselineSelectionError
from app.core.logging import configure_logging
from app.db.base import SessionLocal
from app.services.scheduler import run_recalculation

log = logging.getLogger("scheduled_baselines")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Recompute due personal baselines")
    parser.add_argument("--user-id", default=None,
                        help="Recompute this user unconditionally")
    parser.add_argument("--workers", type=int, default=settings.BASELINE_MAX_WORKERS,
                        help=f"Worker pool size (default: {settings.BASELINE_MAX_WORKERS})")
    parser.add_argument("--include-cold-start", action="store_true",
                        help="Also pick users that have samples but no baseline yet")
    args = parser.parse_args(argv)

    configure_logging(settings.LOG_LEVEL)
    log.info("Starting scheduled baseline updates...")

    try:
        run = run_recalculation(
            SessionLocal,
            user_id=args.user_id,
            max_workers=args.workers,
            include_cold_start=True if args.include_cold_start else None,
        )
    except BaselineSelectionError as exc:
        log.error("Error in scheduled baseline updates: %s", exc.message)
        return 1

    log.info("Scheduled baseline updates completed: %s", run.message)
    if run.failed_users:
        log.warning("Failed users: %s", ", ".join(run.failed_users))
    return 0


if __name__ == "__main__":
    sys.exit(main())
