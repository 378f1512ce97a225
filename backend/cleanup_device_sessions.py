"""
Scheduled cleanup of expired and surplus device sessions.

Run from cron, e.g. once a day:
    python cleanup_device_sessions.py           # honours the 24h interval
    python cleanup_device_sessions.py --force   # run regardless
"""
import logging
import os
import sys

# Add the backend directory to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from planner.db.session import SessionLocal
from planner.services.cleanup_service import cleanup_device_sessions, last_cleanup_time
from planner.services.session_policy import should_run_cleanup

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger(__name__)


def main(force: bool = False) -> int:
    db = SessionLocal()
    try:
        if not force and not should_run_cleanup(last_cleanup_time(db)):
            logger.info("Cleanup ran less than 24 hours ago, skipping")
            return 0

        stats = cleanup_device_sessions(db)
        logger.info(
            "Removed %d expired, %d idle, %d inactive, %d over limit session(s) and %d orphaned device(s)",
            stats.expired_sessions, stats.idle_sessions, stats.inactive_sessions,
            stats.limit_enforced, stats.orphaned_devices
        )
        if stats.errors:
            for error in stats.errors:
                logger.error("Cleanup error: %s", error)
            return 1
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main(force="--force" in sys.argv[1:]))
