"""Service for cleanup operations."""
import logging
import threading
import time
from datetime import timedelta

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from drivetest.config import ABANDONED_RETENTION_DAYS, CLEANUP_INTERVAL_SECONDS
from drivetest.database import SessionLocal, session_scope
from drivetest.models.db.test_result import TestResult, TestStatus
from drivetest.services.auth_service import cleanup_expired_sessions
from drivetest.utils import utc_now

logger = logging.getLogger(__name__)


def cleanup_abandoned_tests(db=None) -> int:
    """Remove abandoned tests older than the retention period."""
    if ABANDONED_RETENTION_DAYS <= 0:
        return 0

    cutoff = utc_now() - timedelta(days=ABANDONED_RETENTION_DAYS)
    owns_session = db is None
    if owns_session:
        db = SessionLocal()
    try:
        result = db.execute(
            delete(TestResult).where(
                TestResult.status == TestStatus.ABANDONED.value,
                TestResult.started_at < cutoff,
            ).execution_options(synchronize_session=False)
        )
        db.commit()
        deleted = result.rowcount
        if deleted > 0:
            logger.info("Cleaned up %s abandoned tests", deleted)
        return deleted
    finally:
        if owns_session:
            db.close()


def run_cleanup() -> None:
    """One maintenance pass. Failures are logged and do not stop the worker."""
    try:
        cleanup_abandoned_tests()
    except SQLAlchemyError as exc:
        logger.error("Failed to cleanup abandoned tests: %s", exc)

    try:
        with session_scope() as db:
            removed = cleanup_expired_sessions(db)
        if removed:
            logger.info("Removed %s expired auth sessions", removed)
    except SQLAlchemyError as exc:
        logger.error("Failed to cleanup auth sessions: %s", exc)


def schedule_cleanup() -> threading.Thread:
    """Start the periodic cleanup worker."""

    def _worker() -> None:
        # Initial delay before first cleanup
        time.sleep(60)
        while True:
            run_cleanup()
            time.sleep(CLEANUP_INTERVAL_SECONDS)

    thread = threading.Thread(
        target=_worker,
        name="drivetest_cleanup",
        daemon=True,
    )
    thread.start()
    return thread
