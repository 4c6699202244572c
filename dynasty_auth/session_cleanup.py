"""
CLI entrypoint for the expired-session cleanup job. Run from cron, e.g.:

  python -m dynasty_auth.session_cleanup

Or hourly: 0 * * * * cd /path/to/dynasty-auth && .venv/bin/python -m dynasty_auth.session_cleanup
"""

import logging
import sys

from dynasty_auth.core.config import get_settings
from dynasty_auth.core.database import SessionLocal
from dynasty_auth.services.sessions import run_session_cleanup

logger = logging.getLogger(__name__)


def main() -> int:
    """Delete sessions whose stored expiry has passed."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    db = SessionLocal()
    try:
        sessions_deleted = run_session_cleanup(db, settings)
        logger.info("Session cleanup completed: sessions_deleted=%s", sessions_deleted)
        return 0
    except Exception as e:
        logger.exception("Session cleanup job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
