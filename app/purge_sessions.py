"""
CLI entrypoint for purging expired refresh-token sessions. Run from cron, e.g.:

  python -m app.purge_sessions

Or hourly: 0 * * * * cd /path/to/medmap-auth && .venv/bin/python -m app.purge_sessions
"""

import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.core.database import session_scope
from app.repositories import SqlAlchemySessionRepository
from app.services.sessions import SessionManager

logger = logging.getLogger(__name__)


def main() -> int:
    """Delete sessions whose expires_at has passed. Exit code 1 on database errors."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    try:
        with session_scope() as db:
            manager = SessionManager(SqlAlchemySessionRepository(db), get_settings())
            deleted = manager.purge_expired()
    except SQLAlchemyError as e:
        logger.error("Session purge failed: %s", e)
        return 1
    logger.info("Session purge completed: sessions_deleted=%s", deleted)
    return 0


if __name__ == "__main__":
    sys.exit(main())
