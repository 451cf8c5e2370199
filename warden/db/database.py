"""
Engine and session helpers for the rule type tables.

Nothing connects at import time; callers build an engine for the configured
DATABASE_URL (or an explicit URL) when they need one.
"""

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from warden.config import get_database_url
from warden.db.models import Base

logger = logging.getLogger(__name__)


def create_db_engine(url: Optional[str] = None) -> Engine:
    """Create an engine, defaulting to DATABASE_URL."""
    url = url or get_database_url()
    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        echo=os.getenv("DB_ECHO", "false").lower() == "true",  # Set DB_ECHO=true for SQL logging
    )


def init_db(bind: Engine) -> None:
    """Create the rule type tables if they do not exist."""
    Base.metadata.create_all(bind=bind)
    logger.info(f"Rule type tables ready at {bind.url}")


@contextmanager
def session_scope(bind: Engine) -> Iterator[Session]:
    """Session that commits on success and rolls back on error."""
    session = sessionmaker(bind=bind, autoflush=False)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
