"""Engine and session factory."""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from changegate.core.config import get_settings
from changegate.db.base import Base

logger = logging.getLogger(__name__)


def make_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine, relaxing SQLite's same-thread check."""
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(database_url, **kwargs)


settings = get_settings()

engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet."""
    # Import models so they register on the metadata
    import changegate.db.models  # noqa: F401

    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Database schema ready on {target.url}")
