import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .models import Base

logger = logging.getLogger(__name__)


# database setup
def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def check_connection(engine: Engine) -> None:
    """Fail fast when the store is unreachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception(f"Could not connect to the database at {engine.url!r}")
        raise
    logger.info("Database connection established")


def sync_schema(engine: Engine) -> None:
    """Create any missing tables from the model definitions."""
    try:
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("Database schema sync failed")
        raise
    logger.info("Database schema synchronized")
