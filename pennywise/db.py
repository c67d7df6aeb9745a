import logging
import os

from alembic.config import Config
from sqlalchemy import Connection, create_engine, event
from sqlalchemy.engine import Engine

from alembic import command
from pennywise.settings import settings

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_connection: Connection | None = None


def _enforce_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores REFERENCES unless asked; ledger rows must point at real
    # accounts, categories and bills.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_engine(
            settings.db_url,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        if _engine.dialect.name == "sqlite":
            event.listen(_engine, "connect", _enforce_sqlite_foreign_keys)
        logger.info("Database engine created dialect=%s", _engine.dialect.name)
    return _engine


def get_connection() -> Connection:
    """Return the connection shared by every unit of work in the CLI and scripts."""
    global _connection
    if _connection is None:
        _connection = get_engine().connect()
        logger.debug("Singleton DB connection created")
    return _connection


def close_connection() -> None:
    """Close the shared connection, rolling back anything left uncommitted."""
    global _connection
    if _connection is None:
        return
    if _connection.in_transaction():
        logger.warning("Closing connection with an open transaction; rolling back")
        _connection.rollback()
    _connection.close()
    _connection = None
    logger.debug("Singleton DB connection closed")


def _get_alembic_config() -> Config:
    """Alembic config for the ledger and bills schema, wherever pennywise runs from."""
    project_root = os.path.dirname(os.path.dirname(__file__))
    ini_path = os.path.join(project_root, "alembic.ini")
    if not os.path.exists(ini_path):
        ini_path = os.path.join(os.getcwd(), "alembic.ini")
    cfg = Config(ini_path)
    cfg.set_main_option("script_location", os.path.join(project_root, "alembic"))
    return cfg


def initialize_db() -> None:
    """Bring the accounts, categories, bills and ledger tables up to head."""
    logger.info("Running Alembic migrations")
    command.upgrade(_get_alembic_config(), "head")
    logger.info("Migrations complete")
