"""
Database connection management.
Handles per-request connections, write serialization, and teardown.
"""

import logging
import sqlite3
import os
from contextlib import contextmanager
from datetime import date, datetime
from flask import g, current_app

logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ADAPTERS
# =============================================================================
# Timestamps are stored as 'YYYY-MM-DD HH:MM:SS' so that string comparison in
# SQL matches chronological order.

def _adapt_datetime(value: datetime) -> str:
    return value.replace(microsecond=0).isoformat(' ')


def _adapt_date(value: date) -> str:
    return value.isoformat()


def _convert_timestamp(value: bytes) -> datetime:
    return datetime.fromisoformat(value.decode())


def _convert_date(value: bytes) -> date:
    return date.fromisoformat(value.decode()[:10])


sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_adapter(date, _adapt_date)
sqlite3.register_converter('TIMESTAMP', _convert_timestamp)
sqlite3.register_converter('DATE', _convert_date)


# =============================================================================
# CONNECTION
# =============================================================================

def get_db():
    """
    Get the database connection for the current app context.

    Returns:
        sqlite3.Connection: Database connection object
    """
    if 'db' not in g:
        db_path = current_app.config.get('DATABASE_PATH', 'instance/coolcell.db')
        if db_path != ':memory:':
            directory = os.path.dirname(db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        g.db = sqlite3.connect(
            db_path,
            detect_types=sqlite3.PARSE_DECLTYPES,
            timeout=current_app.config.get('DATABASE_TIMEOUT', 5.0)
        )
        g.db.row_factory = sqlite3.Row
        # Enable foreign key constraints
        g.db.execute('PRAGMA foreign_keys = ON')
        # Enable WAL mode so readers never wait on the writer
        g.db.execute('PRAGMA journal_mode = WAL')
    return g.db


def close_db(e=None):
    """
    Close database connection.

    Args:
        e: Exception if any (from Flask teardown context)
    """
    db = g.pop('db', None)
    if db is not None:
        db.close()


@contextmanager
def immediate_transaction():
    """
    Run a block of statements while holding the database write lock.

    BEGIN IMMEDIATE takes SQLite's reserved lock up front, so every
    check-then-write sequence inside the block is serialized against all
    other writers. Commits on success, rolls back on any exception.

    Yields:
        sqlite3.Connection: Connection with the open transaction
    """
    db = get_db()
    if db.in_transaction:
        # Flush work left pending by an implicit transaction
        db.commit()
    db.execute('BEGIN IMMEDIATE')
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    db.commit()


@contextmanager
def snapshot_transaction():
    """
    Run several reads against one consistent snapshot of the database.

    Yields:
        sqlite3.Connection: Connection with the open read transaction
    """
    db = get_db()
    if db.in_transaction:
        db.commit()
    db.execute('BEGIN')
    try:
        yield db
    finally:
        db.rollback()


def init_db():
    """
    Initialize database: drop existing tables, create new schema, insert seed data.
    WARNING: This will delete all existing data!
    """
    from database.schema import drop_tables, create_tables, create_indexes
    from database.seed import seed_database

    db = get_db()

    drop_tables(db)
    create_tables(db)
    create_indexes(db)

    if current_app.config.get('SEED_DEMO_DATA', False):
        seed_database(db)

    db.commit()
    logger.info('Database initialized at %s', current_app.config.get('DATABASE_PATH'))
