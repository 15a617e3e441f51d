"""
Database package for the cool cell scheduler.

This package provides modular database operations:
- connection: Connection management (get_db, close_db, init_db) and
  transaction helpers (immediate_transaction, snapshot_transaction)
- schema: Table, trigger and index creation
- seed: Demo seed data
"""

from database.connection import (
    get_db, close_db, init_db, immediate_transaction, snapshot_transaction
)
from database.schema import drop_tables, create_tables, create_indexes
from database.seed import seed_database

__all__ = [
    # Connection
    'get_db',
    'close_db',
    'init_db',
    'immediate_transaction',
    'snapshot_transaction',
    # Schema
    'drop_tables',
    'create_tables',
    'create_indexes',
    # Seed
    'seed_database',
]
