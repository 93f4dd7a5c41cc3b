"""
Database integration for cipherstore.

This module provides the persistence contract consumed by the secure
store, with a SQLite implementation.
"""

from .backend import PersistenceBackend, Transaction, quote_identifier, table_name_for
from .sqlite import SQLiteBackend

__all__ = [
    "PersistenceBackend",
    "SQLiteBackend",
    "Transaction",
    "quote_identifier",
    "table_name_for",
]
