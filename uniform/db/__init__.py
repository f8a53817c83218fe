"""
Database module - relational store connection and schema.
"""
from uniform.db.database import get_db_session, init_db, test_database_connection

__all__ = [
    "get_db_session",
    "init_db",
    "test_database_connection"
]
