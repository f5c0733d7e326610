"""Database module."""

from db.session import close_db, get_db, init_db, storage_errors

__all__ = ["get_db", "init_db", "close_db", "storage_errors"]
