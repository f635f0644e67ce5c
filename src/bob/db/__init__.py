"""Database layer."""

from __future__ import annotations

from bob.db.connection import DatabaseConnection, get_db, set_db

__all__ = ["DatabaseConnection", "get_db", "set_db"]
