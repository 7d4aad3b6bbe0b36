"""Persistence layer for focus-todo."""

from .database import DatabaseManager, get_db, reset_db

__all__ = ["DatabaseManager", "get_db", "reset_db"]
