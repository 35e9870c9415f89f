"""
Database module for SQLAlchemy models and session management.
"""

from grantflow.db.base import Base
from grantflow.db.session import close_db, get_engine, get_session_factory

__all__ = ["Base", "close_db", "get_engine", "get_session_factory"]
