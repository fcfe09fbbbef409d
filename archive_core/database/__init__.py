"""
Database layer: ORM models, session management and the data-access manager.
"""

from .manager import DatabaseManager
from .session import get_session, get_engine, init_db

__all__ = [
    'DatabaseManager',
    'get_session',
    'get_engine',
    'init_db',
]
