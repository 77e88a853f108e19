# debtsentry/db.py
"""
Database Connection Management

Version: 1.0.0
Features:
- Singleton pattern with thread-safe double-checked locking
- Connection pooling with auto-reconnect
- Health check and connection context manager

Only needed when the ledger is served from a SQL table (SqlRowSource).
"""

import logging
import threading
from typing import Tuple, Optional
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from .config import config

logger = logging.getLogger(__name__)

# ==================== SINGLETON ENGINE ====================

_engine = None
_engine_lock = threading.Lock()


def get_db_engine():
    """
    Get SQLAlchemy database engine (singleton pattern)

    Thread-safe implementation using double-checked locking.

    Returns:
        SQLAlchemy Engine instance

    Raises:
        ValueError: if DATABASE_URL is not configured
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = _create_engine()

    return _engine


def _create_engine():
    """Create new database engine with configured settings"""
    db_config = config.get_db_config()
    url = db_config.get("url")
    if not url:
        logger.error("Missing DATABASE_URL")
        raise ValueError("Missing DATABASE_URL. Please check .env file.")

    pool_recycle = config.get_app_setting("DB_POOL_RECYCLE", 3600)

    engine = create_engine(
        url,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,  # Auto-reconnect on stale connections
        echo=False
    )

    logger.info(f"✅ Database engine created ({engine.url.render_as_string(hide_password=True)})")

    return engine


# ==================== CONNECTION MANAGEMENT ====================

def check_db_connection(engine=None) -> Tuple[bool, Optional[str]]:
    """
    Check if database connection is healthy

    Returns:
        Tuple of (is_connected: bool, error_message: str or None)
    """
    try:
        engine = engine or get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except OperationalError as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False, "Cannot connect to database. Please check your network/VPN connection."
    except (SQLAlchemyError, ValueError) as e:
        logger.error(f"❌ Database error: {e}")
        return False, f"Database error: {str(e)}"


# ==================== CONTEXT MANAGERS ====================

@contextmanager
def get_connection(engine=None):
    """
    Context manager for read-only database connections

    Usage:
        with get_connection() as conn:
            result = conn.execute(text("SELECT * FROM table"))
    """
    engine = engine or get_db_engine()
    conn = engine.connect()
    try:
        yield conn
    finally:
        conn.close()


__all__ = [
    'get_db_engine',
    'check_db_connection',
    'get_connection',
]
