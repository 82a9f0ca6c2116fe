"""
Conexión a base de datos PostgreSQL

Este módulo centraliza TODAS las formas de acceso a la base de datos:
- SQLAlchemy (definición del esquema, usado por scripts/setup/init_db.py)
- psycopg2 directo (para queries SQL raw en los repositorios)

Repositories import get_db_connection_dict into their own namespace so tests
can patch it per module.
"""
import time
import logging
from functools import lru_cache

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from .config import settings

logger = logging.getLogger(__name__)

# Seconds psycopg2 waits for the server before giving up
CONNECTION_TIMEOUT = 10


# ============================================================================
# SQLAlchemy Configuration (schema definition)
# ============================================================================

# Base para modelos
Base = declarative_base()


@lru_cache(maxsize=1)
def get_engine():
    """
    Build the SQLAlchemy engine on first use

    The engine is only needed by schema tooling, so importing this module
    never requires DATABASE_URL.
    """
    return create_engine(
        _require_database_url(),
        pool_pre_ping=True,  # Verificar conexión antes de usar
        pool_size=5,
        max_overflow=10,
    )


# ============================================================================
# psycopg2 Direct Connections (for raw SQL queries)
# ============================================================================

def _require_database_url() -> str:
    database_url = settings.DATABASE_URL
    if not database_url:
        raise psycopg2.OperationalError("DATABASE_URL not configured")
    return database_url


def get_db_connection_dict():
    """
    Get a database connection with RealDictCursor (returns dictionaries)

    Use this for repository queries; rows map straight onto domain models.

    Raises:
        psycopg2.OperationalError if DATABASE_URL is not configured

    Example:
        conn = get_db_connection_dict()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM orders")
        results = cursor.fetchall()  # Returns list of dicts
        cursor.close()
        conn.close()
    """
    return psycopg2.connect(
        _require_database_url(),
        cursor_factory=RealDictCursor,
        connect_timeout=CONNECTION_TIMEOUT,
    )


# ============================================================================
# Database Connection with Retry Logic
# ============================================================================

def get_db_connection_with_retry(max_retries=None, retry_delay=1.0):
    """
    Get a psycopg2 connection with automatic retry on connection failures

    - Retries failed connections up to max_retries times
    - Exponential backoff between retries
    - Logs connection attempts for debugging

    Args:
        max_retries: Maximum number of connection attempts (default: DB_CONNECT_RETRIES)
        retry_delay: Initial delay between retries in seconds (default: 1.0)

    Returns:
        psycopg2 connection object

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    database_url = _require_database_url()
    max_retries = max_retries or settings.DB_CONNECT_RETRIES

    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(database_url, connect_timeout=CONNECTION_TIMEOUT)

            # Test connection with a simple query
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()

            logger.debug(f"Database connection successful on attempt {attempt}")
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {e}")

            # Don't retry on last attempt
            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)

    logger.error(f"All {max_retries} connection attempts failed")
    raise last_error
