"""
Conexión a base de datos PostgreSQL

Este módulo centraliza TODAS las formas de acceso a la base de datos:
- psycopg2 directo (para queries SQL raw desde los repositorios)
- SQLAlchemy (solo para declarar y crear el esquema)
"""
import time
import logging

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from .config import settings

logger = logging.getLogger(__name__)


# ============================================================================
# SQLAlchemy Configuration (schema definitions only)
# ============================================================================

# Base para modelos
Base = declarative_base()


def get_engine(database_url: str = None):
    """
    Create a SQLAlchemy engine for schema management.

    Repositories never use the engine; they talk to psycopg2 directly.
    """
    url = database_url or settings.DATABASE_URL
    if not url:
        raise Exception("DATABASE_URL not configured")
    return create_engine(url, pool_pre_ping=True)


# ============================================================================
# psycopg2 Connections with Retry Logic (SSL Failure Recovery)
# ============================================================================

def get_db_connection_with_retry(max_retries=3, retry_delay=1.0, cursor_factory=None):
    """
    Get a psycopg2 connection with automatic retry on SSL/connection failures

    Args:
        max_retries: Maximum number of connection attempts (default: 3)
        retry_delay: Initial delay between retries in seconds (default: 1.0)
        cursor_factory: Optional cursor factory (e.g. RealDictCursor)

    Returns:
        psycopg2 connection object

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")

    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(database_url, cursor_factory=cursor_factory)

            # Test connection with a simple query
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()

            logger.debug(f"Database connection successful on attempt {attempt}")
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            error_msg = str(e)

            if "SSL connection has been closed unexpectedly" in error_msg:
                logger.warning(f"SSL connection error on attempt {attempt}/{max_retries}: {error_msg}")
            else:
                logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {error_msg}")

            if attempt < max_retries:
                # Exponential backoff
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise last_error

    raise last_error if last_error else Exception("Connection failed after all retries")


def get_db_connection_dict_with_retry(max_retries=3, retry_delay=1.0):
    """
    Same as get_db_connection_with_retry but returns dicts instead of tuples.
    """
    return get_db_connection_with_retry(
        max_retries=max_retries,
        retry_delay=retry_delay,
        cursor_factory=RealDictCursor,
    )
