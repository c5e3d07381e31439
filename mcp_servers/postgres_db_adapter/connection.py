"""
Database connection bootstrap

Opens the single long-lived PostgreSQL connection used by the adapter,
retrying a fixed number of times before giving up.
"""

import logging
import time
from typing import Callable

import psycopg2

from db_config import settings
from db_config.descriptor import ConnectionDescriptor
from db_config.errors import ConnectivityError

logger = logging.getLogger(__name__)


def connect_with_retry(descriptor: ConnectionDescriptor,
                       attempts: int = None,
                       delay: float = None,
                       connect: Callable = psycopg2.connect,
                       sleep: Callable[[float], None] = time.sleep):
    """
    Connect to the database described by descriptor.

    Args:
        descriptor: Resolved connection parameters
        attempts: Number of connection attempts (DB_CONNECT_ATTEMPTS)
        delay: Seconds to wait between attempts (DB_CONNECT_RETRY_DELAY)

    Returns:
        An open read-only psycopg2 connection in autocommit mode

    Raises:
        ConnectivityError: every attempt failed
    """
    attempts = max(1, attempts if attempts is not None else settings.DB_CONNECT_ATTEMPTS)
    delay = delay if delay is not None else settings.DB_CONNECT_RETRY_DELAY
    kwargs = descriptor.to_connect_kwargs()
    last_error = None

    for attempt in range(1, attempts + 1):
        connection = None
        try:
            connection = connect(**kwargs)
            connection.set_session(readonly=True, autocommit=True)
            logger.info(
                f"Connected to {descriptor.host}:{descriptor.port}/{descriptor.database} "
                f"(tls={descriptor.tls_mode.value})"
            )
            return connection
        except psycopg2.Error as e:
            last_error = e
            if connection is not None:
                connection.close()
            logger.warning(f"Database connection attempt {attempt}/{attempts} failed: {e}")
            if attempt < attempts:
                sleep(delay)

    raise ConnectivityError(
        f"Could not connect to {descriptor.host}:{descriptor.port} after {attempts} attempts: {last_error}"
    )
