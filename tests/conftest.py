"""
Pytest configuration and fixtures for the MCP DB Server

Provides common fixtures and helpers for all tests.
"""

import os
import sys
from unittest.mock import MagicMock, Mock

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# A fixed clock for trust bundle age calculations
NOW = 1_700_000_000.0
DAY = 60 * 60 * 24

VALID_PEM = (
    b"-----BEGIN CERTIFICATE-----\n"
    b"MIIEBjCCAu6gAwIBAgIJAMc0ZzaSUK51MA0GCSqGSIb3DQEBCwUAMIGPMQswCQYD\n"
    b"-----END CERTIFICATE-----\n"
)

CORRUPT_PEM = (
    b"-----BEGIN CERTIFICATE-----\n"
    b"MIIEBjCCAu6gAwIBAgIJAMc0ZzaSUK51MA0GCSqGSIb3DQEBCwUAMIGPMQswCQYD\n"
)


def make_response(status_code=200, chunks=(VALID_PEM,), error=None):
    """Mock of a streamed requests.Response"""
    response = Mock()
    response.status_code = status_code

    def iter_content(chunk_size=None):
        for chunk in chunks:
            yield chunk
        if error is not None:
            raise error

    response.iter_content.side_effect = iter_content
    return response


def make_session(*responses, error=None):
    """Mock of requests.Session returning the given responses in order"""
    session = Mock(spec=requests.Session)
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.side_effect = list(responses) or [make_response()]
    return session


def make_connection(rows=(), columns=("table_name", "table_type"), error=None):
    """Mock psycopg2 connection whose cursor returns the given rows"""
    cursor = MagicMock()
    cursor.description = [(name,) for name in columns] if columns else None
    cursor.fetchall.return_value = [tuple(row) for row in rows]
    if error is not None:
        cursor.execute.side_effect = error

    connection = MagicMock()
    connection.cursor.return_value.__enter__.return_value = cursor
    return connection, cursor


def write_bundle(path, contents=VALID_PEM, age_days=0.0):
    """Write a cached bundle whose mtime is age_days before NOW"""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as fh:
        fh.write(contents)
    mtime = NOW - age_days * DAY
    os.utime(path, (mtime, mtime))


@pytest.fixture
def valid_pem():
    return VALID_PEM


@pytest.fixture
def work_dir(tmp_path, monkeypatch):
    """Empty working directory with no database environment variables set"""
    for name in ('DB_HOST', 'POSTGRES_HOST', 'DB_PORT', 'POSTGRES_PORT',
                 'DB_USER', 'POSTGRES_USER', 'DB_PASSWORD', 'POSTGRES_PASSWORD',
                 'DB_NAME', 'POSTGRES_DB', 'DB_SSL_MODE', 'POSTGRES_SSL_MODE',
                 'DATABASE_URL', 'DB_SSL_STRICT'):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
