"""
PostgreSQL DB Adapter MCP Server

Read-only access to a single PostgreSQL database through a fixed set of
introspection tools and SELECT-only queries.
"""

from .connection import connect_with_retry
from .postgres_db_adapter import PostgresDBAdapter

__all__ = ["PostgresDBAdapter", "connect_with_retry"]
