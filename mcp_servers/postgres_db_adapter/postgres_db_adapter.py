"""
PostgreSQL DB Adapter MCP Server

Read-only gateway to a PostgreSQL database: schema introspection, table
samples and SELECT queries over a single long-lived connection. Every tool
runs a fixed, parameterized statement; execute_query is the only one that
accepts SQL from the client and it is restricted to SELECT.
"""

import asyncio
import logging
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import psycopg2

from db_config import settings

from ..base_mcp_server import BaseMCPServer, MCPServerError, MCPToolError

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_LIMIT = 10
MAX_SAMPLE_LIMIT = 100

COLUMNS_SQL = """
    SELECT table_name, column_name, data_type, is_nullable, column_default
    FROM information_schema.columns
    WHERE table_schema = 'public'
"""

TABLES_SQL = """
    SELECT table_name, table_type
    FROM information_schema.tables
    WHERE table_schema = 'public'
    ORDER BY table_name
"""

DESCRIBE_COLUMNS_SQL = """
    SELECT column_name, data_type, is_nullable, column_default, character_maximum_length
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = %s
    ORDER BY ordinal_position
"""

DESCRIBE_INDEXES_SQL = """
    SELECT indexname, indexdef
    FROM pg_indexes
    WHERE schemaname = 'public' AND tablename = %s
"""

DESCRIBE_CONSTRAINTS_SQL = """
    SELECT constraint_name, constraint_type
    FROM information_schema.table_constraints
    WHERE table_schema = 'public' AND table_name = %s
"""


def _serialize_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (bytes, memoryview)):
        return bytes(value).hex()
    return value


def sanitize_identifier(name: str) -> str:
    """Strip everything but letters, digits and underscores"""
    return re.sub(r"[^a-zA-Z0-9_]", "", name)


class PostgresDBAdapter(BaseMCPServer):
    """
    PostgreSQL DB Adapter MCP Server

    Holds one psycopg2 connection, opened by connect_with_retry. Queries are
    run in a worker thread so the event loop keeps reading stdin.
    """

    def __init__(self, connection):
        self.connection = connection
        super().__init__(settings.SERVER_NAME, settings.SERVER_VERSION)

    def _initialize_tools(self):
        """Initialize database tools"""

        self.register_tool(
            name="get_schema",
            description="Get database schema information including tables and columns",
            input_schema={
                "type": "object",
                "properties": {
                    "table_name": {"type": "string", "description": "Optional: specific table name to get schema for"}
                }
            }
        )

        self.register_tool(
            name="execute_query",
            description="Execute a SQL query (SELECT only for safety)",
            input_schema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "SQL query to execute (SELECT statements only)"}
                },
                "required": ["query"]
            }
        )

        self.register_tool(
            name="list_tables",
            description="List all tables in the database",
            input_schema={
                "type": "object",
                "properties": {}
            }
        )

        self.register_tool(
            name="describe_table",
            description="Get detailed information about a specific table including indexes and constraints",
            input_schema={
                "type": "object",
                "properties": {
                    "table_name": {"type": "string", "description": "Name of the table to describe"}
                },
                "required": ["table_name"]
            }
        )

        self.register_tool(
            name="get_table_sample",
            description="Get a sample of rows from a table",
            input_schema={
                "type": "object",
                "properties": {
                    "table_name": {"type": "string", "description": "Name of the table to sample"},
                    "limit": {
                        "type": "number",
                        "description": f"Number of rows to return (default: {DEFAULT_SAMPLE_LIMIT}, max: {MAX_SAMPLE_LIMIT})",
                        "default": DEFAULT_SAMPLE_LIMIT
                    }
                },
                "required": ["table_name"]
            }
        )

    async def _execute_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Any:
        """Execute database tools"""
        if tool_name == "get_schema":
            return await self._get_schema(arguments)
        elif tool_name == "execute_query":
            return await self._execute_query(arguments)
        elif tool_name == "list_tables":
            return await self._list_tables(arguments)
        elif tool_name == "describe_table":
            return await self._describe_table(arguments)
        elif tool_name == "get_table_sample":
            return await self._get_table_sample(arguments)
        else:
            raise MCPServerError(f"Unknown tool: {tool_name}")

    async def _get_schema(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Columns of every public table, or of one table"""
        table_name = args.get("table_name")
        if table_name:
            return await self._fetch(COLUMNS_SQL + " AND table_name = %s", (table_name,))
        return await self._fetch(COLUMNS_SQL)

    async def _execute_query(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """Run a client-supplied SELECT"""
        query = args.get("query")
        if not query:
            raise MCPToolError("Query is required")

        if not query.strip().lower().startswith("select"):
            raise MCPToolError("Only SELECT queries are allowed for safety")

        rows = await self._fetch(query)
        return {"rows": rows, "rowCount": len(rows)}

    async def _list_tables(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self._fetch(TABLES_SQL)

    async def _describe_table(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """Columns, indexes and constraints of one table"""
        table_name = args.get("table_name")
        if not table_name:
            raise MCPToolError("Table name is required")

        params = (table_name,)
        columns = await self._fetch(DESCRIBE_COLUMNS_SQL, params)
        indexes = await self._fetch(DESCRIBE_INDEXES_SQL, params)
        constraints = await self._fetch(DESCRIBE_CONSTRAINTS_SQL, params)

        return {
            "table_name": table_name,
            "columns": columns,
            "indexes": indexes,
            "constraints": constraints
        }

    async def _get_table_sample(self, args: Dict[str, Any]) -> Dict[str, Any]:
        table_name = args.get("table_name")
        if not table_name:
            raise MCPToolError("Table name is required")

        identifier = sanitize_identifier(table_name)
        if not identifier:
            raise MCPToolError(f"Invalid table name: {table_name}")

        limit = min(int(args.get("limit") or DEFAULT_SAMPLE_LIMIT), MAX_SAMPLE_LIMIT)
        limit = max(limit, 1)

        rows = await self._fetch(f"SELECT * FROM {identifier} LIMIT %s", (limit,))
        return {
            "table_name": table_name,
            "sample_size": len(rows),
            "rows": rows
        }

    async def _fetch(self, sql: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(self._run_query, sql, params)
        except psycopg2.Error as e:
            logger.error(f"Query failed: {e}")
            raise MCPToolError(str(e).strip()) from e

    def _run_query(self, sql: str, params: Optional[tuple]) -> List[Dict[str, Any]]:
        with self.connection.cursor() as cur:
            cur.execute(sql, params)
            if not cur.description:
                return []
            columns = [desc[0] for desc in cur.description]
            return [
                {column: _serialize_value(value) for column, value in zip(columns, row)}
                for row in cur.fetchall()
            ]
