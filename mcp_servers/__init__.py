"""
MCP DB Server - MCP Servers Package

This package contains the Model Context Protocol (MCP) server that exposes
read-only PostgreSQL introspection and query tools to a tool-calling client.

Modules:
- base_mcp_server: JSON-RPC routing, tool registry and argument validation
- postgres_db_adapter: The database tools and the connection bootstrap
- stdio_transport: Line-delimited JSON-RPC over stdin/stdout
"""
