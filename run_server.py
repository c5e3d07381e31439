#!/usr/bin/env python
"""
Entry point for the MCP DB Server

Commands:
    serve        Resolve configuration, connect and serve MCP on stdio (default)
    show-config  Print the resolved connection settings, password masked
    cert-status  Print the state of the cached AWS RDS certificate bundle
"""

import asyncio
import json
import logging
import sys

from db_config import settings
from db_config.errors import ConfigurationError, ConnectivityError
from db_config.resolver import ConfigResolver
from mcp_servers.postgres_db_adapter import PostgresDBAdapter, connect_with_retry
from mcp_servers.stdio_transport import StdioTransport
from security.trust_bundle import TrustBundleCache

logger = logging.getLogger("mcp_servers.run_server")

USAGE = "Usage: run_server.py [serve|show-config|cert-status]"


async def serve():
    """Resolve, connect, then handle requests until stdin closes"""
    descriptor = await ConfigResolver().resolve()
    connection = await asyncio.to_thread(connect_with_retry, descriptor)
    try:
        server = PostgresDBAdapter(connection)
        await StdioTransport().serve(server)
    finally:
        connection.close()


async def show_config():
    descriptor = await ConfigResolver().resolve()
    print(json.dumps(descriptor.redacted(), indent=2))


def cert_status():
    print(json.dumps(TrustBundleCache().status().to_dict(), indent=2))


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    settings.configure_logging()

    command = argv[0] if argv else "serve"
    try:
        if command == "serve":
            asyncio.run(serve())
        elif command == "show-config":
            asyncio.run(show_config())
        elif command == "cert-status":
            cert_status()
        else:
            print(f"Unknown command: {command}", file=sys.stderr)
            print(USAGE, file=sys.stderr)
            return 1
    except (ConfigurationError, ConnectivityError) as e:
        logger.error(f"Server error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")

    return 0


if __name__ == "__main__":
    sys.exit(main())
