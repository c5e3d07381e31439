"""
Stdio transport for MCP servers

One JSON-RPC message per line on stdin, one response per line on stdout.
Nothing else may be written to stdout; diagnostics go through logging,
which is configured to use stderr.
"""

import asyncio
import json
import logging
import sys
from typing import Optional, TextIO

from .base_mcp_server import BaseMCPServer

logger = logging.getLogger(__name__)


class StdioTransport:
    """Serves a BaseMCPServer over a pair of text streams"""

    def __init__(self, reader: Optional[TextIO] = None, writer: Optional[TextIO] = None):
        self.reader = reader or sys.stdin
        self.writer = writer or sys.stdout

    async def serve(self, server: BaseMCPServer):
        """Handle requests until the reader reaches EOF"""
        logger.info(f"{server.name} running on stdio")
        while True:
            line = await asyncio.to_thread(self.reader.readline)
            if not line:
                break
            line = line.strip()
            if not line:
                continue

            response = await server.handle_request(line)
            if response is not None:
                self.send(response.data)

        logger.info("stdin closed, shutting down")

    def send(self, message):
        self.writer.write(json.dumps(message, default=str) + "\n")
        self.writer.flush()
