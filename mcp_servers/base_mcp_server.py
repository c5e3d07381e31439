"""
Base MCP Server Implementation

This module provides the foundational MCP server class that the database
adapter inherits from: JSON-RPC 2.0 method routing, the tool registry and
argument validation against each tool's input schema.
"""

import json
import math
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from jsonrpc.jsonrpc2 import JSONRPC20Response

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class MCPServerError(Exception):
    """Base exception for MCP server errors"""
    code = INTERNAL_ERROR


class MCPValidationError(MCPServerError):
    """Request validation error"""
    code = INVALID_PARAMS


class MCPMethodNotFoundError(MCPServerError):
    """Unknown JSON-RPC method"""
    code = METHOD_NOT_FOUND


class MCPToolError(MCPServerError):
    """A tool ran but failed; reported to the client as a tool result"""
    pass


class BaseMCPServer(ABC):
    """
    Base MCP Server class.

    Implements the tools side of the Model Context Protocol. Subclasses
    register their tools in _initialize_tools and run them in _execute_tool.
    """

    def __init__(self, name: str, version: str = "1.0.0"):
        self.name = name
        self.version = version
        self.tools = {}
        self._initialize_tools()
        logger.info(f"Initialized MCP Server: {name} v{version}")

    @abstractmethod
    def _initialize_tools(self):
        """Initialize server-specific tools and their schemas"""
        pass

    @abstractmethod
    async def _execute_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Any:
        """Execute the specified tool with given arguments"""
        pass

    def get_server_info(self) -> Dict[str, Any]:
        return {"name": self.name, "version": self.version}

    def list_tools(self) -> List[Dict[str, Any]]:
        """Return list of available tools with their schemas"""
        return list(self.tools.values())

    async def handle_request(self, request: Union[Dict, str]) -> Optional[JSONRPC20Response]:
        """
        Handle incoming MCP request and route to appropriate handler

        Args:
            request: JSON-RPC 2.0 request (dict or JSON string)

        Returns:
            JSON-RPC 2.0 response, or None for notifications
        """
        request_id = None
        try:
            if isinstance(request, str):
                try:
                    request = json.loads(request)
                except ValueError as e:
                    return self._error_response(PARSE_ERROR, f"Parse error: {e}", None)

            if not isinstance(request, dict) or not isinstance(request.get("method"), str):
                return self._error_response(INVALID_REQUEST, "Invalid Request", None)

            method = request["method"]
            params = request.get("params") or {}
            request_id = request.get("id")
            is_notification = "id" not in request

            logger.debug(f"Handling MCP request: {method}")

            if is_notification:
                # notifications/initialized, notifications/cancelled, ...
                logger.debug(f"Received notification: {method}")
                return None

            if method == "initialize":
                result = self._handle_initialize(params)
            elif method == "ping":
                result = {}
            elif method == "tools/list":
                result = {"tools": self.list_tools()}
            elif method == "tools/call":
                result = await self._handle_tool_call(params)
            else:
                raise MCPMethodNotFoundError(f"Unknown method: {method}")

            return JSONRPC20Response(result=result, _id=request_id)

        except MCPServerError as e:
            logger.error(f"MCP Server Error: {e}")
            return self._error_response(e.code, str(e), request_id)
        except Exception as e:
            logger.exception(f"Unexpected error in MCP server {self.name}: {e}")
            return self._error_response(INTERNAL_ERROR, "Internal server error", request_id,
                                        data={"server": self.name, "error": str(e)})

    def _error_response(self, code: int, message: str, request_id: Any,
                        data: Optional[Dict[str, Any]] = None) -> JSONRPC20Response:
        error = {"code": code, "message": message}
        if data is not None:
            error["data"] = data
        return JSONRPC20Response(error=error, _id=request_id)

    def _handle_initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Handle MCP initialize request"""
        client = params.get("clientInfo", {})
        logger.info(f"Initialize from client {client.get('name', 'unknown')} {client.get('version', '')}".rstrip())
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": self.get_server_info()
        }

    async def _handle_tool_call(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Handle tool call request"""
        tool_name = params.get("name")
        arguments = params.get("arguments") or {}

        if tool_name not in self.tools:
            raise MCPValidationError(f"Unknown tool: {tool_name}")

        self._validate_tool_arguments(tool_name, arguments)

        try:
            result = await self._execute_tool(tool_name, arguments)
        except MCPToolError as e:
            logger.warning(f"Tool {tool_name} failed: {e}")
            return {
                "content": [{"type": "text", "text": f"Error: {e}"}],
                "isError": True
            }

        return {
            "content": [
                {
                    "type": "text",
                    "text": json.dumps(result, indent=2, default=str)
                }
            ]
        }

    def _validate_tool_arguments(self, tool_name: str, arguments: Dict[str, Any]):
        """Validate tool arguments against schema"""
        if not isinstance(arguments, dict):
            raise MCPValidationError("Tool arguments must be an object")

        tool_schema = self.tools[tool_name]["inputSchema"]
        properties = tool_schema.get("properties", {})
        required_fields = tool_schema.get("required", [])

        for field in required_fields:
            if field not in arguments:
                raise MCPValidationError(f"Missing required argument: {field}")

        for field, value in arguments.items():
            if field in properties:
                self._validate_field_value(field, value, properties[field])

    def _validate_field_value(self, field_name: str, value: Any, schema: Dict[str, Any]):
        """Validate individual field value against schema"""
        expected_type = schema.get("type")
        is_number = (isinstance(value, (int, float)) and not isinstance(value, bool)
                     and (isinstance(value, int) or math.isfinite(value)))

        if expected_type == "string" and not isinstance(value, str):
            raise MCPValidationError(f"Field {field_name} must be a string")
        elif expected_type == "number" and not is_number:
            raise MCPValidationError(f"Field {field_name} must be a number")
        elif expected_type == "integer" and not (is_number and (isinstance(value, int) or value.is_integer())):
            raise MCPValidationError(f"Field {field_name} must be an integer")
        elif expected_type == "boolean" and not isinstance(value, bool):
            raise MCPValidationError(f"Field {field_name} must be a boolean")

    def register_tool(self, name: str, description: str, input_schema: Dict[str, Any]):
        """Register a tool with the server"""
        self.tools[name] = {
            "name": name,
            "description": description,
            "inputSchema": input_schema
        }
        logger.debug(f"Registered tool: {name}")
