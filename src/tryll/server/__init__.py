"""MCP server for the Tryll store."""

from tryll.server.mcp_server import create_mcp_server

__all__ = ["create_mcp_server"]
