"""
ChartJS MCP
===========

MCP server that renders Chart.js v4 configurations.

Tool:
- generateChart: PNG image, saved PNG file, or interactive HTML fragment

Transport modes:
- STDIO (default): For Claude Desktop and other MCP clients
- streamable-http: Session-based streamable HTTP on /mcp
"""

__version__ = "0.1.0"

from .server import create_server, mcp

__all__ = ["create_server", "mcp", "__version__"]
