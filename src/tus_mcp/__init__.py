"""MCP server for the TUS Santander urban bus network."""

__version__ = "0.1.0"
