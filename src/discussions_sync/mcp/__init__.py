"""MCP server exposing discussion sync runs as tools."""
