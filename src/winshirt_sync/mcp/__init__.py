"""Admin MCP server exposing the sync dashboard operations as tools."""
