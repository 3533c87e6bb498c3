# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains the Luskad API access layer and runtime settings.
#
# ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP, Starlette, or any MCP transport.
#   core/ knows how to talk to the Luskad REST API and how to read settings;
#   tools/ knows how to expose that over MCP.
# =============================================================================
