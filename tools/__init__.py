# =============================================================================
# tools/__init__.py
# =============================================================================
# This package contains the MCP surface of the Luskad server.
#
# ARCHITECTURAL ROLE:
#   tools/ is the "translation layer" between MCP clients and the Luskad
#   API client in core/.
#     - mcp_server.py   FastMCP tool catalog (one tool per API resource)
#     - http_app.py     ASGI router for Streamable HTTP and legacy SSE
#     - sessions.py     the legacy SSE session table
#     - http_server.py  uvicorn listener with port fallback
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT build URLs or talk HTTP to Luskad (that's core/api.py)
#   - They do NOT read flags or environment (that's core/config.py)
#
# TOOL CONTRACT QUALITY:
#   Each tool has a kebab-case name, a title, a description the agent reads
#   to decide WHEN to call it, and typed, described arguments so it knows
#   WHAT to pass.
# =============================================================================
