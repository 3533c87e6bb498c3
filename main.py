# =============================================================================
# main.py  -  Entry Point for the Luskad MCP Server
# =============================================================================
#
# HOW TO RUN:
#   luskad-mcp --key <API_KEY>                    (stdio, for desktop clients)
#   MCP_TRANSPORT=http luskad-mcp --key <API_KEY>  (HTTP: /mcp and /sse)
#
# WHAT HAPPENS:
#   1. Loads .env (python-dotenv) and sets up logging on stderr
#   2. Resolves settings: flags > environment > defaults (core/config.py)
#   3. Builds the API client (core/api.py)
#   4. Starts the selected transport:
#        stdio  ->  one FastMCP server on stdin/stdout
#        http   ->  uvicorn serving tools/http_app.py, with port fallback
#
# EXIT CODES:
#   0 on a normal shutdown, 1 when the configuration is invalid or no port
#   could be bound.
# =============================================================================

import asyncio
import logging
import sys

from dotenv import load_dotenv

from core.api import ApiClient
from core.config import DEFAULT_TRANSPORT, HTTP_TRANSPORTS, ConfigurationError, load_settings
from tools.http_app import McpHttpApp
from tools.http_server import PortUnavailableError, serve_http
from tools.mcp_server import configure_logging, create_server

logger = logging.getLogger("luskad")


def main(argv=None) -> None:
    load_dotenv()
    configure_logging()

    try:
        settings = load_settings(argv)
    except ConfigurationError as exc:
        logger.error(str(exc))
        sys.exit(1)

    api = ApiClient(settings.api_url, settings.api_key)

    if settings.uses_http:
        app = McpHttpApp(lambda: create_server(api))
        try:
            asyncio.run(serve_http(app, settings.host, settings.port))
        except PortUnavailableError as exc:
            logger.error("Could not start HTTP server: %s", exc)
            sys.exit(1)
        return

    if settings.transport != DEFAULT_TRANSPORT:
        logger.warning(
            "Unknown MCP_TRANSPORT %r (expected stdio, %s); using stdio",
            settings.transport,
            " or ".join(HTTP_TRANSPORTS),
        )
    server = create_server(api)
    logger.info("Luskad MCP Server running on stdio")
    asyncio.run(server.run_stdio_async(show_banner=False))


# =============================================================================
# Script entry point
# =============================================================================
if __name__ == "__main__":
    main()
