# =============================================================================
# core/config.py  -  Runtime Settings (flags, environment, .env)
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Resolves everything the server needs before it can start:
#     - the Luskad API key (required)
#     - the Luskad API base URL (defaults to the public endpoint)
#     - which MCP transport to run (stdio, or the HTTP server)
#     - the HTTP host and starting port
#
# PRECEDENCE:
#   command-line flag  >  environment variable  >  default
#
#   The .env file is loaded by main.py (python-dotenv) before this module
#   reads the environment, so values in .env behave like exported variables.
# =============================================================================

import argparse
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

DEFAULT_API_URL = "https://app.luskad.com/api/v1"
DEFAULT_TRANSPORT = "stdio"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# "http" and "sse" both start the HTTP server, which serves every HTTP binding.
HTTP_TRANSPORTS = ("http", "sse")


class ConfigurationError(ValueError):
    """Raised when the server cannot start with the supplied settings."""


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, immutable once the server has started."""

    api_url: str
    api_key: str
    transport: str = DEFAULT_TRANSPORT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @property
    def uses_http(self) -> bool:
        return self.transport in HTTP_TRANSPORTS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="luskad-mcp",
        description="Expose Luskad project data to MCP clients.",
    )
    parser.add_argument("--url", help="API URL")
    parser.add_argument("--key", help="API Key")
    return parser


def load_settings(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build Settings from command-line flags and environment variables.

    Raises:
        ConfigurationError: the API key is missing or PORT is not an integer.
    """
    env = os.environ if environ is None else environ
    args = build_parser().parse_args(argv)

    api_url = args.url or env.get("API_URL") or DEFAULT_API_URL
    api_key = args.key or env.get("API_KEY") or ""
    if not api_key:
        raise ConfigurationError(
            "API key is not set. Please set the API_KEY environment variable "
            "or pass it with --key."
        )

    raw_port = env.get("PORT") or str(DEFAULT_PORT)
    try:
        port = int(raw_port)
    except ValueError:
        raise ConfigurationError(f"PORT must be an integer, got {raw_port!r}") from None

    return Settings(
        api_url=api_url.rstrip("/"),
        api_key=api_key,
        transport=(env.get("MCP_TRANSPORT") or DEFAULT_TRANSPORT).lower(),
        host=env.get("HOST") or DEFAULT_HOST,
        port=port,
    )
