# =============================================================================
# tools/mcp_server.py  -  FastMCP Tool Server (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Defines ALL MCP tools that an agent can call.  Each tool is a thin
#   wrapper around a core/api.py call: it takes the validated arguments,
#   fetches from the Luskad API, and formats the outcome as text.
#
# HOW IT WORKS (the flow):
#   1. The agent decides it needs project data (e.g., open tasks)
#   2. It calls a tool by name via MCP (e.g., "get-tasks")
#   3. FastMCP validates the arguments and routes the call to the function
#   4. The function calls ApiClient, formats the result, and returns it
#   5. The agent receives either pretty-printed JSON or a failure sentence
#
# FAILURE IS A NORMAL ANSWER:
#   When the API call fails, the tool still returns successfully, with a
#   short sentence such as "Failed to retrieve tasks".  Only malformed calls
#   (a missing projectId, say) are rejected, as JSON-RPC errors with code
#   -32602, before our function runs.
#
# ONE SERVER PER CONNECTION:
#   create_server() builds a fresh FastMCP instance with every tool
#   registered.  The HTTP transports call it once per connection; the
#   stdio transport calls it once per process.
#
# ARGUMENT NAMES:
#   projectId / startDate / endDate are camelCase because they are the
#   argument names MCP clients send on the wire.
# =============================================================================

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ValidationError
from fastmcp.server.middleware import CallNext, Middleware, MiddlewareContext
from mcp import MCPError
from mcp.types import INVALID_PARAMS
from pydantic import Field

from core.api import ApiClient

logger = logging.getLogger(__name__)

SERVER_NAME = "Luskad"
SERVER_VERSION = "1.0.0"
SERVER_INSTRUCTIONS = (
    "Luskad is a tool that allows you to search for and retrieve information "
    "from the Luskad API."
)

# =============================================================================
# Logging Setup
# =============================================================================
# We log to STDERR because, with the stdio transport, STDOUT *is* the MCP
# message stream.  A stray log line on stdout would corrupt the protocol.
#
# ANSI COLOR CODES:
#     - CYAN for incoming requests (tool name + parameters)
#     - GREEN for responses
#     - YELLOW for intermediate status/progress messages
# =============================================================================

_CYAN = "\033[36m"     # Requests (tool calls with params)
_GREEN = "\033[32m"    # Responses
_YELLOW = "\033[33m"   # Status/progress messages
_RESET = "\033[0m"     # Reset to default terminal color

_RESPONSE_PREVIEW_CHARS = 300


def configure_logging(level: Optional[str] = None) -> None:
    """Send all logging to stderr.  LOG_LEVEL overrides the INFO default."""
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL") or "INFO").upper(),
        format="%(asctime)s [MCP] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _log_request(tool_name: str, **params) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    logger.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log an intermediate status message in YELLOW."""
    logger.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, text: str) -> str:
    """Log a preview of the tool response in GREEN, then return it."""
    preview = text.replace("\n", " ")
    if len(preview) > _RESPONSE_PREVIEW_CHARS:
        preview = preview[:_RESPONSE_PREVIEW_CHARS] + "..."
    logger.info(f"{_GREEN}  ← {tool_name} response: {preview}{_RESET}")
    return text


# =============================================================================
# Result formatting
# =============================================================================
def format_result(data: Optional[Any], failure_text: str = "Failed to retrieve data") -> str:
    """Render an API result for the agent.

    None (the API call failed) becomes the failure sentence; any other value,
    including an empty list, is pretty-printed JSON.
    """
    if data is None:
        return failure_text
    return json.dumps(data, indent=2)


def current_timestamp() -> str:
    """ISO-8601 UTC timestamp with milliseconds, e.g. 2025-01-31T09:15:02.123Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# =============================================================================
# Argument validation
# =============================================================================
# FastMCP reports bad arguments as a tool result with isError set, the same
# envelope as a tool that crashed.  This middleware turns them into a
# JSON-RPC error with code INVALID_PARAMS (-32602) instead.
# =============================================================================
class InvalidParamsMiddleware(Middleware):
    """Reject tool calls whose arguments fail validation with INVALID_PARAMS."""

    async def on_call_tool(self, context: MiddlewareContext, call_next: CallNext):
        try:
            return await call_next(context)
        except ValidationError as exc:
            tool_name = context.message.name
            logger.warning("Invalid arguments for %s: %s", tool_name, exc)
            raise MCPError(
                code=INVALID_PARAMS,
                message=f"Invalid arguments for tool {tool_name}",
                data=str(exc),
            ) from exc


# =============================================================================
# Server factory
# =============================================================================
def create_server(api: ApiClient) -> FastMCP:
    """Build a FastMCP server with the full Luskad tool catalog bound to `api`."""
    mcp = FastMCP(SERVER_NAME, instructions=SERVER_INSTRUCTIONS, version=SERVER_VERSION)
    mcp.add_middleware(InvalidParamsMiddleware())

    # -------------------------------------------------------------------------
    # get-current-date: the only tool that never touches the network.
    # -------------------------------------------------------------------------
    @mcp.tool(
        name="get-current-date",
        title="Get Current Date",
        description=(
            "Retrieve the current date and time in ISO format for reference in "
            "project planning and scheduling"
        ),
    )
    async def get_current_date() -> str:
        _log_request("get-current-date")
        return _log_response("get-current-date", current_timestamp())

    @mcp.tool(
        name="list-projects",
        title="List All Projects",
        description=(
            "Retrieve a comprehensive list of all projects in the system with their "
            "IDs, names, descriptions, and creation dates for project management overview"
        ),
    )
    async def list_projects() -> str:
        _log_request("list-projects")
        data = await api.list_projects()
        return _log_response("list-projects", format_result(data, "Failed to retrieve projects"))

    @mcp.tool(
        name="get-coding-rules",
        title="Fetch Coding Rules",
        description=(
            "Retrieve coding standards, guidelines, and best practices for a specific "
            "project. Supports optional search queries to filter rules by keywords or topics"
        ),
    )
    async def get_coding_rules(
        projectId: Annotated[str, Field(description="The ID of the project to fetch coding rules for")],
        query: Annotated[Optional[str], Field(description="The query to search for coding rules")] = None,
    ) -> str:
        _log_request("get-coding-rules", projectId=projectId, query=query)
        data = await api.fetch_coding_rules(projectId, query)
        return _log_response(
            "get-coding-rules", format_result(data, "Failed to retrieve coding rules")
        )

    @mcp.tool(
        name="get-contacts",
        title="Fetch Project Contacts",
        description=(
            "Retrieve all contacts associated with a specific project, including their "
            "personal information, company details, roles, and notes for stakeholder management"
        ),
    )
    async def get_contacts(
        projectId: Annotated[str, Field(description="The ID of the project to fetch contacts for")],
    ) -> str:
        _log_request("get-contacts", projectId=projectId)
        data = await api.fetch_contacts(projectId)
        return _log_response("get-contacts", format_result(data, "Failed to retrieve contacts"))

    @mcp.tool(
        name="get-features",
        title="Fetch Project Features & Issues",
        description=(
            "Retrieve all features and issues for a specific project, including their "
            "status, priority, descriptions, and related metadata for project tracking "
            "and management"
        ),
    )
    async def get_features(
        projectId: Annotated[str, Field(description="The ID of the project to fetch features for")],
    ) -> str:
        _log_request("get-features", projectId=projectId)
        data = await api.fetch_features(projectId)
        return _log_response("get-features", format_result(data, "Failed to retrieve features"))

    # -------------------------------------------------------------------------
    # get-progress: two API calls merged into one object.
    # -------------------------------------------------------------------------
    # The composite is always returned, even when one or both halves are None,
    # so the agent can still use whichever half came back.
    @mcp.tool(
        name="get-progress",
        title="Get Project Progress",
        description=(
            "Retrieve comprehensive project progress metrics including completion "
            "status, throughput analysis, build time tracking, and projected completion "
            "dates for project planning and reporting"
        ),
    )
    async def get_progress(
        projectId: Annotated[str, Field(description="The ID of the project to get the progress for")],
        query: Annotated[Optional[str], Field(description="The query to search for features")] = None,
    ) -> str:
        _log_request("get-progress", projectId=projectId, query=query)
        planning = await api.fetch_planning(projectId)
        progress = await api.fetch_progress(projectId, query)
        _log_status(
            f"planning={'ok' if planning is not None else 'failed'}, "
            f"progress={'ok' if progress is not None else 'failed'}"
        )
        data = {"planning": planning, "progress": progress}
        return _log_response(
            "get-progress", format_result(data, "Failed to retrieve project progress")
        )

    @mcp.tool(
        name="get-risks",
        title="Fetch Project Risks",
        description=(
            "Retrieve all identified risks for a specific project, including their "
            "severity, probability, impact assessment, and mitigation strategies for "
            "risk management"
        ),
    )
    async def get_risks(
        projectId: Annotated[str, Field(description="The ID of the project to fetch risks for")],
        query: Annotated[Optional[str], Field(description="The query to search for risks")] = None,
    ) -> str:
        _log_request("get-risks", projectId=projectId, query=query)
        data = await api.fetch_risks(projectId, query)
        return _log_response("get-risks", format_result(data, "Failed to retrieve risks"))

    @mcp.tool(
        name="get-tasks",
        title="Fetch Project Tasks",
        description=(
            "Retrieve all tasks associated with a specific project, including their "
            "status, priority, assignments, deadlines, and progress tracking for task "
            "management"
        ),
    )
    async def get_tasks(
        projectId: Annotated[str, Field(description="The ID of the project to fetch tasks for")],
        query: Annotated[Optional[str], Field(description="The query to search for tasks")] = None,
    ) -> str:
        _log_request("get-tasks", projectId=projectId, query=query)
        data = await api.fetch_tasks(projectId, query)
        return _log_response("get-tasks", format_result(data, "Failed to retrieve tasks"))

    @mcp.tool(
        name="get-team-members",
        title="Fetch Project Team Members",
        description=(
            "Retrieve all team members assigned to a specific project, including their "
            "roles, skills, availability, and working schedules for team management and "
            "resource planning"
        ),
    )
    async def get_team_members(
        projectId: Annotated[str, Field(description="The ID of the project to fetch team members for")],
    ) -> str:
        _log_request("get-team-members", projectId=projectId)
        data = await api.fetch_team_members(projectId)
        return _log_response(
            "get-team-members", format_result(data, "Failed to retrieve team members")
        )

    # -------------------------------------------------------------------------
    # Date-range metrics
    # -------------------------------------------------------------------------
    # Both take an explicit window; dates are passed through to the API as-is.
    @mcp.tool(
        name="get-throughput",
        title="Fetch Project Throughput",
        description=(
            "Retrieve the throughput of a specific project (work items completed per "
            "period) between a start date and an end date"
        ),
    )
    async def get_throughput(
        projectId: Annotated[str, Field(description="The ID of the project to fetch throughput for")],
        startDate: Annotated[str, Field(description="Start of the period, e.g. 2025-01-01")],
        endDate: Annotated[str, Field(description="End of the period, e.g. 2025-03-31")],
    ) -> str:
        _log_request("get-throughput", projectId=projectId, startDate=startDate, endDate=endDate)
        data = await api.fetch_throughput(projectId, startDate, endDate)
        return _log_response("get-throughput", format_result(data, "Failed to retrieve throughput"))

    @mcp.tool(
        name="get-build-time",
        title="Fetch Project Build Time",
        description=(
            "Retrieve the build time of a specific project (time spent building "
            "features) between a start date and an end date"
        ),
    )
    async def get_build_time(
        projectId: Annotated[str, Field(description="The ID of the project to fetch build time for")],
        startDate: Annotated[str, Field(description="Start of the period, e.g. 2025-01-01")],
        endDate: Annotated[str, Field(description="End of the period, e.g. 2025-03-31")],
    ) -> str:
        _log_request("get-build-time", projectId=projectId, startDate=startDate, endDate=endDate)
        data = await api.fetch_build_time(projectId, startDate, endDate)
        return _log_response("get-build-time", format_result(data, "Failed to retrieve build time"))

    return mcp
