# =============================================================================
# core/api.py  -  Luskad REST API Client
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Turns a logical data request ("the tasks of project 42 matching 'login'")
#   into exactly one authenticated HTTP GET against the Luskad API, and hands
#   back either the parsed JSON body or None.
#
# THE CONTRACT:
#   - Success (2xx + valid JSON)  ->  the parsed body, whatever its shape.
#   - Anything else               ->  None.
#     That covers non-2xx statuses, connection errors, timeouts and bodies
#     that are not JSON.  The cause goes to the log, never to the caller.
#
#   No retries and no caching: every call hits the network once.
#
# ENDPOINTS (all relative to the configured base URL):
#   /projects
#   /projects/{id}/coding_rules   ?q=
#   /projects/{id}/contacts
#   /projects/{id}/features
#   /projects/{id}/planning
#   /projects/{id}/progress       ?q=
#   /projects/{id}/risks          ?q=
#   /projects/{id}/tasks          ?q=
#   /projects/{id}/team_members
#   /projects/{id}/throughput     ?start_date=&end_date=
#   /projects/{id}/build_time     ?start_date=&end_date=
# =============================================================================

import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


def _project_path(project_id: str, resource: str) -> str:
    return f"/projects/{quote(project_id, safe='')}/{resource}"


class ApiClient:
    """Read-only client for the Luskad API.

    Args:
        base_url: API root, e.g. "https://app.luskad.com/api/v1".
        api_key: Bearer token sent with every request.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._transport = transport

    async def get(
        self, path: str, params: Optional[Mapping[str, Optional[str]]] = None
    ) -> Optional[Any]:
        """GET base_url + path; return parsed JSON or None on any failure.

        Parameters whose value is None or "" are left out of the query string.
        """
        url = f"{self.base_url}{path}"
        query = {key: value for key, value in (params or {}).items() if value}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(url, params=query, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Error fetching %s: %s", path, exc)
            return None

        if not response.is_success:
            logger.error("Failed to fetch %s: %s", path, response.status_code)
            return None

        try:
            return response.json()
        except ValueError as exc:
            logger.error("Invalid JSON from %s: %s", path, exc)
            return None

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------
    async def list_projects(self) -> Optional[Any]:
        return await self.get("/projects")

    async def fetch_coding_rules(
        self, project_id: str, query: Optional[str] = None
    ) -> Optional[Any]:
        return await self.get(_project_path(project_id, "coding_rules"), {"q": query})

    async def fetch_contacts(self, project_id: str) -> Optional[Any]:
        return await self.get(_project_path(project_id, "contacts"))

    async def fetch_features(self, project_id: str) -> Optional[Any]:
        return await self.get(_project_path(project_id, "features"))

    async def fetch_planning(self, project_id: str) -> Optional[Any]:
        return await self.get(_project_path(project_id, "planning"))

    async def fetch_progress(
        self, project_id: str, query: Optional[str] = None
    ) -> Optional[Any]:
        return await self.get(_project_path(project_id, "progress"), {"q": query})

    async def fetch_risks(
        self, project_id: str, query: Optional[str] = None
    ) -> Optional[Any]:
        return await self.get(_project_path(project_id, "risks"), {"q": query})

    async def fetch_tasks(
        self, project_id: str, query: Optional[str] = None
    ) -> Optional[Any]:
        return await self.get(_project_path(project_id, "tasks"), {"q": query})

    async def fetch_team_members(self, project_id: str) -> Optional[Any]:
        return await self.get(_project_path(project_id, "team_members"))

    async def fetch_throughput(
        self, project_id: str, start_date: str, end_date: str
    ) -> Optional[Any]:
        return await self.get(
            _project_path(project_id, "throughput"),
            {"start_date": start_date, "end_date": end_date},
        )

    async def fetch_build_time(
        self, project_id: str, start_date: str, end_date: str
    ) -> Optional[Any]:
        return await self.get(
            _project_path(project_id, "build_time"),
            {"start_date": start_date, "end_date": end_date},
        )
