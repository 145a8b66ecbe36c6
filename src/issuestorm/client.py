import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import aiohttp
from pydantic import TypeAdapter, ValidationError

from .errors import DecodeError, HttpStatusError, TransportError
from .models import (
    Issue,
    IssueCreationPayload,
    IssueStatus,
    Label,
    Page,
    Project,
    ProjectMember,
    User,
)
from .utils import get_default_headers, join_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

LISTING_INCLUDE = "createdBy,assignee,developmentUpdates,isFollower,subtasksCount"
ISSUE_DETAIL_INCLUDE = (
    "isCreator,isAssignee,isFollower,initiative,epic,parent,commitment,subtasksCount"
)
PROJECT_LISTING_INCLUDE = "meta,activeSprint,members,organisation"


def _decode(adapter: TypeAdapter[T], data: Any, what: str) -> T:
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise DecodeError(f"Unexpected {what} response: {e}") from e


_USER = TypeAdapter(User)
_PROJECT = TypeAdapter(Project)
_ISSUE = TypeAdapter(Issue)
_LABELS = TypeAdapter(list[Label])
_STATUSES = TypeAdapter(list[IssueStatus])
_ISSUES = TypeAdapter(list[Issue])
_MEMBERS = TypeAdapter(list[ProjectMember])
_ISSUE_PAGE = TypeAdapter(Page[Issue])
_PROJECT_PAGE = TypeAdapter(Page[Project])


class TrackerClient:
    """Thin async client for the issue tracker REST API."""

    def __init__(self, session: aiohttp.ClientSession, base_url: str) -> None:
        self.session = session
        self.base_url = base_url

    # ────────────────────────────────
    # HTTP Plumbing
    # ────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        what: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        url = join_url(self.base_url, path)
        try:
            async with self.session.request(method, url, params=params, json=body) as resp:
                logger.debug(f"{method} {url}: status={resp.status}")
                if not 200 <= resp.status < 300:
                    raise HttpStatusError(resp.status, f"Unable to {what}.")
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise DecodeError(f"Unable to {what}. Invalid JSON: {e}") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Unable to {what}. Connection error: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransportError(f"Unable to {what}. Request timed out.") from e

    @staticmethod
    def _unwrap_listing(data: Any) -> Any:
        # Some listing endpoints answer with a page envelope, others a bare list
        if isinstance(data, dict) and "data" in data:
            return data["data"]
        return data

    # ────────────────────────────────
    # Metadata
    # ────────────────────────────────

    async def fetch_me(self) -> User:
        data = await self._request("GET", "/user", "fetch current user")
        return _decode(_USER, data, "user")

    async def fetch_project(self, project_id: str) -> Project:
        data = await self._request(
            "GET",
            f"/projects/{project_id}",
            f"fetch project {project_id}",
            params={"include": "organisation"},
        )
        return _decode(_PROJECT, data, "project")

    async def fetch_projects(self, page: int, per_page: int = 50) -> Page[Project]:
        data = await self._request(
            "GET",
            "/projects",
            "fetch project listing",
            params={
                "status": "active",
                "page": str(page),
                "per_page": str(per_page),
                "sort": "-lastActivityDate",
                "include": PROJECT_LISTING_INCLUDE,
            },
        )
        return _decode(_PROJECT_PAGE, data, "project listing")

    async def fetch_labels(self, project_id: str) -> list[Label]:
        data = await self._request(
            "GET", f"/projects/{project_id}/labels", f"fetch project labels {project_id}"
        )
        return _decode(_LABELS, data, "labels")

    async def fetch_statuses(self, project_id: str) -> list[IssueStatus]:
        data = await self._request(
            "GET",
            f"/projects/{project_id}/issueStatuses",
            f"fetch project issue statuses {project_id}",
        )
        return _decode(_STATUSES, data, "issue statuses")

    async def _fetch_issues_of_type(self, project_id: str, issue_type: str) -> list[Issue]:
        data = await self._request(
            "GET",
            f"/projects/{project_id}/issues",
            f"fetch {issue_type}s",
            params={
                "type": issue_type,
                "state": "active",
                "page": "1",
                "per_page": "50",
                "sort": "-createdAt",
                "include": LISTING_INCLUDE,
            },
        )
        return _decode(_ISSUES, self._unwrap_listing(data), f"{issue_type} listing")

    async def fetch_initiatives(self, project_id: str) -> list[Issue]:
        return await self._fetch_issues_of_type(project_id, "initiative")

    async def fetch_epics(self, project_id: str) -> list[Issue]:
        return await self._fetch_issues_of_type(project_id, "epic")

    async def fetch_members(self, project_id: str) -> list[ProjectMember]:
        data = await self._request(
            "GET",
            f"/iam/projects/{project_id}/members",
            "fetch project members",
            params={"status": "active"},
        )
        return _decode(_MEMBERS, self._unwrap_listing(data), "members")

    # ────────────────────────────────
    # Issues
    # ────────────────────────────────

    async def fetch_issues(self, project_id: str, page: int, per_page: int = 50) -> Page[Issue]:
        data = await self._request(
            "GET",
            f"/projects/{project_id}/issues",
            "fetch issue listing",
            params={
                "state": "active",
                "page": str(page),
                "per_page": str(per_page),
                "sort": "-createdAt",
                "include": LISTING_INCLUDE + ",meta",
            },
        )
        return _decode(_ISSUE_PAGE, data, "issue listing")

    async def fetch_issue(self, project_id: str, issue_id: str) -> Issue:
        data = await self._request(
            "GET",
            f"/projects/{project_id}/issues/{issue_id}",
            "fetch issue",
            params={"include": ISSUE_DETAIL_INCLUDE},
        )
        return _decode(_ISSUE, data, "issue")

    async def create_issue(self, project_id: str, payload: IssueCreationPayload) -> Issue:
        data = await self._request(
            "POST",
            f"/projects/{project_id}/issues",
            "create issue",
            body=payload.to_body(),
        )
        return _decode(_ISSUE, data, "created issue")


@asynccontextmanager
async def open_client(
    base_url: str, token: str, request_timeout_s: float | None = None
) -> AsyncIterator[TrackerClient]:
    connector = aiohttp.TCPConnector(limit=0)
    timeout = aiohttp.ClientTimeout(total=request_timeout_s)
    async with aiohttp.ClientSession(
        connector=connector, timeout=timeout, headers=get_default_headers(token)
    ) as session:
        yield TrackerClient(session, base_url)
