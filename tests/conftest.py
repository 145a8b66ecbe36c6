import io
import math

import pytest
from aiohttp import web
from rich.console import Console

from issuestorm.config import Config


class FakeTracker:
    """In-process stand-in for the issue tracker API."""

    def __init__(
        self,
        issues=None,
        projects=None,
        labels=(),
        statuses=(),
        epics=(),
        initiatives=(),
        members=(),
        estimate_type="hours",
        issue_type="task",
        fail_issue_ids=(),
        fail_paths=(),
    ):
        self.projects = projects or [{"id": "p1", "key": "PRJ", "name": "Project One"}]
        # project id -> list of issue dicts
        self.issues = issues or {}
        self.labels = list(labels)
        self.statuses = list(statuses)
        self.epics = list(epics)
        self.initiatives = list(initiatives)
        self.members = list(members)
        self.preferences = {"issueType": issue_type, "estimateType": estimate_type}
        self.fail_issue_ids = set(fail_issue_ids)
        self.fail_paths = set(fail_paths)

        self.created = []
        self.listing_pages = []

    @staticmethod
    def page(data, page, per_page):
        total = len(data)
        start = (page - 1) * per_page
        return {
            "meta": {
                "page": page,
                "perPage": per_page,
                "totalRecords": total,
                "totalPages": math.ceil(total / per_page) if per_page else 0,
            },
            "data": data[start:start + per_page],
        }

    def app(self) -> web.Application:
        @web.middleware
        async def failures(request, handler):
            if request.path in self.fail_paths:
                return web.json_response({"message": "boom"}, status=500)
            return await handler(request)

        async def me(request):
            return web.json_response({"id": "u1", "username": "tester"})

        async def projects(request):
            page = int(request.query["page"])
            per_page = int(request.query["per_page"])
            return web.json_response(self.page(self.projects, page, per_page))

        async def project(request):
            pid = request.match_info["pid"]
            for p in self.projects:
                if p["id"] == pid:
                    return web.json_response({**p, "preferences": self.preferences})
            return web.json_response({"message": "not found"}, status=404)

        async def labels(request):
            return web.json_response(self.labels)

        async def statuses(request):
            return web.json_response(self.statuses)

        async def members(request):
            return web.json_response(self.members)

        async def issues(request):
            issue_type = request.query.get("type")
            if issue_type == "epic":
                return web.json_response(self.epics)
            if issue_type == "initiative":
                return web.json_response(self.initiatives)
            pid = request.match_info["pid"]
            page = int(request.query["page"])
            self.listing_pages.append((pid, page))
            data = self.issues.get(pid, [])
            return web.json_response(self.page(data, page, int(request.query["per_page"])))

        async def issue(request):
            pid = request.match_info["pid"]
            iid = request.match_info["iid"]
            if iid in self.fail_issue_ids:
                return web.json_response({"message": "boom"}, status=500)
            for item in self.issues.get(pid, []):
                if item["id"] == iid:
                    return web.json_response(item)
            return web.json_response({"message": "not found"}, status=404)

        async def create(request):
            body = await request.json()
            self.created.append(body)
            n = len(self.created)
            return web.json_response(
                {"id": f"i{n}", "key": f"PRJ-{n}", "title": body["title"], "type": body["type"]},
                status=201,
            )

        app = web.Application(middlewares=[failures])
        app.router.add_get("/user", me)
        app.router.add_get("/projects", projects)
        app.router.add_get("/projects/{pid}", project)
        app.router.add_get("/projects/{pid}/labels", labels)
        app.router.add_get("/projects/{pid}/issueStatuses", statuses)
        app.router.add_get("/projects/{pid}/issues", issues)
        app.router.add_post("/projects/{pid}/issues", create)
        app.router.add_get("/projects/{pid}/issues/{iid}", issue)
        app.router.add_get("/iam/projects/{pid}/members", members)
        return app


def make_issues(count, prefix="PRJ"):
    return [
        {"id": f"{prefix.lower()}-{i}", "key": f"{prefix}-{i}", "title": f"Issue {i}"}
        for i in range(1, count + 1)
    ]


def make_config(base_url, **overrides) -> Config:
    values = {
        "token": "secret",
        "base_url": base_url,
        "project_id": "p1",
        "issue_count": 5,
    }
    values.update(overrides)
    return Config(**values)


def server_url(server) -> str:
    return f"http://{server.host}:{server.port}"


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120)


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch):
    monkeypatch.delenv("ISSUESTORM_TOKEN", raising=False)
    monkeypatch.delenv("ISSUESTORM_BASE_URL", raising=False)
