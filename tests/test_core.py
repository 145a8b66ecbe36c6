import asyncio
import random

import pytest
from aiohttp.test_utils import TestServer

from conftest import FakeTracker, make_config, make_issues, server_url
from issuestorm.core import RunOrchestrator
from issuestorm.errors import HttpStatusError
from issuestorm.payload import POINTS


def _run(tracker, workflow, console, **config_overrides):
    async def main():
        async with TestServer(tracker.app()) as server:
            config = make_config(server_url(server), **config_overrides)
            orchestrator = RunOrchestrator(config, console=console, rng=random.Random(3))
            return await workflow(orchestrator)

    return asyncio.run(main())


def test_bulk_create_with_empty_metadata(console):
    tracker = FakeTracker(estimate_type="points")
    stats = _run(tracker, RunOrchestrator.create_issues, console, issue_count=5)

    assert stats.total_requests == 5
    assert stats.succeeded == 5
    assert stats.success_ratio == 100.0
    assert len(tracker.created) == 5
    for body in tracker.created:
        assert body["type"] == "task"
        assert body["epicId"] is None
        assert body["initiativeId"] is None
        assert body["assigneeId"] is None
        assert body["status"] is None
        assert body["labels"] == []
        assert body["estimateType"] == "points"
        assert body["estimate"] in POINTS

    out = console.file.getvalue()
    assert "Logged in as: tester" in out
    assert "PRJ: Project One" in out
    assert "PRJ-1: " in out


def test_bulk_create_never_uses_the_last_status(console):
    tracker = FakeTracker(
        statuses=[{"id": "todo", "name": "To do"}, {"id": "done", "name": "Done"}]
    )
    _run(tracker, RunOrchestrator.create_issues, console, issue_count=20, concurrency=4)

    assert {body["status"] for body in tracker.created} == {"todo"}


def test_issue_type_override(console):
    tracker = FakeTracker(
        epics=[{"id": "e1", "key": "PRJ-1", "title": "Epic", "type": "epic"}],
        statuses=[{"id": "todo", "name": "To do"}, {"id": "done", "name": "Done"}],
    )
    _run(tracker, RunOrchestrator.create_issues, console, issue_count=10, issue_type="epic")

    assert all(body["type"] == "epic" for body in tracker.created)
    assert all(body["status"] is None and body["epicId"] is None for body in tracker.created)


def test_metadata_failure_aborts_before_dispatch(console):
    tracker = FakeTracker(fail_paths={"/projects/p1/labels"})
    with pytest.raises(HttpStatusError):
        _run(tracker, RunOrchestrator.create_issues, console)
    assert tracker.created == []


def test_crawl_project_issues(console):
    tracker = FakeTracker(
        issues={"p1": make_issues(12)}, fail_issue_ids={"prj-4", "prj-9"}
    )
    stats = _run(tracker, RunOrchestrator.crawl_project_issues, console, per_page=5)

    assert tracker.listing_pages == [("p1", 1), ("p1", 2), ("p1", 3)]
    assert stats.total_requests == 12
    assert stats.failed == 2
    assert stats.success_ratio == 83.33
    out = console.file.getvalue()
    assert "PRJ-1: Issue 1 --> " in out
    assert "PRJ-4: Issue 4" not in out


def test_crawl_empty_project(console):
    stats = _run(FakeTracker(), RunOrchestrator.crawl_project_issues, console)
    assert stats.total_requests == 0
    assert "No requests recorded." in console.file.getvalue()


def test_crawl_page_failure_is_fatal(console):
    tracker = FakeTracker(issues={"p1": make_issues(3)}, fail_paths={"/projects/p1/issues"})
    with pytest.raises(HttpStatusError):
        _run(tracker, RunOrchestrator.crawl_project_issues, console)


def test_crawl_all_projects(console):
    projects = [
        {"id": "p1", "key": "ONE", "name": "First"},
        {"id": "p2", "key": "TWO", "name": "Second"},
        {"id": "p3", "key": "TRE", "name": "Third"},
    ]
    tracker = FakeTracker(
        projects=projects,
        issues={"p1": make_issues(4, "ONE"), "p2": make_issues(7, "TWO")},
    )
    stats = _run(tracker, RunOrchestrator.crawl_all_projects_issues, console, per_page=2)

    assert stats.total_requests == 11
    assert stats.failed == 0
    assert [pid for pid, _ in tracker.listing_pages].count("p3") == 1
    out = console.file.getvalue()
    assert "Visible projects: 3" in out
    assert "Crawling issues for project TWO:Second" in out
