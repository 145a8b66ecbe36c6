import logging
import random
from collections.abc import Iterator
from contextlib import contextmanager
from functools import partial

from faker import Faker
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .client import TrackerClient, open_client
from .config import Config
from .crawler import PaginationCrawler
from .dispatcher import RequestDispatcher
from .errors import DecodeError
from .metrics import accumulate
from .models import OutcomeCallback, Project, ProjectSnapshot, RunStatistics, WorkOutcome
from .payload import synthesize_batch
from .rendering import (
    build_timeline,
    render_latency_histogram,
    render_summary,
    render_timeline,
)
from .utils import now, to_ms

logger = logging.getLogger(__name__)


class RunOrchestrator:
    def __init__(
        self,
        config: Config,
        console: Console | None = None,
        echo: bool = True,
        use_progress_bar: bool = False,
        show_histogram: bool = False,
        show_timeline: bool = False,
        histogram_bins: int = 20,
        timeline_width: int = 80,
        faker: Faker | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.console = console or Console()
        self.echo = echo
        self.use_progress_bar = use_progress_bar
        self.show_histogram = show_histogram
        self.show_timeline = show_timeline
        self.histogram_bins = histogram_bins
        self.timeline_width = timeline_width
        self.faker = faker
        self.rng = rng

        # Outcomes of the most recent workflow
        self.outcomes: list[WorkOutcome] = []

        logger.info(
            f"Initialized run against {config.base_url}, "
            f"concurrency={config.concurrency or 'unbounded'}, "
            f"max_retries={config.max_retries}"
        )

    # ────────────────────────────────
    # Plumbing
    # ────────────────────────────────

    def _client(self):
        return open_client(
            self.config.base_url, self.config.token, self.config.request_timeout_s
        )

    def _dispatcher(self, on_complete: OutcomeCallback | None) -> RequestDispatcher:
        return RequestDispatcher(
            concurrency=self.config.concurrency,
            retry=self.config.retry_policy(),
            on_complete=on_complete,
        )

    def _echo(self, outcome: WorkOutcome) -> None:
        if not self.echo or not outcome.ok:
            return
        issue = outcome.result
        self.console.print(
            f"{issue.key}: {issue.title} --> {to_ms(outcome.elapsed)} ms",
            markup=False,
            highlight=False,
        )

    @contextmanager
    def _tracking(self, description: str, total: int | None = None) -> Iterator[OutcomeCallback]:
        progress = None
        task_id = None
        if self.use_progress_bar:
            progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self.console,
            )
            progress.start()
            task_id = progress.add_task(f"[cyan]{description}", total=total)

        def on_complete(outcome: WorkOutcome) -> None:
            self._echo(outcome)
            if progress is not None and task_id is not None:
                progress.advance(task_id)

        try:
            yield on_complete
        finally:
            if progress is not None:
                progress.stop()

    async def _login(self, client: TrackerClient) -> None:
        user = await client.fetch_me()
        self.console.print(f"Logged in as: {user.username}", markup=False, highlight=False)

    def _print_project(self, project: Project) -> None:
        self.console.print(f"{project.key}: {project.name}", markup=False, highlight=False)

    # ────────────────────────────────
    # Metadata
    # ────────────────────────────────

    async def load_snapshot(self, client: TrackerClient, project_id: str) -> ProjectSnapshot:
        """Fetch everything a bulk-create needs; any failure aborts the run."""
        project = await client.fetch_project(project_id)
        self._print_project(project)
        if project.preferences is None:
            raise DecodeError(f"Project {project.key} has no preferences.")

        labels = await client.fetch_labels(project_id)
        statuses = await client.fetch_statuses(project_id)
        # The last status is the "done" column; never create issues there
        if statuses:
            statuses.pop()
        initiatives = await client.fetch_initiatives(project_id)
        epics = await client.fetch_epics(project_id)
        members = await client.fetch_members(project_id)

        logger.info(
            f"Project {project.key}: {len(labels)} labels, {len(statuses)} statuses, "
            f"{len(initiatives)} initiatives, {len(epics)} epics, {len(members)} members"
        )
        return ProjectSnapshot(
            project=project,
            preferences=project.preferences,
            labels=tuple(labels),
            statuses=tuple(statuses),
            initiatives=tuple(initiatives),
            epics=tuple(epics),
            members=tuple(members),
        )

    # ────────────────────────────────
    # Workflows
    # ────────────────────────────────

    async def create_issues(self) -> RunStatistics:
        timer = now()
        project_id = self.config.project_id

        async with self._client() as client:
            await self._login(client)
            snapshot = await self.load_snapshot(client, project_id)

            issue_type = self.config.issue_type or snapshot.preferences.issue_type
            payloads = synthesize_batch(
                snapshot, issue_type, self.config.issue_count, self.faker, self.rng
            )
            logger.info(f"Creating {len(payloads)} {issue_type} issues in {snapshot.project.key}")

            with self._tracking("Creating issues", total=len(payloads)) as on_complete:
                dispatcher = self._dispatcher(on_complete)
                outcomes = await dispatcher.dispatch_all(
                    partial(client.create_issue, project_id, payload) for payload in payloads
                )

        return self._finish(outcomes, dispatcher.window, now() - timer)

    async def _crawl_project(
        self, client: TrackerClient, crawler: PaginationCrawler, project_id: str
    ) -> list[WorkOutcome]:
        per_page = self.config.per_page
        return await crawler.crawl(
            lambda page: client.fetch_issues(project_id, page, per_page),
            lambda issue: client.fetch_issue(project_id, issue.id),
        )

    async def crawl_project_issues(self) -> RunStatistics:
        timer = now()
        project_id = self.config.project_id

        async with self._client() as client:
            await self._login(client)
            project = await client.fetch_project(project_id)
            self._print_project(project)

            crawl_timer = now()
            with self._tracking(f"Crawling {project.key}") as on_complete:
                crawler = PaginationCrawler(self._dispatcher(on_complete))
                outcomes = await self._crawl_project(client, crawler, project.id)
            window = now() - crawl_timer

        return self._finish(outcomes, window, now() - timer)

    async def crawl_all_projects_issues(self) -> RunStatistics:
        timer = now()
        per_page = self.config.per_page

        async with self._client() as client:
            await self._login(client)
            projects = await PaginationCrawler(self._dispatcher(None)).collect(
                lambda page: client.fetch_projects(page, per_page)
            )
            self.console.print(f"Visible projects: {len(projects)}")

            crawl_timer = now()
            outcomes: list[WorkOutcome] = []
            with self._tracking("Crawling all projects") as on_complete:
                crawler = PaginationCrawler(self._dispatcher(on_complete))
                for project in projects:
                    self.console.print(
                        f"Crawling issues for project {project.key}:{project.name}",
                        markup=False,
                        highlight=False,
                    )
                    outcomes.extend(await self._crawl_project(client, crawler, project.id))
            window = now() - crawl_timer

        return self._finish(outcomes, window, now() - timer)

    # ────────────────────────────────
    # Summary
    # ────────────────────────────────

    def _finish(
        self, outcomes: list[WorkOutcome], dispatch_window: float, run_duration: float
    ) -> RunStatistics:
        self.outcomes = outcomes
        stats = accumulate(outcomes, dispatch_window, run_duration)

        self.console.print()
        self.console.print(render_summary(stats))
        if self.show_histogram:
            self.console.print(
                render_latency_histogram([o.elapsed for o in outcomes], self.histogram_bins),
                markup=False,
                highlight=False,
            )
        if self.show_timeline:
            self.console.print(
                render_timeline(build_timeline(outcomes), self.timeline_width),
                markup=False,
                highlight=False,
            )

        logger.info(
            f"Run completed: {stats.succeeded} succeeded, {stats.failed} failed, "
            f"success_rate={stats.success_ratio}%"
        )
        return stats
