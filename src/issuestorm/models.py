from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")
ItemT = TypeVar("ItemT")


# ────────────────────────────────
# Wire entities
# ────────────────────────────────


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python, unknown fields ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class User(WireModel):
    id: str
    username: str
    email: Optional[str] = None
    status: Optional[str] = None


class ProjectPreferences(WireModel):
    issue_type: str = "task"
    estimate_type: str = "hours"


class Project(WireModel):
    id: str
    key: str
    name: str
    preferences: Optional[ProjectPreferences] = None


class Label(WireModel):
    id: str
    name: Optional[str] = None


class IssueStatus(WireModel):
    id: str
    name: str


class Issue(WireModel):
    id: str
    key: str
    title: str
    type: str = "task"
    project_id: Optional[str] = None
    initiative_id: Optional[str] = None
    epic_id: Optional[str] = None
    parent_id: Optional[str] = None
    description: Optional[str] = None
    estimate: Optional[int] = None
    estimate_type: Optional[str] = None
    labels: Optional[list[str]] = None


class ProjectMember(WireModel):
    id: str
    user: Optional[User] = None


class PageMeta(WireModel):
    page: int = 1
    per_page: int = 0
    total_records: int = 0
    total_pages: int = 0


class Page(WireModel, Generic[ItemT]):
    meta: PageMeta = Field(default_factory=PageMeta)
    data: list[ItemT] = Field(default_factory=list)


class IssueCreationPayload(WireModel):
    type: str
    initiative_id: Optional[str] = None
    epic_id: Optional[str] = None
    parent_id: Optional[str] = None
    assignee_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    estimate_type: Optional[str] = None
    estimate: Optional[int] = None
    status: Optional[str] = None
    labels: list[str] = Field(default_factory=list)

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ────────────────────────────────
# Run records
# ────────────────────────────────


@dataclass(frozen=True)
class WorkOutcome(Generic[T]):
    elapsed: float
    result: T | None = None
    error: BaseException | None = None
    worker: int = 0
    started: float = 0.0
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.result is not None


@dataclass
class RunStatistics:
    total_requests: int
    succeeded: int
    failed: int
    min_latency: float | None
    max_latency: float | None
    sum_latency: float
    run_duration: float
    dispatch_window: float
    std: float | None = None
    p50: float | None = None
    p90: float | None = None
    p95: float | None = None
    p99: float | None = None

    @property
    def has_data(self) -> bool:
        return self.total_requests > 0

    @property
    def avg_latency(self) -> float | None:
        if not self.has_data:
            return None
        return self.sum_latency / self.total_requests

    @property
    def success_ratio(self) -> float | None:
        if not self.has_data:
            return None
        return round(self.succeeded / self.total_requests * 100, 2)

    @property
    def throughput(self) -> float | None:
        if not self.has_data or self.dispatch_window <= 0:
            return None
        return round(self.total_requests / self.dispatch_window, 2)


@dataclass(frozen=True)
class ProjectSnapshot:
    """Read-only project metadata shared by every unit of a run."""

    project: Project
    preferences: ProjectPreferences
    labels: tuple[Label, ...] = ()
    statuses: tuple[IssueStatus, ...] = ()
    initiatives: tuple[Issue, ...] = ()
    epics: tuple[Issue, ...] = ()
    members: tuple[ProjectMember, ...] = ()


# Timeline: worker_id -> list of (start, end, ok)
TimelineType = dict[int, list[tuple[float, float, bool]]]

# A unit of work: zero-argument callable producing an awaitable
UnitOfWork = Callable[[], Awaitable[Any]]

# Called once per completed unit
OutcomeCallback = Callable[[WorkOutcome], None]

