import logging
import random
from collections.abc import Sequence

from faker import Faker

from .models import (
    IssueCreationPayload,
    Issue,
    IssueStatus,
    Label,
    ProjectMember,
    ProjectPreferences,
    ProjectSnapshot,
)
from .sampler import get_random_item

logger = logging.getLogger(__name__)

fake = Faker()

ISSUE_TYPES = (
    "initiative",
    "epic",
    "user_story",
    "task",
    "issue",
    "feature",
    "bug",
    "test_case",
)

HOURS = tuple(range(1, 21))
POINTS = (1, 2, 3, 5, 8, 13, 21)

# Inclusion chances, in percent
MEMBER_CHANCE = 30
LABEL_CHANCE = 30
INITIATIVE_CHANCE = 20
EPIC_CHANCE = 20
STATUS_CHANCE = 100


def estimate_domain(estimate_type: str) -> tuple[int, ...]:
    return POINTS if estimate_type == "points" else HOURS


def synthesize_payload(
    issue_type: str,
    preferences: ProjectPreferences,
    initiatives: Sequence[Issue] = (),
    epics: Sequence[Issue] = (),
    members: Sequence[ProjectMember] = (),
    labels: Sequence[Label] = (),
    statuses: Sequence[IssueStatus] = (),
    faker: Faker | None = None,
    rng: random.Random | None = None,
) -> IssueCreationPayload:
    """Build one issue-creation body whose linkage is consistent with ``issue_type``."""
    faker = faker or fake

    member = get_random_item(members, MEMBER_CHANCE, rng)
    label = get_random_item(labels, LABEL_CHANCE, rng)

    initiative: Issue | None = None
    epic: Issue | None = None
    status: IssueStatus | None = None

    # Initiatives and epics take no status
    if issue_type == "initiative":
        pass
    elif issue_type == "epic":
        initiative = get_random_item(initiatives, INITIATIVE_CHANCE, rng)
    else:
        epic = get_random_item(epics, EPIC_CHANCE, rng)
        status = get_random_item(statuses, STATUS_CHANCE, rng)

    description = ", ".join(faker.catch_phrase() for _ in range(4))
    estimate = get_random_item(estimate_domain(preferences.estimate_type), 100, rng)

    payload = IssueCreationPayload(
        type=issue_type,
        title=faker.catch_phrase(),
        description=description,
        estimate_type=preferences.estimate_type,
        estimate=estimate,
    )

    if initiative is not None:
        payload.initiative_id = initiative.id
    if epic is not None:
        payload.epic_id = epic.id
    if member is not None and member.user is not None:
        payload.assignee_id = member.user.id
    if status is not None:
        payload.status = status.id
    if label is not None:
        payload.labels = [label.id]

    logger.debug(
        f"Synthesized {issue_type} payload: epic={payload.epic_id}, "
        f"initiative={payload.initiative_id}, status={payload.status}"
    )
    return payload


def synthesize_batch(
    snapshot: ProjectSnapshot,
    issue_type: str,
    count: int,
    faker: Faker | None = None,
    rng: random.Random | None = None,
) -> list[IssueCreationPayload]:
    return [
        synthesize_payload(
            issue_type,
            snapshot.preferences,
            initiatives=snapshot.initiatives,
            epics=snapshot.epics,
            members=snapshot.members,
            labels=snapshot.labels,
            statuses=snapshot.statuses,
            faker=faker,
            rng=rng,
        )
        for _ in range(count)
    ]
