import random

from issuestorm.models import Issue, IssueStatus, Label, ProjectMember, ProjectPreferences, User
from issuestorm.payload import HOURS, POINTS, synthesize_payload

INITIATIVES = [Issue(id="ini-1", key="PRJ-1", title="Initiative", type="initiative")]
EPICS = [Issue(id="epic-1", key="PRJ-2", title="Epic", type="epic")]
MEMBERS = [
    ProjectMember(id="m1", user=User(id="user-1", username="alice")),
    ProjectMember(id="m2", user=None),
]
LABELS = [Label(id="lbl-1"), Label(id="lbl-2")]
STATUSES = [IssueStatus(id="st-todo", name="To do"), IssueStatus(id="st-doing", name="Doing")]


def _many(issue_type, estimate_type="hours", n=300, **sets):
    rng = random.Random(42)
    prefs = ProjectPreferences(issue_type="task", estimate_type=estimate_type)
    return [synthesize_payload(issue_type, prefs, rng=rng, **sets) for _ in range(n)]


def _all_sets():
    return dict(
        initiatives=INITIATIVES, epics=EPICS, members=MEMBERS, labels=LABELS, statuses=STATUSES
    )


def test_initiative_has_no_linkage_or_status():
    for p in _many("initiative", **_all_sets()):
        assert p.initiative_id is None
        assert p.epic_id is None
        assert p.status is None


def test_epic_may_link_initiative_but_never_epic_or_status():
    payloads = _many("epic", **_all_sets())
    assert all(p.epic_id is None and p.status is None for p in payloads)
    linked = [p for p in payloads if p.initiative_id is not None]
    assert linked and len(linked) < len(payloads)
    assert {p.initiative_id for p in linked} == {"ini-1"}


def test_leaf_types_link_epics_and_always_get_a_status():
    for issue_type in ("task", "bug", "user_story", "test_case"):
        payloads = _many(issue_type, **_all_sets())
        assert all(p.initiative_id is None for p in payloads)
        assert all(p.status in {"st-todo", "st-doing"} for p in payloads)
        assert any(p.epic_id == "epic-1" for p in payloads)
        assert any(p.epic_id is None for p in payloads)


def test_empty_metadata_produces_bare_payloads():
    for p in _many("task"):
        assert p.initiative_id is None
        assert p.epic_id is None
        assert p.assignee_id is None
        assert p.status is None
        assert p.labels == []
        assert p.title
        assert p.description


def test_assignee_only_from_members_with_users():
    payloads = _many("task", members=MEMBERS)
    assert {p.assignee_id for p in payloads} == {None, "user-1"}


def test_labels_are_replaced_by_a_single_label():
    payloads = _many("task", labels=LABELS)
    assert all(p.labels == [] or len(p.labels) == 1 for p in payloads)
    assert {p.labels[0] for p in payloads if p.labels} <= {"lbl-1", "lbl-2"}


def test_estimate_comes_from_the_configured_domain():
    assert all(p.estimate in POINTS and p.estimate_type == "points" for p in _many("task", "points"))
    assert all(p.estimate in HOURS and p.estimate_type == "hours" for p in _many("task", "hours"))


def test_body_uses_camel_case_keys():
    body = _many("task", n=1, **_all_sets())[0].to_body()
    assert body["type"] == "task"
    for key in ("epicId", "initiativeId", "assigneeId", "estimateType", "labels", "status"):
        assert key in body
