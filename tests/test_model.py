from datetime import datetime, timezone

import pytest

from prreviewer.model import (
    NoCandidateError,
    NotAssignedError,
    NotFoundError,
    PRExistsError,
    PRMergedError,
    PullRequest,
    ServiceError,
    Status,
    Team,
    TeamExistsError,
    User,
)


@pytest.mark.parametrize(
    "error_cls, text",
    [
        (TeamExistsError, "team already exists"),
        (PRExistsError, "PR already exists"),
        (PRMergedError, "cannot reassign on merged PR"),
        (NotAssignedError, "reviewer is not assigned to this PR"),
        (NoCandidateError, "no active replacement candidate in team"),
        (NotFoundError, "resource not found"),
    ],
)
def test_error_messages(error_cls, text):
    error = error_cls()
    assert str(error) == text
    assert isinstance(error, ServiceError)
    assert issubclass(error_cls, Exception)


def test_status_values():
    assert Status("OPEN") is Status.OPEN
    assert Status("MERGED") is Status.MERGED
    assert Status.MERGED == "MERGED"


def test_user_to_dict():
    user = User(user_id="u1", username="Alice", team_name="backend", is_active=True)
    assert user.to_dict() == {
        "user_id": "u1",
        "username": "Alice",
        "team_name": "backend",
        "is_active": True,
    }


def test_team_to_dict_nests_members():
    members = [User("u1", "Alice", "backend", True), User("u2", "Bob", "backend", False)]
    data = Team(name="backend", members=members).to_dict()
    assert data["team_name"] == "backend"
    assert data["members"] == [m.to_dict() for m in members]


def test_pull_request_open_omits_merged_at():
    created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    pr = PullRequest(
        id="pr1",
        name="feat: add X",
        author_id="u1",
        assigned_reviewers=["u2", "u3"],
        created_at=created,
    )
    data = pr.to_dict()
    assert "merged_at" not in data
    assert data["pull_request_id"] == "pr1"
    assert data["pull_request_name"] == "feat: add X"
    assert data["author_id"] == "u1"
    assert data["status"] == "OPEN"
    assert data["assigned_reviewers"] == ["u2", "u3"]
    assert data["created_at"] == "2024-01-02T03:04:05Z"


def test_pull_request_merged_includes_merged_at_round_trip():
    created = datetime(2024, 5, 6, 7, 8, 9, 123000, tzinfo=timezone.utc)
    merged = datetime(2024, 5, 7, 1, 2, 3, tzinfo=timezone.utc)
    data = PullRequest(
        id="pr2", status=Status.MERGED, created_at=created, merged_at=merged
    ).to_dict()
    assert data["status"] == "MERGED"
    for key, original in (("created_at", created), ("merged_at", merged)):
        text = data[key]
        assert text.endswith("Z")
        assert datetime.fromisoformat(text[:-1] + "+00:00") == original


def test_fraction_trailing_zeros_trimmed():
    created = datetime(2024, 1, 2, 3, 4, 5, 500000, tzinfo=timezone.utc)
    assert PullRequest(id="p", created_at=created).to_dict()["created_at"].endswith(":05.5Z")


def test_missing_created_at_is_zero_time():
    assert PullRequest(id="p").to_dict()["created_at"] == "0001-01-01T00:00:00Z"


def test_default_reviewers_are_independent():
    first = PullRequest(id="a")
    second = PullRequest(id="b")
    first.assigned_reviewers.append("u1")
    assert second.to_dict()["assigned_reviewers"] == []
    assert first.to_dict()["assigned_reviewers"] == ["u1"]