"""Domain types and the errors the service raises."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class ServiceError(Exception):
    """Base class for the service's domain errors."""

    message = "service error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class TeamExistsError(ServiceError):
    message = "team already exists"


class PRExistsError(ServiceError):
    message = "PR already exists"


class PRMergedError(ServiceError):
    message = "cannot reassign on merged PR"


class NotAssignedError(ServiceError):
    message = "reviewer is not assigned to this PR"


class NoCandidateError(ServiceError):
    message = "no active replacement candidate in team"


class NotFoundError(ServiceError):
    message = "resource not found"


class Status(str, Enum):
    OPEN = "OPEN"
    MERGED = "MERGED"


def _format_time(moment: datetime) -> str:
    """Format a timestamp as RFC 3339 with trailing fractional zeros dropped."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    fraction = f"{moment.microsecond:06d}".rstrip("0")
    if fraction:
        text += "." + fraction
    offset = moment.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "+" if offset > timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass
class User:
    user_id: str
    username: str = ""
    team_name: str = ""
    is_active: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "team_name": self.team_name,
            "is_active": self.is_active,
        }


@dataclass
class Team:
    name: str
    members: list[User] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "team_name": self.name,
            "members": [member.to_dict() for member in self.members],
        }


@dataclass
class PullRequest:
    id: str
    name: str = ""
    author_id: str = ""
    status: Status = Status.OPEN
    assigned_reviewers: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    merged_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "pull_request_id": self.id,
            "pull_request_name": self.name,
            "author_id": self.author_id,
            "status": Status(self.status).value,
            "assigned_reviewers": list(self.assigned_reviewers),
            "created_at": _format_time(self.created_at or _ZERO_TIME),
        }
        if self.merged_at is not None:
            data["merged_at"] = _format_time(self.merged_at)
        return data