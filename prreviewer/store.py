"""Persistence for teams, users and pull requests backed by SQLite."""

from __future__ import annotations

import json
import sqlite3
import threading
from collections import Counter
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from prreviewer.model import (
    NotFoundError,
    PRExistsError,
    PullRequest,
    Status,
    Team,
    User,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS teams (
    name TEXT PRIMARY KEY
);
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    team_name TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS pull_requests (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    author_id TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'OPEN',
    assigned_reviewers TEXT NOT NULL DEFAULT '[]',
    created_at TEXT,
    merged_at TEXT
);
"""


@dataclass
class OpenPullRequest:
    """An open pull request together with its reviewers."""

    id: str
    assigned_reviewers: list[str] = field(default_factory=list)


class Repository(Protocol):
    """Storage operations the service relies on."""

    def create_team(self, name: str) -> None: ...

    def get_team(self, name: str) -> Team: ...

    def create_user(self, user_id: str, username: str, team_name: str, is_active: bool) -> None: ...

    def get_user(self, user_id: str) -> User: ...

    def get_active_users_in_team_excluding(self, team_name: str, exclude_user_id: str) -> list[str]: ...

    def create_pr(self, pr_id: str, name: str, author_id: str, reviewers: Sequence[str]) -> None: ...

    def get_pr(self, pr_id: str) -> PullRequest: ...

    def merge_pr(self, pr_id: str) -> None: ...

    def update_pr_reviewers(self, pr_id: str, reviewers: Sequence[str]) -> None: ...

    def get_prs_by_reviewer(self, reviewer_id: str) -> list[PullRequest]: ...

    def get_pr_count_by_reviewer(self) -> dict[str, int]: ...

    def deactivate_users(self, user_ids: Sequence[str]) -> None: ...

    def get_open_prs_by_reviewers(self, reviewer_ids: Sequence[str]) -> list[OpenPullRequest]: ...

    def set_user_active(self, user_id: str, is_active: bool) -> None: ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _dump_reviewers(reviewers: Iterable[str]) -> str:
    return json.dumps(list(reviewers))


def _load_reviewers(value: str | None) -> list[str]:
    return list(json.loads(value)) if value else []


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        user_id=row["id"],
        username=row["username"],
        team_name=row["team_name"],
        is_active=bool(row["is_active"]),
    )


class SqliteStore:
    """A :class:`Repository` that keeps its data in an SQLite database."""

    def __init__(self, path: str = ":memory:") -> None:
        try:
            self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        except sqlite3.Error as exc:
            raise ConnectionError(f"failed to connect to db: {exc}") from exc
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._conn.executescript(_SCHEMA)

    def __enter__(self) -> SqliteStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            yield self._conn

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    def create_team(self, name: str) -> None:
        with self._cursor() as db:
            db.execute("INSERT INTO teams (name) VALUES (?) ON CONFLICT (name) DO NOTHING", (name,))

    def get_team(self, name: str) -> Team:
        with self._cursor() as db:
            if db.execute("SELECT name FROM teams WHERE name = ?", (name,)).fetchone() is None:
                raise NotFoundError(f"team {name!r} not found")
            rows = db.execute(
                "SELECT id, username, team_name, is_active FROM users "
                "WHERE team_name = ? ORDER BY rowid",
                (name,),
            ).fetchall()
        return Team(name=name, members=[_row_to_user(row) for row in rows])

    def create_user(self, user_id: str, username: str, team_name: str, is_active: bool) -> None:
        with self._cursor() as db:
            db.execute(
                "INSERT INTO users (id, username, team_name, is_active) VALUES (?, ?, ?, ?) "
                "ON CONFLICT (id) DO UPDATE SET "
                "username = excluded.username, "
                "team_name = excluded.team_name, "
                "is_active = excluded.is_active",
                (user_id, username, team_name, int(is_active)),
            )

    def get_user(self, user_id: str) -> User:
        with self._cursor() as db:
            row = db.execute(
                "SELECT id, username, team_name, is_active FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError(f"user {user_id!r} not found")
        return _row_to_user(row)

    def get_active_users_in_team_excluding(self, team_name: str, exclude_user_id: str) -> list[str]:
        with self._cursor() as db:
            rows = db.execute(
                "SELECT id FROM users WHERE team_name = ? AND is_active = 1 AND id != ? "
                "ORDER BY rowid",
                (team_name, exclude_user_id),
            ).fetchall()
        return [row["id"] for row in rows]

    def create_pr(self, pr_id: str, name: str, author_id: str, reviewers: Sequence[str]) -> None:
        with self._cursor() as db:
            try:
                db.execute(
                    "INSERT INTO pull_requests "
                    "(id, name, author_id, status, assigned_reviewers, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (pr_id, name, author_id, Status.OPEN.value, _dump_reviewers(reviewers), _now()),
                )
            except sqlite3.IntegrityError as exc:
                raise PRExistsError(f"PR {pr_id!r} already exists") from exc

    def get_pr(self, pr_id: str) -> PullRequest:
        with self._cursor() as db:
            row = db.execute(
                "SELECT id, name, author_id, status, assigned_reviewers, created_at, merged_at "
                "FROM pull_requests WHERE id = ?",
                (pr_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError(f"PR {pr_id!r} not found")
        return PullRequest(
            id=row["id"],
            name=row["name"],
            author_id=row["author_id"],
            status=Status(row["status"]),
            assigned_reviewers=_load_reviewers(row["assigned_reviewers"]),
            created_at=_parse_time(row["created_at"]),
            merged_at=_parse_time(row["merged_at"]),
        )

    def merge_pr(self, pr_id: str) -> None:
        with self._cursor() as db:
            db.execute(
                "UPDATE pull_requests SET status = ?, merged_at = ? WHERE id = ? AND status = ?",
                (Status.MERGED.value, _now(), pr_id, Status.OPEN.value),
            )

    def update_pr_reviewers(self, pr_id: str, reviewers: Sequence[str]) -> None:
        with self._cursor() as db:
            db.execute(
                "UPDATE pull_requests SET assigned_reviewers = ? WHERE id = ?",
                (_dump_reviewers(reviewers), pr_id),
            )

    def get_prs_by_reviewer(self, reviewer_id: str) -> list[PullRequest]:
        with self._cursor() as db:
            rows = db.execute(
                "SELECT id, name, author_id, status, assigned_reviewers "
                "FROM pull_requests ORDER BY rowid"
            ).fetchall()
        return [
            PullRequest(
                id=row["id"],
                name=row["name"],
                author_id=row["author_id"],
                status=Status(row["status"]),
            )
            for row in rows
            if reviewer_id in _load_reviewers(row["assigned_reviewers"])
        ]

    def get_pr_count_by_reviewer(self) -> dict[str, int]:
        with self._cursor() as db:
            rows = db.execute(
                "SELECT assigned_reviewers FROM pull_requests WHERE status = ?",
                (Status.OPEN.value,),
            ).fetchall()
        counts: Counter[str] = Counter()
        for row in rows:
            counts.update(_load_reviewers(row["assigned_reviewers"]))
        return dict(counts)

    def deactivate_users(self, user_ids: Sequence[str]) -> None:
        ids = list(user_ids)
        if not ids:
            return
        placeholders = ", ".join("?" for _ in ids)
        with self._cursor() as db:
            db.execute(f"UPDATE users SET is_active = 0 WHERE id IN ({placeholders})", ids)

    def get_open_prs_by_reviewers(self, reviewer_ids: Sequence[str]) -> list[OpenPullRequest]:
        wanted = set(reviewer_ids)
        with self._cursor() as db:
            rows = db.execute(
                "SELECT id, assigned_reviewers FROM pull_requests WHERE status = ? ORDER BY rowid",
                (Status.OPEN.value,),
            ).fetchall()
        result = []
        for row in rows:
            reviewers = _load_reviewers(row["assigned_reviewers"])
            if wanted.intersection(reviewers):
                result.append(OpenPullRequest(id=row["id"], assigned_reviewers=reviewers))
        return result

    def set_user_active(self, user_id: str, is_active: bool) -> None:
        with self._cursor() as db:
            db.execute("UPDATE users SET is_active = ? WHERE id = ?", (int(is_active), user_id))