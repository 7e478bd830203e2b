"""Business rules for teams, users and reviewer assignment."""

from __future__ import annotations

import random
from collections.abc import Iterable, MutableSequence, Sequence

from prreviewer.model import (
    NoCandidateError,
    NotAssignedError,
    NotFoundError,
    PRExistsError,
    PRMergedError,
    PullRequest,
    Status,
    Team,
    TeamExistsError,
    User,
)
from prreviewer.store import Repository

MAX_REVIEWERS = 2


def shuffle(items: MutableSequence[str], rng: random.Random | None = None) -> None:
    """Shuffle ``items`` in place, using ``rng`` when one is given."""
    (rng or random).shuffle(items)


class Service:
    """Operations on teams, users and pull requests over a :class:`Repository`."""

    def __init__(self, store: Repository, rng: random.Random | None = None) -> None:
        self._store = store
        self._rng = rng

    def get_user(self, user_id: str) -> User:
        return self._store.get_user(user_id)

    def create_team(self, name: str, members: Iterable[User]) -> None:
        """Create a team and add or update each of its members."""
        try:
            self._store.create_team(name)
        except Exception as exc:
            raise TeamExistsError() from exc
        for member in members:
            self._store.create_user(member.user_id, member.username, name, member.is_active)

    def get_team(self, name: str) -> Team:
        return self._store.get_team(name)

    def set_active(self, user_id: str, is_active: bool) -> None:
        try:
            self._store.get_user(user_id)
        except Exception as exc:
            raise NotFoundError() from exc
        self._store.set_user_active(user_id, is_active)

    def create_pr(self, pr_id: str, name: str, author_id: str) -> PullRequest:
        """Open a pull request and assign up to two active teammates of the author."""
        try:
            author = self._store.get_user(author_id)
        except Exception as exc:
            raise NotFoundError() from exc
        try:
            reviewers = list(
                self._store.get_active_users_in_team_excluding(author.team_name, author_id)
            )
        except Exception as exc:
            raise NotFoundError() from exc

        if len(reviewers) > MAX_REVIEWERS:
            shuffle(reviewers, self._rng)
            reviewers = reviewers[:MAX_REVIEWERS]

        try:
            self._store.create_pr(pr_id, name, author_id, reviewers)
        except Exception as exc:
            raise PRExistsError() from exc
        return self._store.get_pr(pr_id)

    def merge_pr(self, pr_id: str) -> PullRequest:
        """Mark a pull request merged; merging it again changes nothing."""
        try:
            pr = self._store.get_pr(pr_id)
        except Exception as exc:
            raise NotFoundError() from exc
        if pr.status == Status.MERGED:
            return pr
        self._store.merge_pr(pr_id)
        return self._store.get_pr(pr_id)

    def reassign_reviewer(self, pr_id: str, old_user_id: str) -> tuple[str, PullRequest]:
        """Replace a reviewer with another active member of that reviewer's team.

        Returns the new reviewer's id and the updated pull request.
        """
        try:
            pr = self._store.get_pr(pr_id)
        except Exception as exc:
            raise NotFoundError() from exc
        if pr.status == Status.MERGED:
            raise PRMergedError()
        if old_user_id not in pr.assigned_reviewers:
            raise NotAssignedError()

        try:
            old_user = self._store.get_user(old_user_id)
        except Exception as exc:
            raise NotFoundError() from exc

        candidates = self._store.get_active_users_in_team_excluding(old_user.team_name, old_user_id)
        assigned = set(pr.assigned_reviewers)
        available = [c for c in candidates if c not in assigned and c != old_user_id]
        if not available:
            raise NoCandidateError()

        if len(available) > 1:
            shuffle(available, self._rng)
        new_user_id = available[0]

        new_reviewers = [
            new_user_id if reviewer == old_user_id else reviewer
            for reviewer in pr.assigned_reviewers
        ]
        self._store.update_pr_reviewers(pr_id, new_reviewers)
        pr.assigned_reviewers = new_reviewers
        return new_user_id, pr

    def get_user_reviews(self, user_id: str) -> list[PullRequest]:
        try:
            self._store.get_user(user_id)
        except Exception as exc:
            raise NotFoundError() from exc
        return self._store.get_prs_by_reviewer(user_id)

    def get_stats(self) -> dict[str, int]:
        """Count open pull requests per assigned reviewer."""
        return self._store.get_pr_count_by_reviewer()

    def mass_deactivate(self, team_name: str, user_ids: Sequence[str]) -> None:
        self._store.deactivate_users(user_ids)