"""HTTP routes of the reviewer-assignment API."""

from __future__ import annotations

import json
from typing import Any

from flask import Flask, Response, jsonify, request

from prreviewer.model import (
    NoCandidateError,
    NotAssignedError,
    NotFoundError,
    PRExistsError,
    PRMergedError,
    TeamExistsError,
    User,
)
from prreviewer.service import Service


class _InvalidJSON(Exception):
    """The request body could not be decoded into the expected shape."""


def _error(code: str, message: str, status: int) -> Response:
    response = jsonify({"error": {"code": code, "message": message}})
    response.status_code = status
    return response


def _internal_error() -> Response:
    return _error("INTERNAL_ERROR", "internal server error", 500)


def _respond(payload: Any, status: int = 200) -> Response:
    response = jsonify(payload)
    response.status_code = status
    return response


def _body() -> dict[str, Any]:
    try:
        data = json.loads(request.get_data())
    except ValueError as exc:
        raise _InvalidJSON() from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise _InvalidJSON()
    return data


def _string(body: dict[str, Any], key: str) -> str:
    value = body.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _InvalidJSON()
    return value


def _flag(body: dict[str, Any], key: str) -> bool:
    value = body.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise _InvalidJSON()
    return value


def _strings(body: dict[str, Any], key: str) -> list[str]:
    value = body.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise _InvalidJSON()
    result = []
    for item in value:
        if item is None:
            result.append("")
        elif isinstance(item, str):
            result.append(item)
        else:
            raise _InvalidJSON()
    return result


def _members(body: dict[str, Any]) -> list[User]:
    value = body.get("members")
    if value is None:
        return []
    if not isinstance(value, list):
        raise _InvalidJSON()
    members = []
    for item in value:
        if item is None:
            members.append(User(user_id=""))
        elif isinstance(item, dict):
            members.append(
                User(
                    user_id=_string(item, "user_id"),
                    username=_string(item, "username"),
                    team_name=_string(item, "team_name"),
                    is_active=_flag(item, "is_active"),
                )
            )
        else:
            raise _InvalidJSON()
    return members


def create_app(service: Service) -> Flask:
    """Build the Flask application exposing ``service`` over HTTP."""
    app = Flask(__name__)

    @app.errorhandler(_InvalidJSON)
    def _invalid_json(_exc: _InvalidJSON) -> Response:
        return _error("BAD_REQUEST", "invalid json", 400)

    @app.post("/team/add")
    def create_team() -> Response:
        body = _body()
        team_name = _string(body, "team_name")
        members = _members(body)
        try:
            service.create_team(team_name, members)
        except TeamExistsError:
            return _error("TEAM_EXISTS", "team_name already exists", 400)
        except Exception:
            return _internal_error()
        return _respond(
            {
                "team": {
                    "team_name": team_name,
                    "members": [member.to_dict() for member in members],
                }
            },
            201,
        )

    @app.get("/team/get")
    def get_team() -> Response:
        team_name = request.args.get("team_name", "")
        if not team_name:
            return _error("BAD_REQUEST", "team_name query param required", 400)
        try:
            team = service.get_team(team_name)
        except NotFoundError:
            return _error("NOT_FOUND", "team not found", 404)
        except Exception:
            return _internal_error()
        return _respond({"team": team.to_dict()})

    @app.post("/users/setIsActive")
    def set_active() -> Response:
        body = _body()
        user_id = _string(body, "user_id")
        is_active = _flag(body, "is_active")
        try:
            service.set_active(user_id, is_active)
        except NotFoundError:
            return _error("NOT_FOUND", "user not found", 404)
        except Exception:
            return _internal_error()
        try:
            user = service.get_user(user_id)
        except Exception:
            return _error("INTERNAL_ERROR", "failed to get user", 500)
        return _respond({"user": user.to_dict()})

    @app.post("/users/massDeactivate")
    def mass_deactivate() -> Response:
        body = _body()
        team_name = _string(body, "team_name")
        user_ids = _strings(body, "user_ids")
        try:
            service.mass_deactivate(team_name, user_ids)
        except Exception:
            return _internal_error()
        return _respond(
            {
                "message": "users deactivated successfully",
                "deactivated_count": len(user_ids),
            }
        )

    @app.post("/pullRequest/create")
    def create_pr() -> Response:
        body = _body()
        try:
            pr = service.create_pr(
                _string(body, "pull_request_id"),
                _string(body, "pull_request_name"),
                _string(body, "author_id"),
            )
        except PRExistsError:
            return _error("PR_EXISTS", "PR id already exists", 409)
        except NotFoundError:
            return _error("NOT_FOUND", "author/team not found", 404)
        except Exception:
            return _internal_error()
        return _respond({"pr": pr.to_dict()}, 201)

    @app.post("/pullRequest/merge")
    def merge_pr() -> Response:
        body = _body()
        try:
            pr = service.merge_pr(_string(body, "pull_request_id"))
        except NotFoundError:
            return _error("NOT_FOUND", "PR not found", 404)
        except Exception:
            return _internal_error()
        return _respond({"pr": pr.to_dict()})

    @app.post("/pullRequest/reassign")
    def reassign() -> Response:
        body = _body()
        try:
            new_id, pr = service.reassign_reviewer(
                _string(body, "pull_request_id"),
                _string(body, "old_reviewer_id"),
            )
        except NotFoundError:
            return _error("NOT_FOUND", "PR or user not found", 404)
        except PRMergedError:
            return _error("PR_MERGED", "cannot reassign on merged PR", 409)
        except NotAssignedError:
            return _error("NOT_ASSIGNED", "reviewer is not assigned to this PR", 409)
        except NoCandidateError:
            return _error("NO_CANDIDATE", "no active replacement candidate in team", 409)
        except Exception:
            return _internal_error()
        return _respond({"pr": pr.to_dict(), "replaced_by": new_id})

    @app.get("/users/getReview")
    def get_user_reviews() -> Response:
        user_id = request.args.get("user_id", "")
        if not user_id:
            return _error("BAD_REQUEST", "user_id query param required", 400)
        try:
            prs = service.get_user_reviews(user_id)
        except NotFoundError:
            return _error("NOT_FOUND", "user not found", 404)
        except Exception:
            return _internal_error()
        # An empty result is reported as null rather than an empty list.
        pull_requests = [pr.to_dict() for pr in prs] or None
        return _respond({"user_id": user_id, "pull_requests": pull_requests})

    @app.get("/stats/reviewers")
    def get_stats() -> Response:
        try:
            stats = service.get_stats()
        except Exception:
            return _internal_error()
        return _respond({"stats": stats})

    @app.get("/health")
    def health() -> Response:
        return _respond({"status": "OK"})

    return app