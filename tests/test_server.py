import logging

import pytest

from prreviewer.config import Config
from prreviewer.server import STORE_EXTENSION, build_app, main
from prreviewer.store import SqliteStore


@pytest.fixture
def app():
    application = build_app(Config(db_url=":memory:"))
    yield application
    application.extensions[STORE_EXTENSION].close()


def test_build_app_serves_health(app):
    resp = app.test_client().get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "OK"}


def test_build_app_keeps_store(app):
    store = app.extensions[STORE_EXTENSION]
    assert isinstance(store, SqliteStore)
    app.test_client().post(
        "/team/add",
        json={
            "team_name": "backend",
            "members": [{"user_id": "u1", "username": "Alice", "is_active": True}],
        },
    )
    assert store.get_user("u1").team_name == "backend"


def test_build_app_bad_database_path(tmp_path):
    with pytest.raises(ConnectionError):
        build_app(Config(db_url=str(tmp_path / "missing" / "db.sqlite3")))


def test_cors_header_on_request_with_origin(app):
    resp = app.test_client().get("/health", headers={"Origin": "http://localhost"})
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert "Origin" in resp.headers["Vary"]


def test_no_cors_header_without_origin(app):
    resp = app.test_client().get("/health")
    assert "Access-Control-Allow-Origin" not in resp.headers
    assert resp.status_code == 200


def test_preflight_allowed(app):
    resp = app.test_client().options(
        "/team/add",
        headers={
            "Origin": "http://localhost",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )
    assert resp.status_code == 204
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert resp.headers["Access-Control-Allow-Methods"] == "POST"
    assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type"


def test_preflight_disallowed_method(app):
    resp = app.test_client().options(
        "/team/add",
        headers={"Origin": "http://localhost", "Access-Control-Request-Method": "DELETE"},
    )
    assert resp.status_code == 204
    assert "Access-Control-Allow-Origin" not in resp.headers


def test_requests_are_logged(app, caplog):
    with caplog.at_level(logging.INFO, logger="prreviewer.server"):
        app.test_client().get("/health")
    messages = [record.getMessage() for record in caplog.records]
    assert any("/health" in message and " 200 " in message for message in messages)


def test_main_help_exits_cleanly(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])
    assert excinfo.value.code == 0
    assert "SERVER_PORT" in capsys.readouterr().out


def test_main_rejects_invalid_port(monkeypatch):
    monkeypatch.setenv("SERVER_PORT", "not-a-port")
    monkeypatch.setenv("DATABASE_URL", ":memory:")
    assert main([]) == 1


def test_main_rejects_unopenable_database(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", str(tmp_path / "missing" / "db.sqlite3"))
    assert main([]) == 1