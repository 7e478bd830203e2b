"""Runtime configuration read from environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_SERVER_PORT = "8080"
DEFAULT_DB_URL = "prdb.sqlite3"

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class Config:
    """Settings the server needs to start."""

    server_port: str = DEFAULT_SERVER_PORT
    db_url: str = DEFAULT_DB_URL


def _environ(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def get_env(key: str, default: str, environ: Mapping[str, str] | None = None) -> str:
    """Return the variable's value, or ``default`` when it is unset or empty."""
    value = _environ(environ).get(key, "")
    return value if value else default


def get_env_int(key: str, default: int, environ: Mapping[str, str] | None = None) -> int:
    """Return the variable as an integer, or ``default`` when unset, empty or not a number."""
    value = _environ(environ).get(key, "")
    if value and _INT_PATTERN.fullmatch(value):
        return int(value)
    return default


def load(environ: Mapping[str, str] | None = None) -> Config:
    """Build a :class:`Config` from ``SERVER_PORT`` and ``DATABASE_URL``."""
    return Config(
        server_port=get_env("SERVER_PORT", DEFAULT_SERVER_PORT, environ),
        db_url=get_env("DATABASE_URL", DEFAULT_DB_URL, environ),
    )