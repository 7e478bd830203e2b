"""Server entry point: wires storage, service and routes and serves HTTP."""

from __future__ import annotations

import argparse
import logging
import signal
import threading
import time
from collections.abc import Sequence
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from flask import Flask, Response, g, request

from prreviewer.config import Config, load
from prreviewer.handler import create_app
from prreviewer.service import Service
from prreviewer.store import SqliteStore

STORE_EXTENSION = "prreviewer.store"
READ_TIMEOUT = 5.0
SHUTDOWN_TIMEOUT = 5.0

_CORS_METHODS = ("GET", "POST", "HEAD")
_CORS_HEADERS = ("accept", "content-type", "x-requested-with")

logger = logging.getLogger("prreviewer.server")


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _RequestHandler(WSGIRequestHandler):
    timeout = READ_TIMEOUT

    def log_message(self, format: str, *args: object) -> None:
        """Request logging is done by the application itself."""


def _install_logging(app: Flask) -> None:
    @app.before_request
    def _start_timer() -> None:
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response: Response) -> Response:
        started = g.get("request_started", time.perf_counter())
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            '"%s %s %s" from %s - %d %dB in %.3fms',
            request.method,
            request.url,
            request.environ.get("SERVER_PROTOCOL", "HTTP/1.1"),
            request.remote_addr,
            response.status_code,
            response.calculate_content_length() or 0,
            elapsed_ms,
        )
        return response


def _install_cors(app: Flask) -> None:
    @app.before_request
    def _preflight() -> Response | None:
        requested_method = request.headers.get("Access-Control-Request-Method")
        if request.method != "OPTIONS" or not requested_method:
            return None
        response = Response(status=204)
        response.vary.update(
            ["Origin", "Access-Control-Request-Method", "Access-Control-Request-Headers"]
        )
        if not request.headers.get("Origin"):
            return response
        method = requested_method.upper()
        if method not in _CORS_METHODS:
            return response
        raw_headers = request.headers.get("Access-Control-Request-Headers", "")
        wanted = [h.strip() for h in raw_headers.split(",") if h.strip()]
        if any(h.lower() not in _CORS_HEADERS for h in wanted):
            return response
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = method
        if wanted:
            response.headers["Access-Control-Allow-Headers"] = ", ".join(wanted)
        return response

    @app.after_request
    def _actual_request(response: Response) -> Response:
        if request.method == "OPTIONS" and request.headers.get("Access-Control-Request-Method"):
            return response
        response.vary.add("Origin")
        if request.headers.get("Origin") and request.method in _CORS_METHODS:
            response.headers["Access-Control-Allow-Origin"] = "*"
        return response


def build_app(config: Config) -> Flask:
    """Open the store named by ``config`` and return the fully wired application.

    The store is kept in ``app.extensions[STORE_EXTENSION]`` so that it can be closed.
    """
    store = SqliteStore(config.db_url)
    app = create_app(Service(store))
    app.extensions[STORE_EXTENSION] = store
    _install_logging(app)
    _install_cors(app)
    return app


def main(argv: Sequence[str] | None = None) -> int:
    """Run the HTTP server until SIGINT or SIGTERM arrives."""
    parser = argparse.ArgumentParser(
        prog="prreviewer",
        description="Serve the pull request reviewer assignment API. "
        "Configured by SERVER_PORT and DATABASE_URL.",
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    config = load()
    try:
        app = build_app(config)
    except (ConnectionError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    store: SqliteStore = app.extensions[STORE_EXTENSION]

    try:
        server = make_server(
            "",
            int(config.server_port),
            app,
            server_class=_ThreadingWSGIServer,
            handler_class=_RequestHandler,
        )
    except (OSError, ValueError, OverflowError) as exc:
        logger.error("listen: %s", exc)
        store.close()
        return 1

    stop = threading.Event()

    def _request_stop(_signum: int, _frame: object) -> None:
        stop.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    serving = threading.Thread(target=server.serve_forever, daemon=True)
    serving.start()
    logger.info("Server started on port %s", config.server_port)

    while not stop.wait(0.5):
        pass

    logger.info("Shutting down server...")
    server.shutdown()
    serving.join(SHUTDOWN_TIMEOUT)
    server.server_close()
    store.close()
    logger.info("Server exited")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())