"""Application wiring and the command that serves the API."""

from __future__ import annotations

import argparse
import logging
import threading
from dataclasses import dataclass
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

import redis
from flask import Flask

from bullscows.api import create_app
from bullscows.config import get_env, get_env_int
from bullscows.services import MatchesService
from bullscows.store import connect_redis, new_redis_storage

DEFAULT_ADDR = ":3000"
DEFAULT_GRACEFUL_TIMEOUT = 15.0
REQUEST_TIMEOUT_SECONDS = 15
DEFAULT_HTTP_PORT = 80


@dataclass
class ApplicationConfig:
    addr: str = DEFAULT_ADDR
    graceful_timeout: float = DEFAULT_GRACEFUL_TIMEOUT


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _RequestHandler(WSGIRequestHandler):
    timeout = REQUEST_TIMEOUT_SECONDS


def _parse_addr(addr: str) -> tuple[str, int]:
    if not addr:
        return "", DEFAULT_HTTP_PORT
    host, separator, port = addr.rpartition(":")
    if not separator:
        raise ValueError(f"address {addr}: missing port in address")
    host = host.strip("[]")
    return host, int(port) if port else 0


class Application:
    """Connects storage, builds the web application and serves it."""

    def __init__(self, config: ApplicationConfig) -> None:
        self.config = config
        self.logger = logging.getLogger("bullscows")

    def create_app(self) -> Flask:
        """Connect to the matches database and build the routed application."""
        try:
            client = connect_redis(
                get_env("DB_MATCHES", ""),
                get_env("DB_MATCHES_PWD", ""),
                get_env_int("DB_MATCHES_DB", 0),
            )
        except redis.RedisError:
            self.logger.error("error connecting to matchesdb")
            raise
        service = MatchesService(new_redis_storage(client))
        return create_app(service, [get_env("ALLOWED_HOST", "")])

    def run(self) -> None:
        """Serve until interrupted, then shut down within the graceful timeout."""
        app = self.create_app()
        host, port = _parse_addr(self.config.addr)
        server = make_server(
            host, port, app, server_class=_ThreadingWSGIServer, handler_class=_RequestHandler
        )
        serving = threading.Thread(target=server.serve_forever, daemon=True)
        serving.start()
        self.logger.info("Listening on %s", self.config.addr)
        try:
            while serving.is_alive():
                serving.join(0.5)
        except KeyboardInterrupt:
            pass
        stopping = threading.Thread(target=server.shutdown, daemon=True)
        stopping.start()
        stopping.join(self.config.graceful_timeout)
        server.server_close()


def main(argv: list[str] | None = None) -> int:
    """Serve the API on API_ADDR until interrupted."""
    argparse.ArgumentParser(
        prog="bullscows", description="Serve the bulls and cows match API."
    ).parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    config = ApplicationConfig(
        addr=get_env("API_ADDR", DEFAULT_ADDR),
        graceful_timeout=DEFAULT_GRACEFUL_TIMEOUT,
    )
    try:
        Application(config).run()
    except (redis.RedisError, OSError, ValueError) as error:
        logging.getLogger("bullscows").error("%s", error)
        return 1
    return 0