"""HTTP server exposing the user and post services over a Connect-style JSON protocol."""

from __future__ import annotations

import argparse
import json
import logging
import threading
from dataclasses import dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlsplit

from .apperr import Code
from .handlers import (
    ConnectError,
    CreatePostRequest,
    CreateUserRequest,
    GetPostRequest,
    GetUserRequest,
    PostHandler,
    UserHandler,
)

DEFAULT_PORT = ":9090"
JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

_log = logging.getLogger(__name__)

_HTTP_STATUS = {
    Code.CANCELED: 499,
    Code.INVALID_ARGUMENT: 400,
    Code.DEADLINE_EXCEEDED: 504,
    Code.NOT_FOUND: 404,
    Code.ALREADY_EXISTS: 409,
    Code.PERMISSION_DENIED: 403,
    Code.RESOURCE_EXHAUSTED: 429,
    Code.FAILED_PRECONDITION: 400,
    Code.ABORTED: 409,
    Code.OUT_OF_RANGE: 400,
    Code.UNIMPLEMENTED: 501,
    Code.UNAVAILABLE: 503,
    Code.UNAUTHENTICATED: 401,
}


@dataclass(frozen=True)
class Reply:
    """An HTTP response: status, body and content type."""

    status: int
    body: bytes
    content_type: str = JSON_CONTENT_TYPE


def _not_found() -> Reply:
    return Reply(HTTPStatus.NOT_FOUND, b"404 page not found\n", TEXT_CONTENT_TYPE)


def _error_reply(err: ConnectError) -> Reply:
    return Reply(_HTTP_STATUS.get(err.code, 500), json.dumps(err.to_dict()).encode())


class ConnectServer:
    """Serves the user and post services on one address."""

    def __init__(self, user_handler: UserHandler, post_handler: PostHandler, port: str = DEFAULT_PORT) -> None:
        self.port = port
        self._routes = {
            "/api.v1.UserService/GetUser": (GetUserRequest.from_dict, user_handler.get_user),
            "/api.v1.UserService/CreateUser": (CreateUserRequest.from_dict, user_handler.create_user),
            "/api.v1.PostService/GetPost": (GetPostRequest.from_dict, post_handler.get_post),
            "/api.v1.PostService/CreatePost": (CreatePostRequest.from_dict, post_handler.create_post),
        }
        self._lock = threading.Lock()
        self._httpd: ThreadingHTTPServer | None = None
        self._closed = False
        self._serving = threading.Event()

    def handle(self, path: str, body: bytes | str) -> Reply:
        """Dispatch one unary call given its procedure path and JSON body."""
        route = self._routes.get(path)
        if route is None:
            return _not_found()
        parse, method = route
        try:
            request = parse(json.loads(body))
        except (ValueError, UnicodeDecodeError) as exc:
            return _error_reply(ConnectError(Code.INVALID_ARGUMENT, f"unmarshal message: {exc}"))
        try:
            response = method(request)
        except ConnectError as err:
            return _error_reply(err)
        return Reply(HTTPStatus.OK, json.dumps(response.to_dict()).encode())

    @property
    def address(self) -> tuple[str, int] | None:
        """The bound address while listening, otherwise None."""
        with self._lock:
            if self._httpd is None or not self._serving.is_set():
                return None
            host, port = self._httpd.server_address[:2]
            return str(host), int(port)

    def wait_until_serving(self, timeout: float | None = None) -> bool:
        """Block until the server is listening; False on timeout."""
        return self._serving.wait(timeout)

    def start(self) -> None:
        """Listen and serve until stop() is called; raises OSError if binding fails."""
        host, sep, number = self.port.rpartition(":")
        if not sep or not number.isdigit():
            raise ValueError(f"address must be of the form host:port, got {self.port!r}")
        _log.info("Connect Server starting on port %s", self.port)
        httpd = ThreadingHTTPServer((host, int(number)), _request_handler(self))
        with self._lock:
            if self._closed:
                httpd.server_close()
                return
            self._httpd = httpd
            self._serving.set()
        try:
            httpd.serve_forever()
        finally:
            self._serving.clear()
            httpd.server_close()

    def stop(self) -> None:
        """Stop serving. Must not be called from a request-handling thread."""
        with self._lock:
            self._closed = True
            httpd = self._httpd
        if httpd is not None:
            httpd.shutdown()


def _request_handler(server: ConnectServer) -> type[BaseHTTPRequestHandler]:
    class _Handler(BaseHTTPRequestHandler):
        def do_POST(self) -> None:
            body = self.rfile.read(int(self.headers.get("Content-Length") or 0))
            self._send(server.handle(urlsplit(self.path).path, body))

        def do_GET(self) -> None:
            self._send(_not_found())

        def _send(self, reply: Reply) -> None:
            self.send_response(reply.status)
            self.send_header("Content-Type", reply.content_type)
            self.send_header("Content-Length", str(len(reply.body)))
            self.end_headers()
            self.wfile.write(reply.body)

        def log_message(self, format: str, *args: Any) -> None:
            _log.debug(format, *args)

    return _Handler


class HTTPHandler:
    """Plain HTTP routes."""

    def handle_home(self, path: str) -> Reply:
        """Serve the welcome page at the root; everything else is not found."""
        if path != "/":
            return _not_found()
        return Reply(HTTPStatus.OK, b"Welcome to Go Backend Scaffold!", TEXT_CONTENT_TYPE)


def initialize_connect_server() -> ConnectServer:
    """Build the server with its handlers."""
    return ConnectServer(UserHandler(), PostHandler())


def main(argv: list[str] | None = None) -> int:
    """Run the API server until interrupted."""
    argparse.ArgumentParser(prog="backend-scaffold-api", description="Run the API server.").parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    try:
        server = initialize_connect_server()
    except Exception as exc:
        raise SystemExit(f"Failed to initialize API: {exc}") from exc
    try:
        server.start()
    except OSError as exc:
        raise SystemExit(f"Server failed to start: {exc}") from exc
    except KeyboardInterrupt:
        server.stop()
    return 0