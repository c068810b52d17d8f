"""Local HTTP callback server for the browser-based login flow."""

from __future__ import annotations

import errno
import html
import http.server
import logging
import socketserver
import threading
from typing import Any
from urllib.parse import parse_qs, urlparse

from ..exceptions import ListenerBindFailed
from .constants import (
    CALLBACK_HOST,
    CALLBACK_PATH,
    CALLBACK_REQUEST_TIMEOUT_SECONDS,
    REDIRECT_HOST,
    REDIRECT_PORT,
)
from .registry import PendingRequestRegistry

logger = logging.getLogger(__name__)

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <title>openlogin</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            display: flex;
            justify-content: center;
            align-items: center;
            height: 100vh;
            margin: 0;
            background-color: #f8fafc;
        }}
        .container {{
            text-align: center;
            padding: 2rem;
            background: white;
            border-radius: 12px;
            box-shadow: 0 4px 6px rgba(0, 0, 0, 0.1);
            max-width: 400px;
        }}
        h1 {{ color: #1e293b; margin-bottom: 1rem; }}
        p {{ color: #64748b; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{title}</h1>
        <p>{message}</p>
    </div>
</body>
</html>"""

SUCCESS_MESSAGE = "You can close this window and return to your terminal."


class _CallbackHandler(http.server.BaseHTTPRequestHandler):
    """HTTP handler for the OAuth redirect callback."""

    server: _CallbackTCPServer
    timeout = CALLBACK_REQUEST_TIMEOUT_SECONDS

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("Callback server: %s", format % args)

    def log_request(self, code: Any = "-", size: Any = "-") -> None:
        # The request line carries the authorization code.
        logger.debug("Callback server: %s %s", self.command, code)

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path == "/favicon.ico":
            self.send_response(204)
            self.end_headers()
            return
        if parsed.path != self.server.callback_path:
            self.send_error(404)
            return

        params = parse_qs(parsed.query)
        code = params.get("code", [None])[0]
        state = params.get("state", [None])[0]

        if not code or not state:
            reason = params.get("error_description", params.get("error", ["Missing code or state."]))[0]
            self._send_html(400, "Login Failed", html.escape(reason))
            return

        # The page is the same whether or not the state matched a pending login.
        if not self.server.registry.resolve(state, code):
            logger.debug("Ignored callback for unknown or stale state")
        self._send_html(200, "Login Successful", SUCCESS_MESSAGE)

    def _send_html(self, status: int, title: str, message: str) -> None:
        body = _PAGE_TEMPLATE.format(title=title, message=message).encode()
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(body)


class _CallbackTCPServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, address: tuple[str, int], registry: PendingRequestRegistry, callback_path: str) -> None:
        self.registry = registry
        self.callback_path = callback_path
        super().__init__(address, _CallbackHandler)


class CallbackServer:
    """Loopback listener that resolves registry entries from OAuth redirects.

    Owned by a single login flow: ``start`` binds the port, ``stop`` releases
    it. ``stop`` is safe to call any number of times; the underlying server is
    shut down and closed once.
    """

    def __init__(
        self,
        registry: PendingRequestRegistry,
        *,
        host: str = CALLBACK_HOST,
        port: int = REDIRECT_PORT,
        redirect_host: str = REDIRECT_HOST,
        path: str = CALLBACK_PATH,
    ) -> None:
        self.registry = registry
        self.host = host
        self.redirect_host = redirect_host
        self.path = path
        self._requested_port = port
        self._server: _CallbackTCPServer | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def port(self) -> int:
        if self._server is None:
            return self._requested_port
        return self._server.server_address[1]

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.redirect_host}:{self.port}{self.path}"

    @property
    def is_running(self) -> bool:
        return self._server is not None and not self._stopped

    def start(self) -> None:
        """Bind the port and serve on a daemon thread.

        Raises:
            ListenerBindFailed: If the port cannot be bound.
        """
        with self._lock:
            if self._server is not None:
                raise RuntimeError("Callback server already started")
            try:
                self._server = _CallbackTCPServer((self.host, self._requested_port), self.registry, self.path)
            except OSError as e:
                # WSAEADDRINUSE only exists on Windows.
                if e.errno in (errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", errno.EADDRINUSE)):
                    message = f"Port {self._requested_port} is already in use. Close other applications and try again."
                else:
                    message = f"Could not listen on {self.host}:{self._requested_port}: {e}"
                raise ListenerBindFailed(message, port=self._requested_port) from e

            self._thread = threading.Thread(
                target=self._server.serve_forever,
                name="openlogin-callback",
                daemon=True,
            )
            self._thread.start()
        logger.info("Callback server listening on %s:%d", self.host, self.port)

    def stop(self) -> None:
        """Shut the server down and release the port."""
        with self._lock:
            if self._server is None or self._stopped:
                return
            self._stopped = True
            server, thread = self._server, self._thread

        server.shutdown()
        if thread is not None:
            thread.join(timeout=2)
        server.server_close()
        logger.debug("Callback server stopped")

    def __enter__(self) -> CallbackServer:
        self.start()
        return self

    def __exit__(self, exc_type: type | None, exc: BaseException | None, traceback: Any) -> None:
        self.stop()
