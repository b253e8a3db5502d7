"""OAuth redirect handling and a local HTTP callback server for the CLI."""

import html
import logging
import time
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from threading import Event
from typing import Any, Mapping
from urllib.parse import parse_qs, urlparse

from .config import CALLBACK_TIMEOUT_SECONDS, DEFAULT_CALLBACK_PORT
from .errors import CallbackError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallbackResult:
    code: str
    state: str
    seller_id: str | None = None


def parse_callback_params(params: Mapping[str, Any], expected_state: str | None = None) -> CallbackResult:
    """Validate the query parameters Amazon appends to the redirect URI.

    Accepts either ``code`` or ``spapi_oauth_code``. Values may be plain
    strings or the lists produced by ``parse_qs``.

    Raises:
        CallbackError: If the seller declined, the state does not match, or
            no authorization code is present. The token endpoint must not be
            called in any of these cases.
    """

    def first(name: str) -> str | None:
        value = params.get(name)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        return value or None

    error = first("error")
    if error:
        raise CallbackError(f"Authorization failed: {first('error_description') or error}")

    state = first("state")
    if not state:
        raise CallbackError("Missing state parameter in callback")
    if expected_state is not None and state != expected_state:
        raise CallbackError("Invalid security token (state mismatch)")

    code = first("spapi_oauth_code") or first("code")
    if not code:
        raise CallbackError("Missing authorization code in callback")

    return CallbackResult(code=code, state=state, seller_id=first("selling_partner_id"))


def parse_callback_url(url: str, expected_state: str | None = None) -> CallbackResult:
    return parse_callback_params(parse_qs(urlparse(url).query), expected_state)


SUCCESS_HTML = """<!DOCTYPE html>
<html>
<head><title>Amazon Connected</title>
<style>
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
  display: flex; justify-content: center; align-items: center; height: 100vh; margin: 0; background: #f5f5f5; }
.container { text-align: center; background: white; padding: 40px; border-radius: 8px;
  box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
h1 { color: #232f3e; }
.checkmark { font-size: 64px; color: #ff9900; }
</style></head>
<body><div class="container">
<div class="checkmark">&#10003;</div>
<h1>Seller Account Authorized</h1>
<p>You can close this window and return to the terminal.</p>
</div></body></html>"""

ERROR_HTML = """<!DOCTYPE html>
<html>
<head><title>Connection Failed</title>
<style>
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
  display: flex; justify-content: center; align-items: center; height: 100vh; margin: 0; background: #f5f5f5; }
.container { text-align: center; background: white; padding: 40px; border-radius: 8px;
  box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
h1 { color: #cc0000; }
.error-icon { font-size: 64px; color: #cc0000; }
.details { background: #f5f5f5; padding: 12px; border-radius: 4px; font-family: monospace; }
</style></head>
<body><div class="container">
<div class="error-icon">&#10007;</div>
<h1>Connection Failed</h1>
<div class="details">%s</div>
</div></body></html>"""


class _CallbackHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the OAuth redirect."""

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != self.server.callback_path:
            self.send_response(404)
            self.end_headers()
            self.wfile.write(b"Not found")
            return

        try:
            result = parse_callback_params(parse_qs(parsed.query), self.server.expected_state)
        except CallbackError as e:
            self._send_error(str(e))
            self.server.callback_error = str(e)
            self.server.callback_done.set()
            return

        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.end_headers()
        self.wfile.write(SUCCESS_HTML.encode())

        self.server.callback_result = result
        self.server.callback_done.set()

    def _send_error(self, message: str) -> None:
        self.send_response(400)
        self.send_header("Content-Type", "text/html")
        self.end_headers()
        self.wfile.write((ERROR_HTML % html.escape(message)).encode())

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback server: " + format, *args)


def start_callback_server(redirect_uri: str, expected_state: str) -> HTTPServer:
    """Start a local server listening on the redirect URI's host, port, and path.

    Call wait_for_callback(server) to block until the redirect arrives.
    """
    parsed = urlparse(redirect_uri)
    host = parsed.hostname or "127.0.0.1"
    port = parsed.port if parsed.port is not None else DEFAULT_CALLBACK_PORT

    server = HTTPServer((host, port), _CallbackHandler)
    server.callback_path = parsed.path or "/"  # type: ignore[attr-defined]
    server.expected_state = expected_state  # type: ignore[attr-defined]
    server.callback_result = None  # type: ignore[attr-defined]
    server.callback_error = None  # type: ignore[attr-defined]
    server.callback_done = Event()  # type: ignore[attr-defined]
    logger.debug("Callback server listening on %s:%s%s", host, port, server.callback_path)
    return server


def wait_for_callback(server: HTTPServer, timeout: int = CALLBACK_TIMEOUT_SECONDS) -> CallbackResult:
    """Block until the OAuth redirect is received or timeout.

    Raises:
        TimeoutError: If the redirect is not received within timeout
        CallbackError: If the redirect carried an error or a bad state
    """
    server.timeout = 1  # handle_request timeout for polling
    deadline = time.monotonic() + timeout

    try:
        while not server.callback_done.is_set():
            if time.monotonic() > deadline:
                raise TimeoutError("OAuth callback not received within timeout")
            server.handle_request()
    finally:
        server.server_close()

    if server.callback_error:
        raise CallbackError(server.callback_error)

    return server.callback_result
