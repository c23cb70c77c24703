"""
Shared pytest fixtures for jellykeys tests.

Provides:
- A fake Jellyfin server running in a background thread
- Clients and a configured provider pointed at it
- Isolation from the developer's environment and config files
"""

import json
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

import pytest

from jellykeys.api.jellyfin import JellyfinClient
from jellykeys.core.config import JellykeysConfig
from jellykeys.core.provider import JellyfinProvider


USERNAME = "testuser"
PASSWORD = "testpass"
LOGIN_TOKEN = "returned-access-token"


@dataclass
class RecordedRequest:
    method: str
    path: str
    query: Dict[str, List[str]]
    headers: Dict[str, str]
    body: bytes


@dataclass
class FakeJellyfin:
    """In-memory Jellyfin server state and request log."""

    url: str = ""
    keys: List[dict] = field(default_factory=list)
    requests: List[RecordedRequest] = field(default_factory=list)
    # (method, path) -> (status, body) replaces the normal handling
    overrides: Dict[Tuple[str, str], Tuple[int, str]] = field(default_factory=dict)
    created: int = 0

    def seed(self, *keys: Tuple[str, str]) -> None:
        for token, app_name in keys:
            self.keys.append(
                {"AccessToken": token, "AppName": app_name, "DateCreated": "2024-01-01T00:00:00Z"}
            )

    def override(self, method: str, path: str, status: int, body: str = "") -> None:
        self.overrides[(method, path)] = (status, body)

    def last(self, method: Optional[str] = None) -> RecordedRequest:
        matching = [r for r in self.requests if method is None or r.method == method]
        return matching[-1]

    def valid_tokens(self) -> set:
        return {LOGIN_TOKEN} | {key["AccessToken"] for key in self.keys}


def _make_handler(state: FakeJellyfin):
    class Handler(BaseHTTPRequestHandler):
        def log_message(self, format, *args):
            pass

        def _send(self, status: int, body="", content_type="application/json"):
            payload = body if isinstance(body, str) else json.dumps(body)
            data = payload.encode()
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def _handle(self, method: str):
            parts = urlsplit(self.path)
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            state.requests.append(
                RecordedRequest(
                    method=method,
                    path=parts.path,
                    query=parse_qs(parts.query),
                    headers=dict(self.headers.items()),
                    body=body,
                )
            )

            override = state.overrides.get((method, parts.path))
            if override:
                self._send(override[0], override[1], content_type="text/plain")
                return

            if method == "POST" and parts.path == "/Users/AuthenticateByName":
                creds = json.loads(body or b"{}")
                if creds.get("Username") != USERNAME or creds.get("Pw") != PASSWORD:
                    self._send(401, "Invalid username or password", content_type="text/plain")
                    return
                self._send(
                    200,
                    {
                        "AccessToken": LOGIN_TOKEN,
                        "ServerId": "server-123",
                        "User": {"Id": "user-456", "Name": USERNAME},
                        "SessionInfo": {"Id": "session-789"},
                    },
                )
                return

            auth = self.headers.get("Authorization", "")
            token = auth[len('MediaBrowser Token="'):-1] if auth.startswith('MediaBrowser Token="') else None
            if token not in state.valid_tokens():
                self._send(401, "Unauthorized", content_type="text/plain")
                return

            if method == "GET" and parts.path == "/Auth/Keys":
                self._send(
                    200,
                    {"Items": state.keys, "TotalRecordCount": len(state.keys), "StartIndex": 0},
                )
            elif method == "POST" and parts.path == "/Auth/Keys":
                state.created += 1
                state.keys.append(
                    {
                        "AccessToken": f"new-token-{state.created}",
                        "AppName": parse_qs(parts.query).get("app", [""])[0],
                        "DateCreated": "2024-06-01T12:00:00Z",
                    }
                )
                self._send(204)
            elif method == "DELETE" and parts.path.startswith("/Auth/Keys/"):
                target = unquote(parts.path[len("/Auth/Keys/"):])
                state.keys[:] = [key for key in state.keys if key["AccessToken"] != target]
                self._send(204)
            else:
                self._send(404, "Not Found", content_type="text/plain")

        def do_GET(self):
            self._handle("GET")

        def do_POST(self):
            self._handle("POST")

        def do_DELETE(self):
            self._handle("DELETE")

    return Handler


@pytest.fixture
def jellyfin_server():
    """Run a fake Jellyfin server for the duration of a test."""
    state = FakeJellyfin()
    server = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(state))
    state.url = f"http://127.0.0.1:{server.server_address[1]}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield state
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def client(jellyfin_server) -> JellyfinClient:
    """A client holding the token the fake server accepts."""
    return JellyfinClient(jellyfin_server.url, LOGIN_TOKEN, timeout=5)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Keep JELLYFIN_* variables and stray config.py files out of tests."""
    for name in ("JELLYFIN_ENDPOINT", "JELLYFIN_USERNAME", "JELLYFIN_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def provider(jellyfin_server) -> JellyfinProvider:
    """A provider already configured against the fake server."""
    provider = JellyfinProvider(version="test", config=JellykeysConfig(REQUEST_TIMEOUT=5))
    provider.configure(endpoint=jellyfin_server.url, username=USERNAME, password=PASSWORD)
    return provider
