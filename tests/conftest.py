"""Shared fixtures."""

import json
import os
import tempfile
from typing import Callable, Optional

import httpx
import pytest

# Keep the app's database and images out of the working tree
_TMP = tempfile.mkdtemp(prefix="notion-widgets-")
os.environ.setdefault("CONFIG_DB_PATH", os.path.join(_TMP, "widgets.db"))
os.environ.setdefault("STATIC_DIR", os.path.join(_TMP, "static"))
os.environ.setdefault("IMAGE_DIR", os.path.join(_TMP, "static", "images"))
os.environ.setdefault("TIMEZONE", "Asia/Seoul")

from notion_widgets.notion.client import NotionClient  # noqa: E402


class FakeNotion:
    """
    Records Notion requests and answers them from registered handlers.

    Handlers are keyed by (method, path prefix) and return (status, body).
    """

    def __init__(self):
        self.requests: list[tuple[str, str, Optional[dict]]] = []
        self.handlers: list[tuple[str, str, Callable]] = []

    def on(self, method: str, path_prefix: str, handler):
        """Register a handler (a callable taking the body, or a fixed response)."""
        if not callable(handler):
            response = handler
            handler = lambda body: response  # noqa: E731
        self.handlers.append((method, path_prefix, handler))

    def calls(self, method: str, path_prefix: str = "") -> list[Optional[dict]]:
        return [
            body
            for m, path, body in self.requests
            if m == method and path.startswith(path_prefix)
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1")
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))

        for method, prefix, handler in self.handlers:
            if request.method == method and path.startswith(prefix):
                result = handler(body)
                if isinstance(result, tuple):
                    status, payload = result
                else:
                    status, payload = 200, result
                return httpx.Response(status, json=payload)

        return httpx.Response(404, json={"code": "object_not_found", "message": f"No handler for {path}"})

    def client(self, token: str = "secret_test") -> NotionClient:
        return NotionClient(token, transport=httpx.MockTransport(self))


@pytest.fixture
def fake_notion() -> FakeNotion:
    return FakeNotion()
