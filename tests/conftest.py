"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import base64
import json
import sys
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from hats import ExternalAgentClient, Orchestrator  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png"
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    import os

    for var in list(os.environ):
        if var == "HATS_CONFIG" or var.startswith("HATS__"):
            monkeypatch.delenv(var, raising=False)
    yield


class FakeServices:
    """Records requests and answers with a canned JSON body per path."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.responses: dict = {}

    def reply(self, path: str, status: int = 200, body=None, text: str | None = None) -> None:
        self.responses[path] = (status, body, text)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body, text = self.responses.get(request.url.path, (404, None, "not found"))
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, content=json.dumps(body).encode("utf-8"))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def services() -> FakeServices:
    return FakeServices()


@pytest.fixture
def make_orchestrator(services: FakeServices) -> Callable[..., Orchestrator]:
    """Orchestrator wired to the fake services, with pacing disabled."""

    def _make(**kwargs) -> Orchestrator:
        kwargs.setdefault("pacing_delay", 0)
        kwargs.setdefault("agents", ExternalAgentClient(transport=services.transport()))
        return Orchestrator(**kwargs)

    return _make


def form_value(body: bytes, name: str) -> bytes:
    """Return the raw value of form field ``name`` in a multipart body."""
    start = body.index(f'name="{name}"'.encode())
    start = body.index(b"\r\n\r\n", start) + 4
    return body[start:body.index(b"\r\n", start)]
