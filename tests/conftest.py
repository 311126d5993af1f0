"""Shared test fixtures for cachenet.

Provides output isolation, config isolation, sample images, and helpers for
building :class:`~cachenet.client.Networking` clients over an
``httpx.MockTransport``.  These fixtures are discovered automatically by
pytest.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable

import httpx
import pytest
from PIL import Image

from cachenet.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet manager for each test and drop it afterwards.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, so a manager created under Typer's CliRunner must not
    outlive the test.
    """
    set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at *tmp_path*, clear CACHENET_* vars, and chdir there."""
    monkeypatch.setattr("cachenet.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["CACHENET_BASE_URL", "CACHENET_TIMEOUT", "CACHENET_CACHE_DIR"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Payload fixtures
# ---------------------------------------------------------------------------


def _make_png(size: tuple[int, int] = (4, 3), color: tuple[int, int, int] = (255, 0, 0)) -> bytes:
    """Return PNG bytes for a solid-colour image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _make_png()


@pytest.fixture
def png_factory():
    """Return a function building PNG bytes of a given size and colour."""
    return _make_png


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


class RecordingHandler:
    """MockTransport handler that records requests and replies via *respond*."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self.respond(request)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def mock_client():
    """Factory for an ``httpx.Client`` over a recording MockTransport."""
    clients: list[httpx.Client] = []

    def factory(respond: Callable[[httpx.Request], httpx.Response]):
        handler = RecordingHandler(respond)
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client, handler

    yield factory
    for client in clients:
        client.close()
