"""Canned responses that stand in for the network.

A fake is registered for a method and path.  When a dispatch matches it, the
engine skips the transport but otherwise treats the fake like a real
response: the request is registered (and cancellable), the body is decoded
for the requested response type, and the result is cached.

Example::

    net.fake_get("/users", [{"id": 1}])
    net.get("/users", completion=...)   # delivers [{'id': 1}] without I/O
"""

from __future__ import annotations

import io
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from PIL import Image

from cachenet.exceptions import EncodingError
from cachenet.models import HTTPMethod, ResponseInfo


@dataclass(frozen=True)
class FakeResponse:
    status_code: int = 200
    content: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    def to_response_info(self, url: str) -> ResponseInfo:
        return ResponseInfo(
            status_code=self.status_code,
            headers=dict(self.headers),
            url=url,
            content=self.content,
        )


def json_fake(value: Any, status_code: int = 200) -> FakeResponse:
    """Build a fake whose body is *value* serialised as JSON."""
    try:
        content = b"" if value is None else json.dumps(value).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"Fake response is not JSON serialisable: {exc}") from exc
    return FakeResponse(status_code, content, {"content-type": "application/json"})


def binary_fake(value: bytes | Image.Image, status_code: int = 200) -> FakeResponse:
    """Build a fake whose body is raw bytes, or a PIL image saved as PNG."""
    if isinstance(value, Image.Image):
        buffer = io.BytesIO()
        value.save(buffer, format=value.format or "PNG")
        return FakeResponse(status_code, buffer.getvalue(), {"content-type": "image/png"})
    return FakeResponse(status_code, bytes(value), {"content-type": "application/octet-stream"})


class FakeRegistry:
    """Thread-safe map of ``(method, path)`` to :class:`FakeResponse`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._fakes: dict[tuple[HTTPMethod, str], FakeResponse] = {}

    def register(self, method: HTTPMethod, path: str, fake: FakeResponse) -> None:
        with self._lock:
            self._fakes[(HTTPMethod(method), path)] = fake

    def remove(self, method: HTTPMethod, path: str) -> None:
        with self._lock:
            self._fakes.pop((HTTPMethod(method), path), None)

    def clear(self) -> None:
        with self._lock:
            self._fakes.clear()

    def find(self, method: HTTPMethod, path: str) -> Optional[FakeResponse]:
        """Match *path* exactly, then without its query string."""
        key_method = HTTPMethod(method)
        with self._lock:
            fake = self._fakes.get((key_method, path))
            if fake is None and "?" in path:
                fake = self._fakes.get((key_method, path.split("?", 1)[0]))
            return fake

    def __len__(self) -> int:
        with self._lock:
            return len(self._fakes)
