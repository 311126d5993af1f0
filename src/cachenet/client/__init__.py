"""HTTP client module for cachenet.

Provides the :class:`Networking` client and the pieces it is built from:
URL composition, parameter encoding, the cancellable transport, the request
registry, response codecs, fakes, and the dispatch engine that ties them to
the cache store.

Classes:
    :class:`Networking` -- per-verb facade with downloads and cancellation.
    :class:`DispatchEngine` -- request lifecycle: cache, encode, register,
        execute, deliver.
    :class:`RequestRegistry` -- identifier to in-flight task map.
    :class:`HTTPTransport` -- single-shot requests on :class:`httpx.Client`.

Example::

    from cachenet.client import Networking

    with Networking("https://api.example.com") as net:
        net.get("/users", completion=print)
        net.wait()
"""

from cachenet.client.engine import DispatchEngine
from cachenet.client.networking import Networking
from cachenet.client.registry import RequestRegistry
from cachenet.client.transport import HTTPTransport

__all__ = ["Networking", "DispatchEngine", "RequestRegistry", "HTTPTransport"]
