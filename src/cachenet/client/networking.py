"""The caller-facing client: one method per HTTP verb plus image/data downloads.

:class:`Networking` is a thin layer over
:class:`~cachenet.client.engine.DispatchEngine`.  Every request method
returns its request identifier immediately and reports the outcome later to
its ``completion``, which is called exactly once with a
:class:`~cachenet.models.Success` or :class:`~cachenet.models.Failure` on the
client's callback thread.

The client owns its cache store, request registry, worker pool, and HTTP
client; closing it (or leaving the ``with`` block) cancels in-flight
requests and releases all of them.

Example::

    from cachenet import Networking

    def show(result):
        if result.ok:
            print(result.value)
        else:
            print("failed:", result.error)

    with Networking("https://api.example.com") as net:
        net.get("/users", parameters={"page": 2}, completion=show)
        net.download_image("/avatars/1.png", completion=show)
        net.wait()
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Sequence

import httpx
from PIL import Image

from cachenet.cache import CacheStore
from cachenet.client.engine import DispatchEngine
from cachenet.client.fakes import FakeRegistry, binary_fake, json_fake
from cachenet.client.transport import HTTPTransport
from cachenet.exceptions import CachenetError
from cachenet.models import (
    CachingLevel,
    ClientConfig,
    Completion,
    FormDataPart,
    HTTPMethod,
    ParameterType,
    RequestDescriptor,
    ResponseType,
)
from cachenet.output import debug


class Networking:
    """HTTP client with per-verb methods, cancellation, and tiered caching.

    Args:
        base_url: Base URL that request paths are joined to.  Overrides
            ``config.base_url`` when given.
        config: Client settings; defaults to :class:`ClientConfig()`.
        cache_dir: Directory for the disk cache tier.  Falls back to
            ``config.cache.directory``; when both are unset, or the cache is
            disabled in *config*, the disk tier is off and
            ``MEMORY_AND_FILE`` behaves like ``MEMORY``.
        http_client: A preconfigured :class:`httpx.Client` (for example with
            an ``httpx.MockTransport`` in tests).  The caller keeps
            ownership of it.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        config: Optional[ClientConfig] = None,
        cache_dir: str | Path | None = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self._config = config or ClientConfig()
        if cache_dir is None and self._config.cache.enabled:
            cache_dir = self._config.cache.directory
        self._cache = CacheStore(cache_dir if self._config.cache.enabled else None)
        self._transport = HTTPTransport(
            client=http_client,
            timeout=self._config.timeout,
            verify_ssl=self._config.verify_ssl,
        )
        self._fakes = FakeRegistry()
        self._engine = DispatchEngine(
            base_url=base_url or self._config.base_url,
            cache=self._cache,
            transport=self._transport,
            headers=self._config.headers,
            max_workers=self._config.max_workers,
            fakes=self._fakes,
            disable_error_logging=self._config.disable_error_logging,
        )
        self._closed = False

    # ------------------------------------------------------------------ #
    # Context manager / lifecycle
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Networking:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Cancel in-flight requests and release the worker threads, cache, and HTTP client."""
        if self._closed:
            return
        self._closed = True
        self._engine.close()
        self._transport.close()
        self._cache.close()
        debug("Networking client closed")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every dispatched request has been delivered.

        Returns:
            ``False`` if *timeout* (seconds) expired first.
        """
        return self._engine.wait(timeout)

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def base_url(self) -> Optional[str]:
        return self._engine.base_url

    @property
    def header_fields(self) -> dict[str, str]:
        """Header fields sent with every request; mutate to add or remove headers."""
        return self._engine.headers

    @property
    def disable_error_logging(self) -> bool:
        return self._engine.disable_error_logging

    @disable_error_logging.setter
    def disable_error_logging(self, value: bool) -> None:
        self._engine.disable_error_logging = value

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def engine(self) -> DispatchEngine:
        return self._engine

    # ------------------------------------------------------------------ #
    # Verbs
    # ------------------------------------------------------------------ #

    def get(
        self,
        path: str,
        parameters: Any = None,
        caching_level: CachingLevel = CachingLevel.NONE,
        completion: Optional[Completion] = None,
    ) -> str:
        """GET *path*; *parameters* are percent-encoded into the query string.

        Returns:
            The request identifier.
        """
        return self._request(
            HTTPMethod.GET,
            path,
            ParameterType.FORM_URL_ENCODED if parameters is not None else ParameterType.NONE,
            parameters,
            caching_level=caching_level,
            completion=completion,
        )

    def post(
        self,
        path: str,
        parameter_type: ParameterType = ParameterType.JSON,
        parameters: Any = None,
        parts: Optional[Sequence[FormDataPart]] = None,
        completion: Optional[Completion] = None,
    ) -> str:
        """POST *parameters* to *path*, encoded per *parameter_type*.

        Non-empty *parts* always produce a multipart/form-data request, with
        *parameters* sent as plain form fields alongside them.

        Returns:
            The request identifier.
        """
        return self._request(
            HTTPMethod.POST, path, parameter_type, parameters, parts=parts, completion=completion
        )

    def put(
        self,
        path: str,
        parameter_type: ParameterType = ParameterType.JSON,
        parameters: Any = None,
        completion: Optional[Completion] = None,
    ) -> str:
        """PUT *parameters* to *path*, encoded per *parameter_type*."""
        return self._request(HTTPMethod.PUT, path, parameter_type, parameters, completion=completion)

    def patch(
        self,
        path: str,
        parameter_type: ParameterType = ParameterType.JSON,
        parameters: Any = None,
        completion: Optional[Completion] = None,
    ) -> str:
        """PATCH *path* with *parameters*, encoded per *parameter_type*."""
        return self._request(HTTPMethod.PATCH, path, parameter_type, parameters, completion=completion)

    def delete(
        self,
        path: str,
        parameters: Any = None,
        completion: Optional[Completion] = None,
    ) -> str:
        """DELETE *path*; *parameters* are percent-encoded into the query string."""
        return self._request(
            HTTPMethod.DELETE,
            path,
            ParameterType.FORM_URL_ENCODED if parameters is not None else ParameterType.NONE,
            parameters,
            completion=completion,
        )

    # ------------------------------------------------------------------ #
    # Downloads
    # ------------------------------------------------------------------ #

    def download_image(
        self,
        path: str,
        cache_name: Optional[str] = None,
        caching_level: CachingLevel = CachingLevel.MEMORY_AND_FILE,
        completion: Optional[Completion] = None,
    ) -> str:
        """Download and decode an image; the result value is a :class:`PIL.Image.Image`.

        Args:
            path: Image path.
            cache_name: Cache key; defaults to *path*.
            caching_level: Cache tiers the image is read from and stored in.
            completion: Receives the outcome.
        """
        return self._request(
            HTTPMethod.GET,
            path,
            ParameterType.NONE,
            None,
            response_type=ResponseType.IMAGE,
            caching_level=caching_level,
            cache_name=cache_name,
            completion=completion,
        )

    def download_data(
        self,
        path: str,
        cache_name: Optional[str] = None,
        caching_level: CachingLevel = CachingLevel.MEMORY_AND_FILE,
        completion: Optional[Completion] = None,
    ) -> str:
        """Download raw bytes; the result value is ``bytes``."""
        return self._request(
            HTTPMethod.GET,
            path,
            ParameterType.NONE,
            None,
            response_type=ResponseType.DATA,
            caching_level=caching_level,
            cache_name=cache_name,
            completion=completion,
        )

    def image_from_cache(self, path: str, cache_name: Optional[str] = None) -> Optional[Image.Image]:
        """Return a cached image from memory or disk, never touching the network."""
        return self._from_cache(path, cache_name, ResponseType.IMAGE)

    def data_from_cache(self, path: str, cache_name: Optional[str] = None) -> Optional[bytes]:
        """Return cached bytes from memory or disk, never touching the network."""
        return self._from_cache(path, cache_name, ResponseType.DATA)

    def json_from_cache(self, path: str, cache_name: Optional[str] = None) -> Any:
        """Return a cached JSON value from memory or disk, never touching the network."""
        return self._from_cache(path, cache_name, ResponseType.JSON)

    def delete_cached_files(self) -> None:
        """Remove every cached response from memory and disk."""
        self._cache.clear()

    # ------------------------------------------------------------------ #
    # Cancellation
    # ------------------------------------------------------------------ #

    def cancel(self, identifier: str) -> bool:
        """Cancel the request with *identifier*; ``False`` if it is not in flight."""
        return self._engine.cancel(identifier)

    def cancel_get(self, path: str, parameters: Any = None) -> bool:
        """Cancel the in-flight GET for *path* (and *parameters*, if it had any).

        The request completes with :class:`~cachenet.exceptions.CancelledError`.
        """
        return self._cancel(HTTPMethod.GET, path, parameters)

    def cancel_post(self, path: str, parameters: Any = None) -> bool:
        """Cancel the in-flight POST for *path*.

        Body parameters are not part of the request identifier, so *parameters*
        does not narrow the match.
        """
        return self._cancel(HTTPMethod.POST, path, parameters)

    def cancel_put(self, path: str, parameters: Any = None) -> bool:
        return self._cancel(HTTPMethod.PUT, path, parameters)

    def cancel_patch(self, path: str, parameters: Any = None) -> bool:
        return self._cancel(HTTPMethod.PATCH, path, parameters)

    def cancel_delete(self, path: str, parameters: Any = None) -> bool:
        return self._cancel(HTTPMethod.DELETE, path, parameters)

    def cancel_image_download(self, path: str) -> bool:
        return self._cancel(HTTPMethod.GET, path)

    def cancel_data_download(self, path: str) -> bool:
        return self._cancel(HTTPMethod.GET, path)

    def cancel_all_requests(self) -> int:
        """Cancel every in-flight request and return how many were cancelled."""
        return self._engine.cancel_all()

    # ------------------------------------------------------------------ #
    # Fakes
    # ------------------------------------------------------------------ #

    def fake_get(self, path: str, response: Any = None, status_code: int = 200) -> None:
        """Answer GET *path* with *response* (JSON) instead of using the network."""
        self._fakes.register(HTTPMethod.GET, path, json_fake(response, status_code))

    def fake_post(self, path: str, response: Any = None, status_code: int = 200) -> None:
        self._fakes.register(HTTPMethod.POST, path, json_fake(response, status_code))

    def fake_put(self, path: str, response: Any = None, status_code: int = 200) -> None:
        self._fakes.register(HTTPMethod.PUT, path, json_fake(response, status_code))

    def fake_patch(self, path: str, response: Any = None, status_code: int = 200) -> None:
        self._fakes.register(HTTPMethod.PATCH, path, json_fake(response, status_code))

    def fake_delete(self, path: str, response: Any = None, status_code: int = 200) -> None:
        self._fakes.register(HTTPMethod.DELETE, path, json_fake(response, status_code))

    def fake_image_download(self, path: str, image: bytes | Image.Image, status_code: int = 200) -> None:
        """Answer image downloads of *path* with *image* (PIL image or encoded bytes)."""
        self._fakes.register(HTTPMethod.GET, path, binary_fake(image, status_code))

    def fake_data_download(self, path: str, data: bytes, status_code: int = 200) -> None:
        self._fakes.register(HTTPMethod.GET, path, binary_fake(data, status_code))

    def remove_fakes(self) -> None:
        self._fakes.clear()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _request(
        self,
        method: HTTPMethod,
        path: str,
        parameter_type: ParameterType,
        parameters: Any,
        *,
        parts: Optional[Sequence[FormDataPart]] = None,
        response_type: ResponseType = ResponseType.JSON,
        caching_level: CachingLevel = CachingLevel.NONE,
        cache_name: Optional[str] = None,
        completion: Optional[Completion] = None,
    ) -> str:
        descriptor = RequestDescriptor(
            method=method,
            path=path,
            parameter_type=parameter_type,
            parameters=parameters,
            parts=tuple(parts or ()),
            response_type=response_type,
            caching_level=caching_level,
            cache_name=cache_name,
        )
        return self._engine.dispatch(descriptor, completion)

    def _cancel(self, method: HTTPMethod, path: str, parameters: Any = None) -> bool:
        try:
            identifier = self._engine.identifier_for(method, path, parameters)
        except CachenetError as exc:
            debug(f"Nothing to cancel for {method.value} {path}: {exc}")
            return False
        return self._engine.cancel(identifier)

    def _from_cache(self, path: str, cache_name: Optional[str], response_type: ResponseType) -> Any:
        return self._cache.get(cache_name or path, response_type, CachingLevel.MEMORY_AND_FILE)
