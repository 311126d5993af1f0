"""The request lifecycle engine every :class:`~cachenet.client.Networking` verb funnels into.

:meth:`DispatchEngine.dispatch` runs one request through these steps:

1. **Cache lookup** -- unless the caching level is ``NONE``, a hit is
   delivered straight away with a fresh identifier; nothing is registered
   and the transport is never touched.
2. **Encoding** -- parameters are encoded (GET/DELETE without parameters
   send nothing; multipart parts force multipart encoding) and the URL is
   composed.  Failures are delivered as :class:`~cachenet.models.Failure`.
3. **Registration** -- the request's identifier is registered.  An
   identical in-flight request is joined (one network call, fan-out
   completion); a different request under the same identifier supersedes
   the old one, which completes with ``CancelledError``.
4. **Execution** -- a worker thread runs the transport call (or a matching
   fake), decodes the body by response type, and deregisters the
   identifier.  The cache is written only once the task accepts the result,
   so a cancelled request never reaches the cache.
5. **Delivery** -- completions run one at a time on the engine's callback
   thread, each exactly once.
"""

from __future__ import annotations

import functools
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Mapping, Optional

from cachenet.cache import CacheStore
from cachenet.client.codecs import decode
from cachenet.client.encoding import QUERY_METHODS, build_request, form_pairs, merge_query
from cachenet.client.fakes import FakeRegistry
from cachenet.client.registry import RequestRegistry, RequestTask, request_identifier, unique_identifier
from cachenet.client.transport import HTTPTransport
from cachenet.client.urls import compose_url
from cachenet.exceptions import CachenetError, CancelledError, EncodingError, TransportError
from cachenet.models import (
    CachingLevel,
    Completion,
    Failure,
    HTTPMethod,
    ParameterType,
    RequestDescriptor,
    ResponseType,
    Result,
    Success,
)
from cachenet.output import debug, error, warning

_ACCEPT = {
    ResponseType.JSON: "application/json",
    ResponseType.IMAGE: "image/*",
    ResponseType.DATA: "*/*",
}


@dataclass(frozen=True)
class PreparedRequest:
    """A descriptor after URL composition and parameter encoding."""

    identifier: str
    url: str
    headers: Mapping[str, str]
    body: Optional[bytes]

    @property
    def fingerprint(self) -> tuple[Optional[bytes], Optional[str], Optional[str]]:
        return (self.body, self.headers.get("Content-Type"), self.headers.get("Accept"))


class DispatchEngine:
    """Dispatches requests, tracks them for cancellation, and delivers results.

    Args:
        base_url: Base URL that relative paths are joined to.
        cache: The response cache store.
        transport: The HTTP transport.
        headers: Header fields added to every request.
        max_workers: Size of the worker pool running transport calls.
        fakes: Canned responses consulted before the transport.
        disable_error_logging: Do not report failed requests on stderr.
    """

    def __init__(
        self,
        base_url: Optional[str],
        cache: CacheStore,
        transport: HTTPTransport,
        headers: Optional[Mapping[str, str]] = None,
        max_workers: int = 8,
        fakes: Optional[FakeRegistry] = None,
        disable_error_logging: bool = False,
    ) -> None:
        self.base_url = base_url
        self.headers: dict[str, str] = dict(headers or {})
        self.disable_error_logging = disable_error_logging
        self._cache = cache
        self._transport = transport
        self._fakes = fakes if fakes is not None else FakeRegistry()
        self._registry = RequestRegistry()
        self._workers = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="cachenet-worker")
        self._callbacks = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cachenet-callback")
        self._idle = threading.Condition()
        self._pending = 0
        self._closed = False

    @property
    def registry(self) -> RequestRegistry:
        return self._registry

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    def dispatch(self, descriptor: RequestDescriptor, completion: Optional[Completion] = None) -> str:
        """Run *descriptor* and deliver its outcome to *completion*.

        Returns:
            The request identifier, usable with :meth:`cancel`.

        Raises:
            CachenetError: If the engine has been closed.
        """
        if self._closed:
            raise CachenetError("Client is closed")
        with self._idle:
            self._pending += 1

        cached = self.cached_object(descriptor)
        if cached is not None:
            debug(f"Serving {descriptor.method.value} {descriptor.path} from cache")
            self._deliver(completion, Success(cached, from_cache=True))
            return unique_identifier(descriptor.method, self._display_url(descriptor.path))

        try:
            prepared = self.prepare(descriptor)
        except EncodingError as exc:
            self._report(descriptor, exc)
            self._deliver(completion, Failure(exc))
            return unique_identifier(descriptor.method, self._display_url(descriptor.path))

        task = RequestTask(prepared.identifier, prepared.fingerprint, self._deliver)
        task.subscribe(completion)
        while True:
            live, is_new = self._registry.register(task)
            if is_new:
                debug(f"Dispatching {prepared.identifier}")
                self._workers.submit(self._run, task, prepared, descriptor)
                break
            if live.subscribe(completion):
                break
        return prepared.identifier

    def prepare(self, descriptor: RequestDescriptor) -> PreparedRequest:
        """Compose the URL, encode parameters, and compute the identifier.

        Raises:
            EncodingError: For unencodable parameters or parts.
            URLCompositionError: For a malformed path.
        """
        method = HTTPMethod(descriptor.method)
        parameter_type = ParameterType(descriptor.parameter_type)
        if descriptor.parts:
            parameter_type = ParameterType.MULTIPART_FORM_DATA
        elif descriptor.parameters is None and method in QUERY_METHODS:
            parameter_type = ParameterType.NONE

        url = compose_url(self.base_url, descriptor.path)
        request = build_request(method, url, parameter_type, descriptor.parameters, descriptor.parts)
        body = request.read() or None

        headers = {"Accept": _ACCEPT[ResponseType(descriptor.response_type)], **self.headers}
        content_type = request.headers.get("Content-Type")
        if content_type is not None:
            headers["Content-Type"] = content_type
        return PreparedRequest(
            identifier=request_identifier(method, str(request.url)),
            url=str(request.url),
            headers=headers,
            body=body,
        )

    def identifier_for(self, method: HTTPMethod, path: str, parameters: object = None) -> str:
        """Compute the identifier a ``method`` request to *path* would get.

        Raises:
            EncodingError: If *path* or *parameters* cannot be encoded.
        """
        method = HTTPMethod(method)
        url = compose_url(self.base_url, path)
        if parameters is not None and method in QUERY_METHODS:
            url = merge_query(url, form_pairs(parameters))
        return request_identifier(method, url)

    def cached_object(self, descriptor: RequestDescriptor) -> Optional[object]:
        """Return the cached object for *descriptor*, or ``None``."""
        if descriptor.caching_level is CachingLevel.NONE:
            return None
        return self._cache.get(
            descriptor.effective_cache_name,
            descriptor.response_type,
            descriptor.caching_level,
        )

    # ------------------------------------------------------------------ #
    # Cancellation
    # ------------------------------------------------------------------ #

    def cancel(self, identifier: str) -> bool:
        """Cancel the live request for *identifier*; ``False`` if there is none."""
        return self._registry.cancel(identifier)

    def cancel_all(self) -> int:
        return self._registry.cancel_all()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every dispatched request has been delivered.

        Returns:
            ``False`` if *timeout* expired first.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def close(self) -> None:
        """Cancel in-flight requests, then drain the worker and callback threads."""
        if self._closed:
            return
        self._closed = True
        cancelled = self.cancel_all()
        if cancelled:
            debug(f"Cancelled {cancelled} in-flight request(s) on close")
        self._workers.shutdown(wait=True)
        self._callbacks.shutdown(wait=True)

    # ------------------------------------------------------------------ #
    # Worker side
    # ------------------------------------------------------------------ #

    def _run(self, task: RequestTask, prepared: PreparedRequest, descriptor: RequestDescriptor) -> None:
        try:
            result = self._perform(task, prepared, descriptor)
        except CachenetError as exc:
            result = Failure(exc)
        except Exception as exc:  # noqa: BLE001
            result = Failure(TransportError(f"{prepared.identifier} failed: {exc!r}"))
        finally:
            self._registry.deregister(task)

        if isinstance(result, Failure) and not task.completed:
            self._report(descriptor, result.error)
        on_commit = None
        if isinstance(result, Success) and descriptor.caching_level is not CachingLevel.NONE:
            on_commit = functools.partial(self._store, descriptor, result)
        task.complete(result, on_commit)

    def _perform(self, task: RequestTask, prepared: PreparedRequest, descriptor: RequestDescriptor) -> Result:
        method = HTTPMethod(descriptor.method)
        fake = self._fakes.find(method, descriptor.path)
        if fake is not None:
            task.handle.raise_if_cancelled()
            debug(f"Using fake response for {prepared.identifier}")
            response = fake.to_response_info(prepared.url)
        else:
            response = self._transport.execute(
                method.value, prepared.url, prepared.headers, prepared.body, task.handle
            )

        if not response.ok:
            return Failure(
                TransportError(f"HTTP {response.status_code}: {prepared.identifier}", response.status_code),
                response,
            )

        try:
            value = decode(descriptor.response_type, response.content)
        except CachenetError as exc:
            return Failure(exc, response)

        return Success(value, response)

    def _store(self, descriptor: RequestDescriptor, result: Success) -> None:
        self._cache.put(
            descriptor.effective_cache_name,
            result.value,
            descriptor.caching_level,
            descriptor.response_type,
            raw=result.response.content if result.response is not None else None,
        )

    # ------------------------------------------------------------------ #
    # Delivery
    # ------------------------------------------------------------------ #

    def _deliver(self, completion: Optional[Completion], result: Result) -> None:
        try:
            self._callbacks.submit(self._invoke, completion, result)
        except RuntimeError:
            # Callback thread already shut down during close().
            self._invoke(completion, result)

    def _invoke(self, completion: Optional[Completion], result: Result) -> None:
        try:
            if completion is not None:
                completion(result)
        except Exception as exc:  # noqa: BLE001
            warning(f"Completion raised {exc!r}")
        finally:
            with self._idle:
                self._pending -= 1
                if self._pending == 0:
                    self._idle.notify_all()

    def _report(self, descriptor: RequestDescriptor, exc: Exception) -> None:
        if self.disable_error_logging or isinstance(exc, CancelledError):
            return
        error(f"{descriptor.method.value} {descriptor.path}: {exc}")

    def _display_url(self, path: str) -> str:
        try:
            return compose_url(self.base_url, path)
        except EncodingError:
            return path
