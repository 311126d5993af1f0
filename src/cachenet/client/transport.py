"""Cancellable single-shot HTTP transport backed by :class:`httpx.Client`.

Requests are sent in streaming mode so that a cancellation arriving while the
body is downloading can close the response and stop reading.  A cancellation
arriving before the response exists is noticed as soon as the headers
arrive.  Either way :meth:`HTTPTransport.execute` raises
:class:`~cachenet.exceptions.CancelledError` for a cancelled handle.

No retries happen here: one call, one outcome.
"""

from __future__ import annotations

import threading
from typing import Mapping, Optional

import httpx

from cachenet.exceptions import CancelledError, TransportError
from cachenet.models import ResponseInfo

_CHUNK_SIZE = 64 * 1024


class TransportHandle:
    """Cancellation handle for one transport call.

    The transport attaches the live :class:`httpx.Response` while streaming;
    :meth:`cancel` closes it, which aborts the body download.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._response: Optional[httpx.Response] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()
            response, self._response = self._response, None
        if response is not None:
            response.close()

    def attach(self, response: httpx.Response) -> None:
        """Track *response* so a later :meth:`cancel` can close it."""
        with self._lock:
            if not self._cancelled.is_set():
                self._response = response
                return
        response.close()
        raise CancelledError("Request was cancelled")

    def detach(self) -> None:
        with self._lock:
            self._response = None

    def raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise CancelledError("Request was cancelled")


class HTTPTransport:
    """Executes requests on a shared :class:`httpx.Client`.

    Args:
        client: A configured client.  When omitted one is created from
            *timeout* and *verify_ssl*; the transport then owns and closes
            it.
        timeout: Request timeout in seconds.
        verify_ssl: Verify SSL certificates.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout,
            verify=verify_ssl,
            follow_redirects=True,
        )

    def execute(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        handle: TransportHandle,
    ) -> ResponseInfo:
        """Send one request and read the full response body.

        Returns:
            The :class:`~cachenet.models.ResponseInfo`; non-2xx statuses are
            returned, not raised.

        Raises:
            CancelledError: If *handle* was cancelled before or during the
                call.
            TransportError: On network-level failures (``status_code`` is
                ``None``).
        """
        handle.raise_if_cancelled()
        request = self._client.build_request(method, url, headers=dict(headers), content=body)
        try:
            response = self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            handle.raise_if_cancelled()
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        handle.attach(response)
        try:
            chunks: list[bytes] = []
            for chunk in response.iter_bytes(_CHUNK_SIZE):
                handle.raise_if_cancelled()
                chunks.append(chunk)
            handle.raise_if_cancelled()
        except (httpx.HTTPError, httpx.StreamError, RuntimeError) as exc:
            # A cancel closes the stream underneath the reader.
            handle.raise_if_cancelled()
            raise TransportError(f"{method} {url} failed while reading: {exc}") from exc
        finally:
            handle.detach()
            response.close()

        return ResponseInfo(
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            url=str(response.url),
            content=b"".join(chunks),
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
