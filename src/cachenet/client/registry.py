"""Request identity and the in-flight request registry.

A request is identified by ``"<METHOD> <composed URL>"``.  Identical requests
share an identifier, which is what lets ``cancel_get(path)`` reach a request
without the caller holding on to a handle.

Each identifier maps to at most one live :class:`RequestTask`.  A task owns
one transport handle and fans its single outcome out to every completion
subscribed to it.  The task's delivery guard makes that outcome final: once
a task is cancelled, the transport's late result is dropped and every
subscriber sees :class:`~cachenet.exceptions.CancelledError` instead.
"""

from __future__ import annotations

import threading
import uuid
from typing import Callable, Iterator, Optional

from cachenet.client.transport import TransportHandle
from cachenet.exceptions import CancelledError
from cachenet.models import Completion, Failure, HTTPMethod, Result
from cachenet.output import debug


def request_identifier(method: HTTPMethod | str, url: str) -> str:
    """Return the deterministic identifier for *method* and *url*."""
    return f"{HTTPMethod(method).value} {url}"


def unique_identifier(method: HTTPMethod | str, url: str) -> str:
    """Return a fresh identifier for requests that never enter the registry."""
    return f"{request_identifier(method, url)}#{uuid.uuid4().hex}"


class RequestTask:
    """One in-flight request and the completions waiting on it.

    Args:
        identifier: The request identifier.
        fingerprint: Opaque value describing the encoded request; two
            dispatches with equal identifier and fingerprint may share a
            task.
        deliver: Called as ``deliver(completion, result)`` for each
            subscriber; the engine routes this onto its callback context.
    """

    def __init__(
        self,
        identifier: str,
        fingerprint: object,
        deliver: Callable[[Optional[Completion], Result], None],
    ) -> None:
        self.identifier = identifier
        self.fingerprint = fingerprint
        self.handle = TransportHandle()
        self._deliver = deliver
        self._lock = threading.Lock()
        self._subscribers: list[Optional[Completion]] = []
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def cancelled(self) -> bool:
        return self.handle.cancelled

    def subscribe(self, completion: Optional[Completion]) -> bool:
        """Attach *completion*; returns False if the task already completed."""
        with self._lock:
            if self._completed:
                return False
            self._subscribers.append(completion)
            return True

    def complete(self, result: Result, on_commit: Optional[Callable[[], None]] = None) -> bool:
        """Deliver *result* to every subscriber exactly once.

        Args:
            result: The final outcome.
            on_commit: Run under the delivery guard once *result* is
                accepted, so a concurrent :meth:`cancel` either happens
                before it (and it never runs) or after the result is final.

        Returns:
            ``True`` if this call delivered, ``False`` if the task had
            already completed (for example because it was cancelled).
        """
        with self._lock:
            if self._completed:
                return False
            self._completed = True
            subscribers, self._subscribers = self._subscribers, []
            if on_commit is not None:
                on_commit()
        for completion in subscribers:
            self._deliver(completion, result)
        return True

    def cancel(self, reason: str = "Request was cancelled") -> bool:
        """Abort the transport and complete with :class:`CancelledError`."""
        self.handle.cancel()
        return self.complete(Failure(CancelledError(f"{reason}: {self.identifier}")))


class RequestRegistry:
    """Thread-safe map of request identifiers to live :class:`RequestTask` objects."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: dict[str, RequestTask] = {}

    def register(self, task: RequestTask) -> tuple[RequestTask, bool]:
        """Register *task* under its identifier, or join the live one.

        A live task with an equal fingerprint is returned instead of *task*
        (the caller subscribes to it and starts nothing).  A live task with
        a different fingerprint is superseded: it is cancelled and *task*
        takes its place.

        Returns:
            ``(task_to_subscribe_to, is_new)``.
        """
        with self._lock:
            current = self._tasks.get(task.identifier)
            if current is not None and not current.completed:
                if current.fingerprint == task.fingerprint:
                    debug(f"Joining in-flight request {task.identifier}")
                    return current, False
                debug(f"Superseding in-flight request {task.identifier}")
                superseded: Optional[RequestTask] = current
            else:
                superseded = None
            self._tasks[task.identifier] = task

        if superseded is not None:
            superseded.cancel("Request was superseded")
        return task, True

    def deregister(self, task: RequestTask) -> None:
        """Remove *task* if it is still the live entry for its identifier."""
        with self._lock:
            if self._tasks.get(task.identifier) is task:
                del self._tasks[task.identifier]

    def cancel(self, identifier: str) -> bool:
        """Cancel the live request for *identifier*.

        Returns:
            ``True`` if a live entry was found and cancelled; ``False`` when
            nothing is registered (already completed or never dispatched).
        """
        with self._lock:
            task = self._tasks.pop(identifier, None)
        if task is None:
            return False
        debug(f"Cancelling {identifier}")
        return task.cancel()

    def cancel_all(self) -> int:
        """Cancel every live request and return how many were cancelled."""
        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
        return sum(1 for task in tasks if task.cancel())

    def get(self, identifier: str) -> Optional[RequestTask]:
        with self._lock:
            return self._tasks.get(identifier)

    def identifiers(self) -> list[str]:
        with self._lock:
            return list(self._tasks)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._tasks

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def __iter__(self) -> Iterator[str]:
        return iter(self.identifiers())
