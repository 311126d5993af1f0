"""Exception hierarchy for cachenet.

All exceptions inherit from :class:`CachenetError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`cachenet.exit_codes`.
Request failures are never raised at the caller of a dispatch method; they
are delivered to the request's completion inside a
:class:`~cachenet.models.Failure`.  The CLI entry point catches
``CachenetError`` and exits with the matching code.

Subclass hierarchy::

    CachenetError (exit 1)
    +-- EncodingError          (exit 2)
    |   +-- URLCompositionError (exit 2)
    +-- CancelledError         (exit 3)
    +-- TransportError         (exit 4)
    +-- DecodingError          (exit 5)
    +-- CacheError             (exit 6)
    +-- ConfigError            (exit 1)
"""

from __future__ import annotations

from typing import Optional

from cachenet.exit_codes import (
    EXIT_CACHE_ERROR,
    EXIT_CANCELLED,
    EXIT_DECODING_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_TRANSPORT_ERROR,
)


class CachenetError(Exception):
    """Base exception for all cachenet errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`cachenet.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class EncodingError(CachenetError):
    """Raised when parameters or multipart parts cannot be encoded into a request."""

    exit_code = EXIT_INVALID_USAGE


class URLCompositionError(EncodingError):
    """Raised when a base URL and a path cannot be combined into a valid URL."""


class CancelledError(CachenetError):
    """Delivered when a request is cancelled, explicitly or by a superseding request.

    Not to be confused with :class:`asyncio.CancelledError`; this one is an
    ordinary outcome handed to the request's completion.
    """

    exit_code = EXIT_CANCELLED


class TransportError(CachenetError):
    """Network failure or non-2xx HTTP status.

    Args:
        message: Human-readable error description.
        status_code: HTTP status code, or ``None`` when no response arrived
            (DNS failure, refused connection, timeout).
    """

    exit_code = EXIT_TRANSPORT_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodingError(CachenetError):
    """Raised when a response body does not decode as the requested response type."""

    exit_code = EXIT_DECODING_ERROR


class CacheError(CachenetError):
    """Raised when a value cannot be serialised for the disk tier, or by explicit
    cache maintenance when the disk tier cannot be used.
    """

    exit_code = EXIT_CACHE_ERROR


class ConfigError(CachenetError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
