"""Canonical models shared across all cachenet modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Enumerations** -- the tags that steer a request through the engine:
    :class:`HTTPMethod`, :class:`ParameterType`, :class:`ResponseType`, and
    :class:`CachingLevel`.

**Configuration models** -- Pydantic models serialised as JSON in the user's
config directory:
    :class:`CacheConfig`, :class:`ClientConfig`.

**Request / result types** -- immutable dataclasses created per call:
    :class:`FormDataPart`, :class:`RequestDescriptor`, :class:`ResponseInfo`,
    :class:`Success`, and :class:`Failure`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field, field_validator


# --- Enumerations ---


class HTTPMethod(str, enum.Enum):
    """HTTP verbs supported by the client."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ParameterType(str, enum.Enum):
    """Encoding strategy applied to request parameters.

    * ``NONE`` -- parameters are ignored; no body, no query string.
    * ``FORM_URL_ENCODED`` -- percent-encoded ``key=value`` pairs.  Appended
      to the URL for GET/DELETE, sent as the body for POST/PUT/PATCH.
    * ``JSON`` -- serialised JSON body.
    * ``MULTIPART_FORM_DATA`` -- boundary-delimited body with binary parts.
    """

    NONE = "none"
    FORM_URL_ENCODED = "form_url_encoded"
    JSON = "json"
    MULTIPART_FORM_DATA = "multipart_form_data"


class ResponseType(str, enum.Enum):
    """Decoding target for a fetched payload."""

    JSON = "json"
    IMAGE = "image"
    DATA = "data"


class CachingLevel(str, enum.Enum):
    """Which cache tiers a request's response participates in.

    ``MEMORY_AND_FILE`` reads check memory first and fall back to disk,
    promoting disk hits into memory.
    """

    NONE = "none"
    MEMORY = "memory"
    MEMORY_AND_FILE = "memory_and_file"


# --- Configuration models ---


class CacheConfig(BaseModel):
    """Response cache settings stored in :class:`ClientConfig`."""

    enabled: bool = Field(default=True, description="Enable the on-disk cache tier")
    directory: Optional[str] = Field(
        default=None,
        description="Directory for the disk tier (defaults to the XDG cache dir)",
    )


class ClientConfig(BaseModel):
    """Settings for a :class:`~cachenet.client.Networking` instance.

    Persisted at ``~/.config/cachenet/config.json`` and loaded by
    :func:`~cachenet.config.load_config`.  See
    :func:`~cachenet.config.resolve_config` for the precedence chain.
    """

    base_url: Optional[str] = Field(
        default=None, description="Base URL that relative request paths are joined to"
    )
    timeout: float = Field(default=30.0, description="Transport timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_workers: int = Field(default=8, description="Concurrent in-flight requests")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Header fields sent with every request"
    )
    disable_error_logging: bool = Field(
        default=False, description="Do not print failed requests to stderr"
    )
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @field_validator("max_workers")
    @classmethod
    def max_workers_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be at least 1")
        return v

    @field_validator("timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v


# --- Request types ---


@dataclass(frozen=True)
class FormDataPart:
    """One binary part of a multipart/form-data request.

    Attributes:
        data: Raw bytes of the part.
        parameter_name: Form field name the part is sent under.
        filename: File name reported to the server.
        content_type: MIME type of *data*.
    """

    data: bytes
    parameter_name: str
    filename: str
    content_type: str = "application/octet-stream"

    @classmethod
    def png(cls, data: bytes, parameter_name: str, filename: str) -> FormDataPart:
        return cls(data, parameter_name, filename, "image/png")

    @classmethod
    def jpeg(cls, data: bytes, parameter_name: str, filename: str) -> FormDataPart:
        return cls(data, parameter_name, filename, "image/jpeg")


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything the dispatch engine needs to run one request.

    Built by the :class:`~cachenet.client.Networking` facade and consumed
    by :meth:`~cachenet.client.engine.DispatchEngine.dispatch`.  The
    ``parameter_type`` stored here is the caller's; the engine applies the
    GET/DELETE and multipart overrides when it encodes the request.
    """

    method: HTTPMethod
    path: str
    parameter_type: ParameterType = ParameterType.NONE
    parameters: Any = None
    parts: Sequence[FormDataPart] = ()
    response_type: ResponseType = ResponseType.JSON
    caching_level: CachingLevel = CachingLevel.NONE
    cache_name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", HTTPMethod(self.method))
        object.__setattr__(self, "parameter_type", ParameterType(self.parameter_type))
        object.__setattr__(self, "response_type", ResponseType(self.response_type))
        object.__setattr__(self, "caching_level", CachingLevel(self.caching_level))
        object.__setattr__(self, "parts", tuple(self.parts or ()))

    @property
    def effective_cache_name(self) -> str:
        """The explicit cache name, or the request path."""
        return self.cache_name or self.path


# --- Result types ---


@dataclass(frozen=True)
class ResponseInfo:
    """Transport metadata for a completed round-trip.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers (lower-cased names).
        url: The final request URL.
        content: Raw response body.
    """

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    url: str = ""
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class Success:
    """A decoded response.

    Attributes:
        value: JSON value, :class:`PIL.Image.Image`, or ``bytes`` depending
            on the request's :class:`ResponseType`.
        response: Transport metadata; ``None`` when served from cache.
        from_cache: Whether the value came from the cache store.
    """

    value: Any
    response: Optional[ResponseInfo] = None
    from_cache: bool = False

    ok = True


@dataclass(frozen=True)
class Failure:
    """A failed request.

    Attributes:
        error: One of the :mod:`cachenet.exceptions` request errors.
        response: Transport metadata when a response was received.
    """

    error: Exception
    response: Optional[ResponseInfo] = None

    ok = False

    @property
    def status_code(self) -> Optional[int]:
        if self.response is not None:
            return self.response.status_code
        return getattr(self.error, "status_code", None)


Result = Union[Success, Failure]
Completion = Callable[[Result], None]
