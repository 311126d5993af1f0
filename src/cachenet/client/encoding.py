"""Parameter encoding -- turns a loose parameter bag into an :class:`httpx.Request`.

Parameters form a small tagged union checked at this boundary:

* **scalar** -- ``str``, ``int``, ``float``, ``bool``, ``None``
* **sequence** -- ``list`` / ``tuple`` of parameters
* **mapping** -- ``dict`` with ``str`` keys
* **binary** -- ``bytes`` (multipart fields) and
  :class:`~cachenet.models.FormDataPart`

Anything outside the union, JSON that cannot be serialised, and malformed
parts raise :class:`~cachenet.exceptions.EncodingError` before any transport
attempt is made.  Once validated, the payload itself is produced by httpx:
``params=`` for query strings, ``data=`` for form bodies, ``json=`` for JSON
and ``files=`` for multipart.

Example::

    request = build_request("GET", "https://api.example.com/search",
                            ParameterType.FORM_URL_ENCODED, {"q": "a b", "tags": ["x", "y"]})
    str(request.url)  # 'https://api.example.com/search?q=a+b&tags=x&tags=y'
"""

from __future__ import annotations

import math
from typing import Any, Iterator, Mapping, Optional, Sequence

import httpx

from cachenet.exceptions import EncodingError
from cachenet.models import FormDataPart, HTTPMethod, ParameterType

FORM_URL_ENCODED_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

QUERY_METHODS = (HTTPMethod.GET, HTTPMethod.DELETE)

_SCALARS = (str, int, float, bool, type(None))


def build_request(
    method: HTTPMethod | str,
    url: str,
    parameter_type: ParameterType,
    parameters: Any = None,
    parts: Optional[Sequence[FormDataPart]] = None,
    *,
    boundary: Optional[str] = None,
) -> httpx.Request:
    """Encode *parameters* (and *parts*) into a request for *url*.

    Form-url-encoded parameters become the query string for GET and DELETE
    (merged with any query already in *url*) and an
    ``application/x-www-form-urlencoded`` body for the other verbs.

    Args:
        method: HTTP verb.
        url: Absolute request URL.
        parameter_type: Encoding strategy.
        parameters: The parameter bag; see the module docstring for the
            accepted shapes.
        parts: Binary parts for multipart requests.
        boundary: Multipart boundary; httpx generates one if omitted.

    Returns:
        The built request.  ``NONE`` yields a request with no body.

    Raises:
        EncodingError: For parameters outside the accepted union,
            unserialisable JSON, or malformed parts.
    """
    method = HTTPMethod(method)
    parameter_type = ParameterType(parameter_type)
    _validate(parameters)

    if parameter_type is ParameterType.NONE:
        return httpx.Request(method.value, url)

    if parameter_type is ParameterType.FORM_URL_ENCODED:
        pairs = form_pairs(parameters)
        if method in QUERY_METHODS:
            return httpx.Request(method.value, merge_query(url, pairs))
        return httpx.Request(method.value, url, data=_group(pairs))

    if parameter_type is ParameterType.JSON:
        if parameters is None:
            return httpx.Request(method.value, url)
        try:
            return httpx.Request(method.value, url, json=parameters)
        except (TypeError, ValueError) as exc:
            raise EncodingError(f"Parameters are not JSON serialisable: {exc}") from exc

    files = _multipart_files(parameters, parts or ())
    headers = {"Content-Type": f"multipart/form-data; boundary={boundary}"} if boundary else None
    return httpx.Request(method.value, url, files=files, headers=headers)


def merge_query(url: str, pairs: Sequence[tuple[str, str]]) -> str:
    """Merge encoded *pairs* into the query string of *url*."""
    if not pairs:
        return url
    return str(httpx.URL(url).copy_merge_params(list(pairs)))


# --- form-url-encoded ---


def form_pairs(parameters: Any) -> list[tuple[str, str]]:
    """Flatten a mapping into ``(key, value)`` pairs ready for httpx.

    Sequences repeat their key, nested mappings use bracket notation
    (``user[name]``), ``None`` becomes an empty value and booleans become
    ``true`` / ``false``.
    """
    if parameters is None:
        return []
    if not isinstance(parameters, Mapping):
        raise EncodingError(
            f"Form-url-encoded parameters must be a mapping, got {type(parameters).__name__}"
        )
    return list(_flatten(parameters, prefix=None))


def _flatten(value: Any, prefix: Optional[str]) -> Iterator[tuple[str, str]]:
    if isinstance(value, Mapping):
        for key, item in value.items():
            name = key if prefix is None else f"{prefix}[{key}]"
            yield from _flatten(item, name)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _flatten(item, prefix)
    else:
        if prefix is None:
            raise EncodingError("Form-url-encoded parameters must be a mapping")
        yield prefix, _scalar_text(value)


def _group(pairs: Sequence[tuple[str, str]]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for key, value in pairs:
        grouped.setdefault(key, []).append(value)
    return grouped


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        raise EncodingError("Binary values can only be sent as multipart form data")
    return str(value)


# --- multipart/form-data ---


def _multipart_files(
    parameters: Any,
    parts: Sequence[FormDataPart],
) -> list[tuple[str, Any]]:
    if parameters is not None and not isinstance(parameters, Mapping):
        raise EncodingError(
            f"Multipart parameters must be a mapping, got {type(parameters).__name__}"
        )
    if not parameters and not parts:
        raise EncodingError("Multipart request has neither parameters nor parts")

    # Plain fields are sent without a filename so a form with no parts still
    # encodes as multipart.
    files: list[tuple[str, Any]] = [
        (name, (None, _field_bytes(name, value))) for name, value in (parameters or {}).items()
    ]
    for part in parts:
        _validate_part(part)
        files.append((part.parameter_name, (part.filename, bytes(part.data), part.content_type)))
    return files


def _field_bytes(name: str, value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, (Mapping, list, tuple)):
        raise EncodingError(f"Multipart field {name!r} must be a scalar or bytes")
    return _scalar_text(value).encode("utf-8")


def _validate_part(part: Any) -> None:
    if not isinstance(part, FormDataPart):
        raise EncodingError(f"Expected FormDataPart, got {type(part).__name__}")
    if not part.parameter_name:
        raise EncodingError("Form data part is missing its parameter name")
    if not isinstance(part.data, (bytes, bytearray)) or not part.data:
        raise EncodingError(f"Form data part {part.parameter_name!r} has no content")


# --- validation ---


def _validate(value: Any, depth: int = 0) -> None:
    """Reject anything outside the scalar / sequence / mapping / binary union."""
    if depth > 64:
        raise EncodingError("Parameters are nested too deeply")
    if isinstance(value, float) and not math.isfinite(value):
        raise EncodingError(f"Non-finite number {value!r} cannot be encoded")
    if isinstance(value, _SCALARS) or isinstance(value, (bytes, bytearray, FormDataPart)):
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise EncodingError(f"Parameter keys must be strings, got {type(key).__name__}")
            _validate(item, depth + 1)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _validate(item, depth + 1)
        return
    raise EncodingError(f"Unsupported parameter value of type {type(value).__name__}")
