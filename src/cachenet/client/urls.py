"""URL composition for request paths.

Paths are joined to the client's base URL and normalised through
:class:`httpx.URL`, which percent-encodes characters that are not valid in a
URL (spaces, non-ASCII).  The same function builds the URL for dispatch and
for ``cancel_*`` lookups, so both sides always agree on the request
identifier.
"""

from __future__ import annotations

from typing import Optional

import httpx

from cachenet.exceptions import URLCompositionError

_ALLOWED_SCHEMES = ("http", "https")


def compose_url(base_url: Optional[str], path: str) -> str:
    """Join *path* to *base_url* and return the normalised absolute URL.

    Absolute ``http(s)://`` paths are used as-is and ignore the base URL.

    Args:
        base_url: Base URL, e.g. ``"https://api.example.com/v1"``.  May be
            ``None`` when every path is absolute.
        path: Request path, e.g. ``"/users?page=2"``.

    Returns:
        The composed URL string.

    Raises:
        URLCompositionError: If the path is empty, the base URL is missing
            for a relative path, or the result is not a valid http(s) URL.
    """
    if not path or not path.strip():
        raise URLCompositionError("Request path must not be empty")

    if path.startswith(("http://", "https://")):
        raw = path
    else:
        if not base_url:
            raise URLCompositionError(f"Cannot compose relative path {path!r} without a base URL")
        raw = f"{base_url.rstrip('/')}/{path.lstrip('/')}"

    try:
        url = httpx.URL(raw)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise URLCompositionError(f"Malformed URL {raw!r}: {exc}") from exc

    if url.scheme not in _ALLOWED_SCHEMES or not url.host:
        raise URLCompositionError(f"Malformed URL {raw!r}: expected an absolute http(s) URL")
    return str(url)
