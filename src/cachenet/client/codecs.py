"""Decoders (and encoders) for the three response types.

Each codec turns raw response bytes into the object handed to completions
and, for the disk cache tier, turns such an object back into bytes:

* :class:`JSONCodec` -- :mod:`json`; an empty body decodes to ``None``.
* :class:`ImageCodec` -- Pillow; decoding forces a full load so truncated
  images fail here rather than later in the caller.
* :class:`DataCodec` -- pass-through ``bytes``.

Decode failures raise :class:`~cachenet.exceptions.DecodingError`; encode
failures (a value that cannot be written to the disk tier) raise
:class:`~cachenet.exceptions.CacheError`.
"""

from __future__ import annotations

import io
import json
from typing import Any, Protocol

from PIL import Image, UnidentifiedImageError

from cachenet.exceptions import CacheError, DecodingError
from cachenet.models import ResponseType


class Codec(Protocol):
    def decode(self, content: bytes) -> Any: ...

    def encode(self, value: Any) -> bytes: ...


class JSONCodec:
    def decode(self, content: bytes) -> Any:
        if not content.strip():
            return None
        try:
            return json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodingError(f"Response is not valid JSON: {exc}") from exc

    def encode(self, value: Any) -> bytes:
        try:
            return json.dumps(value, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise CacheError(f"Value is not JSON serialisable: {exc}") from exc


class ImageCodec:
    default_format = "PNG"

    def decode(self, content: bytes) -> Image.Image:
        if not content:
            raise DecodingError("Response body is empty, expected an image")
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise DecodingError(f"Response is not a decodable image: {exc}") from exc
        return image

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, Image.Image):
            raise CacheError(f"Expected a PIL image, got {type(value).__name__}")
        buffer = io.BytesIO()
        try:
            value.save(buffer, format=value.format or self.default_format)
        except (OSError, ValueError, KeyError) as exc:
            raise CacheError(f"Image cannot be encoded: {exc}") from exc
        return buffer.getvalue()


class DataCodec:
    def decode(self, content: bytes) -> bytes:
        return bytes(content)

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise CacheError(f"Expected bytes, got {type(value).__name__}")
        return bytes(value)


_CODECS: dict[ResponseType, Codec] = {
    ResponseType.JSON: JSONCodec(),
    ResponseType.IMAGE: ImageCodec(),
    ResponseType.DATA: DataCodec(),
}


def get_codec(response_type: ResponseType) -> Codec:
    """Return the codec registered for *response_type*."""
    return _CODECS[ResponseType(response_type)]


def decode(response_type: ResponseType, content: bytes) -> Any:
    return get_codec(response_type).decode(content)
