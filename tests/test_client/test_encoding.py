"""Tests for cachenet.client.encoding -- building requests per ParameterType."""

from __future__ import annotations

import json

import pytest

from cachenet.client.encoding import (
    FORM_URL_ENCODED_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    build_request,
    form_pairs,
    merge_query,
)
from cachenet.exceptions import EncodingError
from cachenet.models import FormDataPart, ParameterType

URL = "https://api.example.com/items"


# ---------------------------------------------------------------------------
# form-url-encoded
# ---------------------------------------------------------------------------


class TestFormPairs:
    def test_sequence_repeats_key(self) -> None:
        assert form_pairs({"tags": ["x", "y"]}) == [("tags", "x"), ("tags", "y")]

    def test_nested_mapping_uses_brackets(self) -> None:
        assert form_pairs({"user": {"name": "ada"}}) == [("user[name]", "ada")]

    def test_none_and_bool(self) -> None:
        assert form_pairs({"a": None, "b": True, "c": False}) == [("a", ""), ("b", "true"), ("c", "false")]

    def test_numbers(self) -> None:
        assert form_pairs({"page": 2, "ratio": 0.5}) == [("page", "2"), ("ratio", "0.5")]

    def test_none_is_empty(self) -> None:
        assert form_pairs(None) == []

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(EncodingError):
            form_pairs(["a", "b"])

    def test_bytes_rejected(self) -> None:
        with pytest.raises(EncodingError):
            build_request("GET", URL, ParameterType.FORM_URL_ENCODED, {"blob": b"\x00"})


class TestFormQuery:
    def test_get_parameters_become_query(self) -> None:
        request = build_request("GET", URL, ParameterType.FORM_URL_ENCODED, {"page": 1})
        assert str(request.url) == f"{URL}?page=1"
        assert request.read() == b""
        assert "Content-Type" not in request.headers

    def test_values_are_escaped(self) -> None:
        request = build_request("GET", URL, ParameterType.FORM_URL_ENCODED, {"q": "a b&c", "name": "é"})
        assert str(request.url) == f"{URL}?q=a+b%26c&name=%C3%A9"
        assert request.url.params["q"] == "a b&c"

    def test_nested_keys_round_trip(self) -> None:
        request = build_request("DELETE", URL, ParameterType.FORM_URL_ENCODED, {"user": {"id": 3}})
        assert request.url.params["user[id]"] == "3"

    def test_repeated_keys(self) -> None:
        request = build_request("GET", URL, ParameterType.FORM_URL_ENCODED, {"tag": ["a", "b"]})
        assert request.url.params.get_list("tag") == ["a", "b"]

    def test_existing_query_is_kept(self) -> None:
        request = build_request("GET", f"{URL}?q=x", ParameterType.FORM_URL_ENCODED, {"page": 2})
        assert str(request.url) == f"{URL}?q=x&page=2"


class TestFormBody:
    def test_post_parameters_become_body(self) -> None:
        request = build_request("POST", URL, ParameterType.FORM_URL_ENCODED, {"a": "1", "b": "2"})
        assert str(request.url) == URL
        assert request.read() == b"a=1&b=2"
        assert request.headers["Content-Type"] == FORM_URL_ENCODED_CONTENT_TYPE

    def test_repeated_keys_in_body(self) -> None:
        request = build_request("PUT", URL, ParameterType.FORM_URL_ENCODED, {"tag": ["a", "b"]})
        assert request.read() == b"tag=a&tag=b"


class TestMergeQuery:
    def test_adds_query(self) -> None:
        assert merge_query("https://a.example/x", [("p", "1")]) == "https://a.example/x?p=1"

    def test_extends_existing_query(self) -> None:
        assert merge_query("https://a.example/x?a=1", [("p", "1")]) == "https://a.example/x?a=1&p=1"

    def test_no_pairs_is_noop(self) -> None:
        assert merge_query("https://a.example/x", []) == "https://a.example/x"


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


class TestJSON:
    def test_encodes_body_and_content_type(self) -> None:
        request = build_request("POST", URL, ParameterType.JSON, {"name": "ada", "tags": [1, 2]})
        assert json.loads(request.read()) == {"name": "ada", "tags": [1, 2]}
        assert request.headers["Content-Type"] == JSON_CONTENT_TYPE

    def test_top_level_list(self) -> None:
        request = build_request("POST", URL, ParameterType.JSON, [1, "two"])
        assert json.loads(request.read()) == [1, "two"]

    def test_none_sends_no_body(self) -> None:
        request = build_request("POST", URL, ParameterType.JSON, None)
        assert request.read() == b""
        assert "Content-Type" not in request.headers

    def test_non_finite_number_rejected(self) -> None:
        with pytest.raises(EncodingError):
            build_request("POST", URL, ParameterType.JSON, {"x": float("nan")})

    def test_unsupported_type_rejected(self) -> None:
        with pytest.raises(EncodingError):
            build_request("POST", URL, ParameterType.JSON, {"x": {1, 2}})

    def test_non_string_key_rejected(self) -> None:
        with pytest.raises(EncodingError):
            build_request("POST", URL, ParameterType.JSON, {1: "one"})

    def test_bytes_rejected(self) -> None:
        with pytest.raises(EncodingError, match="not JSON serialisable"):
            build_request("POST", URL, ParameterType.JSON, {"blob": b"\x00"})


# ---------------------------------------------------------------------------
# NONE
# ---------------------------------------------------------------------------


class TestNone:
    def test_parameters_are_ignored(self) -> None:
        request = build_request("POST", URL, ParameterType.NONE, {"a": 1})
        assert str(request.url) == URL
        assert request.read() == b""

    def test_accepts_string_tags(self) -> None:
        request = build_request("GET", URL, "none")
        assert request.method == "GET"


# ---------------------------------------------------------------------------
# multipart/form-data
# ---------------------------------------------------------------------------


class TestMultipart:
    def test_fields_and_parts_layout(self) -> None:
        part = FormDataPart.png(b"PNGDATA", "avatar", "me.png")
        request = build_request(
            "POST",
            URL,
            ParameterType.MULTIPART_FORM_DATA,
            {"name": "ada"},
            [part],
            boundary="XYZ",
        )
        assert request.headers["Content-Type"] == "multipart/form-data; boundary=XYZ"
        assert request.read() == (
            b"--XYZ\r\n"
            b'Content-Disposition: form-data; name="name"\r\n\r\n'
            b"ada\r\n"
            b"--XYZ\r\n"
            b'Content-Disposition: form-data; name="avatar"; filename="me.png"\r\n'
            b"Content-Type: image/png\r\n\r\n"
            b"PNGDATA\r\n"
            b"--XYZ--\r\n"
        )

    def test_parts_only(self) -> None:
        part = FormDataPart(b"\x00\x01", "file", "blob.bin")
        body = build_request("POST", URL, ParameterType.MULTIPART_FORM_DATA, None, [part], boundary="B").read()
        assert b"Content-Type: application/octet-stream" in body
        assert body.endswith(b"--B--\r\n")

    def test_fields_only_still_multipart(self) -> None:
        request = build_request("POST", URL, ParameterType.MULTIPART_FORM_DATA, {"a": 1, "b": True}, boundary="B")
        body = request.read()
        assert request.headers["Content-Type"] == "multipart/form-data; boundary=B"
        assert b'name="a"\r\n\r\n1\r\n' in body
        assert b'name="b"\r\n\r\ntrue\r\n' in body

    def test_bytes_field_sent_verbatim(self) -> None:
        body = build_request("POST", URL, ParameterType.MULTIPART_FORM_DATA, {"raw": b"\xff\xfe"}, boundary="B").read()
        assert b"\r\n\r\n\xff\xfe\r\n" in body

    def test_random_boundary(self) -> None:
        first = build_request("POST", URL, ParameterType.MULTIPART_FORM_DATA, {"a": "1"})
        second = build_request("POST", URL, ParameterType.MULTIPART_FORM_DATA, {"a": "1"})
        assert first.headers["Content-Type"].startswith("multipart/form-data; boundary=")
        assert first.headers["Content-Type"] != second.headers["Content-Type"]

    def test_empty_request_rejected(self) -> None:
        with pytest.raises(EncodingError, match="neither parameters nor parts"):
            build_request("POST", URL, ParameterType.MULTIPART_FORM_DATA, None, [])

    def test_non_mapping_parameters_rejected(self) -> None:
        with pytest.raises(EncodingError):
            build_request("POST", URL, ParameterType.MULTIPART_FORM_DATA, ["a"])

    def test_nested_field_rejected(self) -> None:
        with pytest.raises(EncodingError):
            build_request("POST", URL, ParameterType.MULTIPART_FORM_DATA, {"a": {"b": 1}})

    def test_part_without_content_rejected(self) -> None:
        with pytest.raises(EncodingError):
            build_request("POST", URL, ParameterType.MULTIPART_FORM_DATA, None, [FormDataPart(b"", "f", "f.bin")])

    def test_non_part_rejected(self) -> None:
        with pytest.raises(EncodingError):
            build_request("POST", URL, ParameterType.MULTIPART_FORM_DATA, None, [b"raw"])
