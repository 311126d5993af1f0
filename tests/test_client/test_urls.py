"""Tests for cachenet.client.urls -- URL composition."""

from __future__ import annotations

import pytest

from cachenet.client.urls import compose_url
from cachenet.exceptions import EncodingError, URLCompositionError


class TestComposeURL:
    def test_joins_base_and_path(self) -> None:
        assert compose_url("https://api.example.com", "/users") == "https://api.example.com/users"

    def test_collapses_duplicate_slash(self) -> None:
        assert compose_url("https://api.example.com/v1/", "/users") == "https://api.example.com/v1/users"

    def test_adds_missing_slash(self) -> None:
        assert compose_url("https://api.example.com/v1", "users") == "https://api.example.com/v1/users"

    def test_keeps_query_in_path(self) -> None:
        assert compose_url("https://api.example.com", "/users?page=2") == "https://api.example.com/users?page=2"

    def test_absolute_path_ignores_base(self) -> None:
        assert compose_url("https://api.example.com", "http://cdn.example.com/a.png") == "http://cdn.example.com/a.png"

    def test_absolute_path_without_base(self) -> None:
        assert compose_url(None, "https://cdn.example.com/a.png") == "https://cdn.example.com/a.png"

    def test_space_is_percent_encoded(self) -> None:
        assert compose_url("https://api.example.com", "/a b") == "https://api.example.com/a%20b"

    def test_deterministic(self) -> None:
        assert compose_url("https://api.example.com", "/x") == compose_url("https://api.example.com", "/x")

    @pytest.mark.parametrize("path", ["", "   "])
    def test_empty_path_rejected(self, path: str) -> None:
        with pytest.raises(URLCompositionError):
            compose_url("https://api.example.com", path)

    def test_relative_path_without_base_rejected(self) -> None:
        with pytest.raises(URLCompositionError):
            compose_url(None, "/users")

    def test_non_http_base_rejected(self) -> None:
        with pytest.raises(URLCompositionError):
            compose_url("ftp://files.example.com", "/a")

    def test_base_without_host_rejected(self) -> None:
        with pytest.raises(URLCompositionError):
            compose_url("not a url", "/a")

    def test_is_an_encoding_error(self) -> None:
        assert issubclass(URLCompositionError, EncodingError)
