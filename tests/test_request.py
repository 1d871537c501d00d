"""Tests for conduit.http — request, headers, query params, target parsing."""

from typing import Any

import pytest

from conduit.http.headers import Headers
from conduit.http.query import QueryParams
from conduit.http.request import Request
from conduit.http.url import parse_target


def _make_scope(path: str = "/", query: bytes = b"", **overrides: Any) -> dict[str, Any]:
    scope: dict[str, Any] = {
        "type": "http",
        "method": "GET",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query,
        "headers": [(b"content-type", b"application/json"), (b"x-tag", b"a"), (b"X-Tag", b"b")],
        "http_version": "1.1",
        "server": ("127.0.0.1", 8000),
        "client": ("127.0.0.1", 51000),
    }
    scope.update(overrides)
    return scope


def _receive_chunks(*chunks: bytes):
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive() -> dict[str, Any]:
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


class TestHeaders:
    def test_case_insensitive(self) -> None:
        headers = Headers(((b"Content-Type", b"text/html"),))
        assert headers["content-type"] == "text/html"
        assert "CONTENT-TYPE" in headers

    def test_get_list(self) -> None:
        headers = Headers(((b"x-tag", b"a"), (b"X-Tag", b"b")))
        assert headers.get_list("x-tag") == ["a", "b"]
        assert headers["x-tag"] == "a"
        assert len(headers) == 1

    def test_missing(self) -> None:
        headers = Headers()
        assert headers.get("x") is None
        with pytest.raises(KeyError):
            headers["x"]


class TestQueryParams:
    def test_single_and_repeated(self) -> None:
        query = QueryParams("a=1&b=2&b=3")
        assert query["a"] == "1"
        assert query["b"] == ["2", "3"]
        assert query.get_first("b") == "2"
        assert query.get_list("a") == ["1"]

    def test_decoding(self) -> None:
        query = QueryParams("name=J%C3%BCrgen&msg=hello+world")
        assert query["name"] == "Jürgen"
        assert query["msg"] == "hello world"

    def test_blank_values_kept(self) -> None:
        query = QueryParams("flag=&x=1")
        assert query["flag"] == ""

    def test_empty(self) -> None:
        assert len(QueryParams()) == 0
        assert QueryParams("") == {}

    def test_mapping_equality(self) -> None:
        assert QueryParams("a=1&b=2&b=3") == {"a": "1", "b": ["2", "3"]}


class TestParseTarget:
    def test_path_and_query(self) -> None:
        target = parse_target("/foo/bar?x=1")
        assert target.pathname == "/foo/bar"
        assert target.query == {"x": "1"}

    def test_path_stays_encoded(self) -> None:
        assert parse_target("/a%20b").pathname == "/a%20b"

    def test_double_slash_is_a_path(self) -> None:
        assert parse_target("//evil.example/x").pathname == "//evil.example/x"

    def test_fragment_dropped(self) -> None:
        target = parse_target("/page?x=1#top")
        assert target.pathname == "/page"
        assert target.query == {"x": "1"}

    def test_absolute_form(self) -> None:
        target = parse_target("http://example.com/items?id=7")
        assert target.pathname == "/items"
        assert target.query == {"id": "7"}

    def test_empty_path(self) -> None:
        assert parse_target("").pathname == "/"
        assert parse_target("http://example.com").pathname == "/"


class TestRequestFromAsgi:
    def test_metadata(self) -> None:
        request = Request.from_asgi(_make_scope("/items", b"id=3"), _receive_chunks(b""))
        assert request.method == "GET"
        assert request.url == "/items?id=3"
        assert request.http_version == "1.1"
        assert request.server == ("127.0.0.1", 8000)
        assert request.client == ("127.0.0.1", 51000)
        assert request.content_type == "application/json"
        assert request.headers.get_list("x-tag") == ["a", "b"]

    def test_raw_path_preferred(self) -> None:
        scope = _make_scope("/a b", raw_path=b"/a%20b")
        assert Request.from_asgi(scope, _receive_chunks(b"")).url == "/a%20b"

    def test_path_fallback(self) -> None:
        scope = _make_scope("/plain")
        del scope["raw_path"]
        assert Request.from_asgi(scope, _receive_chunks(b"")).url == "/plain"

    def test_derived_fields_start_empty(self) -> None:
        request = Request.from_asgi(_make_scope("/x", b"a=1"), _receive_chunks(b""))
        assert request.pathname == ""
        assert len(request.query) == 0
        assert request.state == {}


class TestRequestBody:
    async def test_body_is_joined_and_cached(self) -> None:
        request = Request.from_asgi(_make_scope(), _receive_chunks(b'{"a"', b": 1}"))
        assert await request.body() == b'{"a": 1}'
        assert await request.body() == b'{"a": 1}'
        assert await request.json() == {"a": 1}
        assert await request.text() == '{"a": 1}'

    async def test_default_receive_is_empty(self) -> None:
        request = Request(method="POST", url="/")
        assert await request.body() == b""

    def test_content_length(self) -> None:
        scope = _make_scope(headers=[(b"content-length", b"12")])
        assert Request.from_asgi(scope, _receive_chunks(b"")).content_length == 12
        scope = _make_scope(headers=[(b"content-length", b"nope")])
        assert Request.from_asgi(scope, _receive_chunks(b"")).content_length is None
