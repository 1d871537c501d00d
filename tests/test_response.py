"""Tests for conduit.http.response — buffered writes over ASGI send."""

import pytest

from conduit.errors import ResponseStateError
from conduit.http.response import Response


class _Recorder:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    @property
    def start(self) -> dict:
        return self.messages[0]

    @property
    def body(self) -> bytes:
        return b"".join(m.get("body", b"") for m in self.messages[1:])


class TestHeaders:
    def test_defaults(self) -> None:
        response = Response()
        assert response.status == 200
        assert response.headers == ()
        assert not response.headers_sent
        assert not response.finished
        assert not response.closed

    def test_set_get_case_insensitive(self) -> None:
        response = Response()
        response.set_header("Content-Type", "text/plain")
        assert response.get_header("content-type") == "text/plain"
        assert response.has_header("CONTENT-TYPE")

    def test_set_replaces(self) -> None:
        response = Response()
        response.set_header("X-Token", "a")
        response.set_header("x-token", "b")
        assert response.headers == (("x-token", "b"),)

    def test_multiple_values(self) -> None:
        response = Response()
        response.set_header("Set-Cookie", ["a=1", "b=2"])
        assert response.headers == (("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"))

    def test_int_value(self) -> None:
        response = Response()
        response.set_header("Content-Length", 12)
        assert response.get_header("content-length") == "12"

    def test_remove(self) -> None:
        response = Response()
        response.set_header("X-A", "1")
        response.remove_header("x-a")
        assert not response.has_header("X-A")


class TestBody:
    async def test_end_sends_start_and_body(self) -> None:
        send = _Recorder()
        response = Response(send)
        response.set_header("Content-Type", "text/plain")
        response.end("hello")
        await response.flush()

        assert send.start["type"] == "http.response.start"
        assert send.start["status"] == 200
        headers = dict(send.start["headers"])
        assert headers[b"content-type"] == b"text/plain"
        assert headers[b"content-length"] == b"5"
        assert send.messages[-1] == {"type": "http.response.body", "body": b"hello", "more_body": False}
        assert response.finished
        assert response.closed

    async def test_streaming_writes(self) -> None:
        send = _Recorder()
        response = Response(send)
        response.write("a")
        response.write(b"b")
        response.end()
        await response.flush()

        assert send.body == b"ab"
        assert b"content-length" not in dict(send.start["headers"])
        assert [m.get("more_body") for m in send.messages[1:]] == [True, True, False]

    async def test_nothing_sent_until_flush(self) -> None:
        send = _Recorder()
        response = Response(send)
        response.end("x")
        assert send.messages == []
        assert not response.closed
        await response.flush()
        assert len(send.messages) == 2

    async def test_head_sends_no_body(self) -> None:
        send = _Recorder()
        response = Response(send, head=True)
        response.end("hello")
        await response.flush()

        assert dict(send.start["headers"])[b"content-length"] == b"5"
        assert send.body == b""

    @pytest.mark.parametrize("status", [204, 304])
    async def test_no_body_statuses(self, status: int) -> None:
        send = _Recorder()
        response = Response(send)
        response.status = status
        response.end("ignored")
        await response.flush()

        assert dict(send.start["headers"])[b"content-length"] == b"0"
        assert send.body == b""

    async def test_write_head(self) -> None:
        send = _Recorder()
        response = Response(send)
        response.write_head(201, {"Location": "/items/1"})
        assert response.headers_sent
        response.end()
        await response.flush()

        assert send.start["status"] == 201
        assert dict(send.start["headers"])[b"location"] == b"/items/1"


class TestStateErrors:
    def test_write_after_end(self) -> None:
        response = Response()
        response.end("done")
        with pytest.raises(ResponseStateError):
            response.write("more")

    def test_end_twice_with_chunk(self) -> None:
        response = Response()
        response.end()
        with pytest.raises(ResponseStateError):
            response.end("more")

    def test_end_twice_without_chunk_is_noop(self) -> None:
        response = Response()
        response.end()
        response.end()
        assert response.finished

    def test_status_after_headers_sent(self) -> None:
        response = Response()
        response.write("x")
        with pytest.raises(ResponseStateError):
            response.status = 500

    def test_header_after_headers_sent(self) -> None:
        response = Response()
        response.write("x")
        with pytest.raises(ResponseStateError):
            response.set_header("X-Late", "1")


class TestWaitClosed:
    async def test_returns_once_closed(self) -> None:
        response = Response(_Recorder())
        response.end()
        await response.flush()
        await response.wait_closed()
        assert response.closed
