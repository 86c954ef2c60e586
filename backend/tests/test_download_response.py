"""
Tests for the streamed download response.
"""
import asyncio

import pytest
from cloudfs.modules.storage.router import ObjectStreamBody, ObjectStreamResponse
from conftest import USER_ID

SCOPE = {"type": "http", "asgi": {"version": "3.0", "spec_version": "2.4"}, "method": "GET"}


async def never_disconnects():
    await asyncio.sleep(3600)


@pytest.mark.asyncio
class TestObjectStreamBody:
    """Test cases for ObjectStreamBody."""

    async def test_close_before_iterating_releases_stream(self, file_service, driver):
        driver.seed("user-42/a.txt", content=b"hello")
        stream = await file_service.open_file(USER_ID, "a.txt")
        body = ObjectStreamBody(stream)

        await body.aclose()

        assert stream.closed
        assert driver.released == ["user-42/a.txt"]

    async def test_close_after_partial_read(self, file_service, driver):
        driver.seed("user-42/a.txt", content=b"0123456789")
        stream = await file_service.open_file(USER_ID, "a.txt")
        body = ObjectStreamBody(stream)

        first = await body.__anext__()
        await body.aclose()

        assert first == b"0123"
        assert driver.released == ["user-42/a.txt"]

    async def test_iterates_whole_object_once(self, file_service, driver):
        driver.seed("user-42/a.txt", content=b"0123456789")
        stream = await file_service.open_file(USER_ID, "a.txt")
        body = ObjectStreamBody(stream)

        content = b"".join([chunk async for chunk in body])
        await body.aclose()

        assert content == b"0123456789"
        assert driver.released == ["user-42/a.txt"]


@pytest.mark.asyncio
class TestObjectStreamResponse:
    """Test cases for ObjectStreamResponse."""

    async def test_releases_stream_when_client_is_gone(self, file_service, driver):
        driver.seed("user-42/a.txt", content=b"hello")
        stream = await file_service.open_file(USER_ID, "a.txt")
        response = ObjectStreamResponse(stream, media_type="text/plain")

        async def send(message):
            raise OSError("connection reset")

        with pytest.raises(Exception):
            await response(SCOPE, never_disconnects, send)

        assert stream.closed
        assert driver.released == ["user-42/a.txt"]

    async def test_sends_body_and_releases(self, file_service, driver):
        driver.seed("user-42/a.txt", content=b"hello world")
        stream = await file_service.open_file(USER_ID, "a.txt")
        response = ObjectStreamResponse(stream, media_type="text/plain")
        messages = []

        async def send(message):
            messages.append(message)

        await response(SCOPE, never_disconnects, send)

        assert messages[0]["status"] == 200
        body = b"".join(message.get("body", b"") for message in messages[1:])
        assert body == b"hello world"
        assert driver.released == ["user-42/a.txt"]
