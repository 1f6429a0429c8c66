"""Unit tests for the streaming multipart encoder."""

import email
import string

import pytest

from ipfs_client.exceptions import IpfsApiSendRequestError
from ipfs_client.multipart import (
    MultipartStream,
    multipart_begin,
    multipart_boundary,
    multipart_end,
)


async def _agen(chunks):
    for chunk in chunks:
        yield chunk


async def _collect(stream):
    return [chunk async for chunk in stream]


def test_boundary_shape():
    boundary = multipart_boundary()

    assert boundary.startswith('-' * 24)
    assert len(boundary) == 24 + 18
    assert all(c in string.ascii_letters + string.digits for c in boundary[24:])


def test_boundaries_are_not_reused():
    assert multipart_boundary() != multipart_boundary()


def test_preamble_without_length():
    begin = multipart_begin('B')

    assert begin == (
        b'POST /api/v0/add HTTP/1.1\r\n'
        b'Host: localhost:5001\r\n'
        b'Content-Type: multipart/form-data; boundary=B\r\n'
        b'--B\r\n\r\n'
    )
    assert b'Content-Length' not in begin


def test_preamble_with_length():
    begin = multipart_begin('B', length=4, host='127.0.0.1:5001')

    assert begin.count(b'Content-Length:') == 1
    assert b'Content-Length: 4\r\n' in begin
    assert b'Host: 127.0.0.1:5001\r\n' in begin


def test_terminator():
    assert multipart_end('B') == b'\r\n--B--\r\n'


@pytest.mark.asyncio
async def test_stream_frames_payload_verbatim():
    """Test that payload chunks pass through between preamble and terminator untouched."""
    stream = MultipartStream(_agen([b'ab', b'cd']), boundary='B')

    chunks = await _collect(stream)

    assert chunks == [multipart_begin('B'), b'ab', b'cd', multipart_end('B')]
    assert b''.join(chunks) == multipart_begin('B') + b'abcd' + b'\r\n--B--\r\n'


@pytest.mark.asyncio
async def test_stream_accepts_sync_iterables():
    stream = MultipartStream(iter([b'x' * 10, b'', b'y']), length=11, boundary='B')

    chunks = await _collect(stream)

    assert chunks[1:-1] == [b'x' * 10, b'', b'y']
    assert b'Content-Length: 11\r\n' in chunks[0]


@pytest.mark.asyncio
async def test_stream_treats_bytes_as_one_chunk():
    stream = MultipartStream(b'hello', boundary='B')

    chunks = await _collect(stream)

    assert chunks == [multipart_begin('B'), b'hello', multipart_end('B')]


@pytest.mark.asyncio
async def test_stream_wraps_payload_failure():
    async def broken():
        yield b'abc'
        raise OSError('disk read failed')

    stream = MultipartStream(broken(), boundary='B')
    chunks = []

    with pytest.raises(IpfsApiSendRequestError) as exc_info:
        async for chunk in stream:
            chunks.append(chunk)

    assert chunks == [multipart_begin('B'), b'abc']
    assert isinstance(exc_info.value.__cause__, OSError)


@pytest.mark.asyncio
async def test_each_stream_draws_its_own_boundary():
    first = MultipartStream(_agen([]))
    second = MultipartStream(_agen([]))

    assert first.boundary != second.boundary
    assert first.content_type == f'multipart/form-data; boundary={first.boundary}'


@pytest.mark.asyncio
async def test_body_parses_as_single_part():
    """Test that a standard MIME parser recovers the payload from the framed body."""
    payload = [b'line one\r\n', b'--not-a-boundary\r\n', b'tail']
    stream = MultipartStream(_agen(payload))

    body = b''.join(await _collect(stream))
    message = email.message_from_bytes(
        f'Content-Type: {stream.content_type}\r\n\r\n'.encode('ascii') + body
    )

    assert message.is_multipart()
    parts = message.get_payload()
    assert len(parts) == 1
    assert parts[0].get_payload(decode=True) == b''.join(payload)
