"""Streaming multipart/form-data framing for uploads to /api/v0/add."""

import random
import string
from typing import AsyncIterable, AsyncIterator, Iterable, Optional, Union

from common.constants import (
    API_ADD,
    DEFAULT_MULTIPART_HOST,
    MULTIPART_BOUNDARY_LENGTH,
    MULTIPART_BOUNDARY_PREFIX,
)
from common.logging_config import get_logger
from ipfs_client.exceptions import IpfsApiSendRequestError, IpfsError

logger = get_logger(__name__)

BOUNDARY_ALPHABET = string.ascii_letters + string.digits

Payload = Union[bytes, AsyncIterable[bytes], Iterable[bytes]]


def multipart_boundary() -> str:
    """
    Generate a fresh boundary token.

    Returns:
        24 dashes followed by 18 random alphanumeric characters
    """
    rng = random.Random()
    token = "".join(rng.choice(BOUNDARY_ALPHABET) for _ in range(MULTIPART_BOUNDARY_LENGTH))
    return MULTIPART_BOUNDARY_PREFIX + token


def multipart_begin(
    boundary: str,
    length: Optional[int] = None,
    host: str = DEFAULT_MULTIPART_HOST
) -> bytes:
    """
    Build the chunk emitted before the payload.

    The request line and headers sit before the first delimiter, where
    multipart parsers treat them as preamble.

    Args:
        boundary: Boundary token
        length: Total payload length if known up front
        host: Value for the Host line

    Returns:
        Preamble bytes ending with the opening delimiter and a blank line
    """
    begin = f"POST /{API_ADD} HTTP/1.1\r\nHost: {host}\r\n"
    if length is not None:
        begin += f"Content-Length: {length}\r\n"
    begin += f"Content-Type: multipart/form-data; boundary={boundary}\r\n"
    begin += f"--{boundary}\r\n\r\n"
    return begin.encode("ascii")


def multipart_end(boundary: str) -> bytes:
    """Closing delimiter, including the CRLF that precedes it."""
    return f"\r\n--{boundary}--\r\n".encode("ascii")


class MultipartStream:
    """
    Async byte stream framing a payload as a single multipart part.

    Yields the preamble, then every payload chunk exactly as produced,
    then the closing delimiter. Nothing is buffered beyond one chunk.
    """

    def __init__(
        self,
        payload: Payload,
        length: Optional[int] = None,
        boundary: Optional[str] = None,
        host: str = DEFAULT_MULTIPART_HOST
    ):
        self.payload = payload
        self.length = length
        self.boundary = boundary or multipart_boundary()
        self.host = host

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    async def _chunks(self) -> AsyncIterator[bytes]:
        if isinstance(self.payload, (bytes, bytearray, memoryview)):
            yield bytes(self.payload)
        elif hasattr(self.payload, "__aiter__"):
            async for chunk in self.payload:
                yield chunk
        else:
            for chunk in self.payload:
                yield chunk

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield multipart_begin(self.boundary, self.length, self.host)

        sent = 0
        try:
            async for chunk in self._chunks():
                sent += len(chunk)
                yield chunk
        except IpfsError:
            raise
        except Exception as e:
            logger.error(f"Upload payload failed after {sent} bytes: {type(e).__name__}: {e}")
            raise IpfsApiSendRequestError(f"Failed reading upload payload after {sent} bytes: {e}") from e

        yield multipart_end(self.boundary)
        logger.debug(f"Multipart upload framed {sent} payload bytes [boundary={self.boundary}]")
