"""Async HTTP client for the IPFS daemon API, with public gateway fallback."""

import asyncio
import inspect
import uuid
from typing import AsyncIterator, Awaitable, List, Optional, Tuple, Type, TypeVar, Union

import httpx

from common.constants import (
    ADD_TIMEOUT_SECONDS,
    API_ADD,
    API_GET,
    API_KEY_LIST,
    API_LS,
    API_NAME_PUBLISH,
    API_OBJECT_PATCH_ADD_LINK,
    API_RESOLVE,
)
from common.logging_config import get_logger
from ipfs_client.config import Config
from ipfs_client.endpoint import Endpoint, EndpointResolver
from ipfs_client.exceptions import (
    IpfsApiJsonPayloadError,
    IpfsApiPayloadError,
    IpfsApiResponseError,
    IpfsApiSendRequestError,
)
from ipfs_client.identifiers import ContentHash, IpfsPath
from ipfs_client.multipart import MultipartStream, Payload
from ipfs_client.schemas import (
    AddResponse,
    CidResponse,
    DaemonModel,
    Key,
    KeyListResponse,
    LsResponse,
    ObjectResponse,
)

logger = get_logger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=DaemonModel)

Pending = Union[T, Awaitable[T]]
QueryParams = List[Tuple[str, str]]


async def resolve_input(value: Pending[T]) -> T:
    """Await value if it is still pending, otherwise return it as is."""
    if inspect.isawaitable(value):
        return await value
    return value


async def resolve_inputs(*values) -> list:
    """
    Resolve several possibly pending inputs concurrently.

    The first failure propagates to the caller.
    """
    return list(await asyncio.gather(*(resolve_input(value) for value in values)))


def _as_content_hash(value: Union[ContentHash, str]) -> ContentHash:
    if isinstance(value, ContentHash):
        return value
    return ContentHash.from_string(value)


def _as_ipfs_path(value: Union[IpfsPath, str]) -> IpfsPath:
    if isinstance(value, IpfsPath):
        return value
    return IpfsPath.from_string(value)


class ContentStream:
    """
    Response body of a successful get, streamed without modification.

    Iterating consumes the body and closes the response. Use as an async
    context manager or call aclose() when not iterating to the end.
    """

    def __init__(self, response: httpx.Response):
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self.response.headers

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_bytes():
                yield chunk
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.error(f"Failed reading content stream from {self.response.url}: {e}")
            raise IpfsApiPayloadError(f"Failed reading response body: {e}") from e
        finally:
            await self.response.aclose()

    async def aread(self) -> bytes:
        """Collect the whole body."""
        return b"".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        await self.response.aclose()

    async def __aenter__(self) -> "ContentStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class IpfsClient:
    """Client for the daemon's /api/v0 endpoints."""

    def __init__(
        self,
        config: Optional[Config] = None,
        resolver: Optional[EndpointResolver] = None,
        session: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize IPFS client.

        Args:
            config: Configuration instance (environment defaults if omitted)
            resolver: Endpoint resolver (built from config if omitted)
            session: HTTP session to use instead of a new one; closed by aclose()
        """
        self.config = config or Config()
        self.resolver = resolver or EndpointResolver(self.config)
        self.session = session or httpx.AsyncClient(timeout=self.config.get_timeout())
        logger.info(f"Initialized IpfsClient [timeout={self.config.get_timeout()}]")

    async def aclose(self) -> None:
        await self.session.aclose()

    async def __aenter__(self) -> "IpfsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _headers(self, endpoint: Endpoint) -> dict:
        """Credentials are only ever sent to the local daemon."""
        if endpoint.is_local:
            return self.config.get_auth_header()
        return {}

    async def _send(
        self,
        method: str,
        url: httpx.URL,
        params: Optional[QueryParams] = None,
        headers: Optional[dict] = None,
        content=None,
        timeout=httpx.USE_CLIENT_DEFAULT,
    ) -> httpx.Response:
        """
        Send a request and return the (unread) response if it succeeded.

        Raises:
            IpfsApiSendRequestError: If the request could not be sent
            IpfsApiResponseError: If the response status is not 2xx
        """
        request = self.session.build_request(
            method, url, params=params, headers=headers, content=content, timeout=timeout
        )
        request_id = str(uuid.uuid4())
        logger.debug(f"Making request: {method} {request.url} [request_id={request_id}]")

        try:
            response = await self.session.send(request, stream=True)
        except httpx.TransportError as e:
            logger.error(f"Request failed: {method} {url} error={type(e).__name__}: {e} [request_id={request_id}]")
            raise IpfsApiSendRequestError(f"Failed to send {method} {url}: {e}") from e

        logger.debug(f"Response received: {method} {url} status={response.status_code} [request_id={request_id}]")

        if not response.is_success:
            await response.aclose()
            logger.warning(f"IPFS API error: {method} {url} status={response.status_code} [request_id={request_id}]")
            raise IpfsApiResponseError(response.status_code, response.reason_phrase or None)

        return response

    async def _read_body(self, response: httpx.Response) -> bytes:
        try:
            return await response.aread()
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.error(f"Failed reading response body from {response.url}: {e}")
            raise IpfsApiPayloadError(f"Failed reading response body: {e}") from e
        finally:
            await response.aclose()

    async def _decode_json(self, response: httpx.Response, model: Type[M]) -> M:
        body = await self._read_body(response)
        try:
            return model.model_validate_json(body)
        except ValueError as e:
            logger.error(f"Unexpected {model.__name__} payload from {response.url}: {e}")
            raise IpfsApiJsonPayloadError(f"Invalid {model.__name__} payload: {e}") from e

    async def _query(self, path: str, params: Optional[QueryParams], model: Type[M]) -> M:
        """GET-style call against the local daemon only."""
        endpoint = await self.resolver.resolve(allow_gateway=False)
        response = await self._send(
            self.config.get_query_method(),
            endpoint.url.join(path),
            params=params,
            headers=self._headers(endpoint),
        )
        return await self._decode_json(response, model)

    async def add(self, payload: Payload, length: Pending[Optional[int]] = None) -> AddResponse:
        """
        Upload a byte stream to the local daemon.

        Args:
            payload: Bytes, or a sync or async iterable of byte chunks, streamed as-is
            length: Total payload length, if known up front

        Returns:
            AddResponse describing the stored content

        Raises:
            LocalApiUnavailableError: If there is no local daemon
            IpfsApiSendRequestError: If the payload fails while streaming
        """
        length = await resolve_input(length)
        endpoint = await self.resolver.resolve(allow_gateway=False)
        url = endpoint.url.join(API_ADD)

        stream = MultipartStream(payload, length=length, host=url.netloc.decode("ascii"))
        headers = {"Content-Type": stream.content_type, **self._headers(endpoint)}

        logger.info(f"Uploading to {url} [length={length}]")
        response = await self._send(
            "POST", url, headers=headers, content=stream, timeout=ADD_TIMEOUT_SECONDS
        )
        result = await self._decode_json(response, AddResponse)
        logger.info(f"Added {result.name} as {result.hash}")
        return result

    async def get(self, content_hash: Pending[Union[ContentHash, str]]) -> ContentStream:
        """
        Fetch content by CID, falling back to the public gateway.

        Args:
            content_hash: CID (or its string form), possibly still pending

        Returns:
            ContentStream over the raw response body
        """
        cid = _as_content_hash(await resolve_input(content_hash))
        endpoint = await self.resolver.resolve(allow_gateway=True)

        if endpoint.is_local:
            url = endpoint.url.join(API_GET)
            params = [("arg", f"/ipfs/{cid}")]
        else:
            url = endpoint.url.join(f"ipfs/{cid}")
            params = None

        # Content bytes must arrive exactly as stored.
        headers = {"Accept-Encoding": "identity", **self._headers(endpoint)}
        response = await self._send(
            self.config.get_query_method() if endpoint.is_local else "GET",
            url,
            params=params,
            headers=headers,
        )
        return ContentStream(response)

    async def resolve(self, path: Pending[Union[IpfsPath, str]]) -> ContentHash:
        """
        Resolve a content path to the CID it points at.

        Args:
            path: IpfsPath (or its string form), possibly still pending

        Returns:
            ContentHash from the daemon's Path field
        """
        path = _as_ipfs_path(await resolve_input(path))
        endpoint = await self.resolver.resolve(allow_gateway=True)

        if endpoint.is_local:
            url = endpoint.url.join(API_RESOLVE)
            params = [("arg", str(path))]
        else:
            url = endpoint.url.join(str(path).lstrip("/"))
            params = None

        response = await self._send(
            self.config.get_query_method() if endpoint.is_local else "GET",
            url,
            params=params,
            headers=self._headers(endpoint),
        )
        result = await self._decode_json(response, CidResponse)
        return result.hash

    async def ls(self, name: Pending[Union[str, IpfsPath, ContentHash]]) -> LsResponse:
        """List the links of a directory object."""
        name = await resolve_input(name)
        return await self._query(API_LS, [("arg", str(name))], LsResponse)

    async def object_patch_link(
        self,
        modify_hash: Pending[Union[ContentHash, str]],
        name: Pending[str],
        add_hash: Pending[Union[ContentHash, str]],
        create: Pending[bool] = False,
    ) -> ObjectResponse:
        """
        Add a named link to an object, producing a new object.

        Args:
            modify_hash: Object to add the link to
            name: Link name
            add_hash: Object the link points at
            create: Create intermediate directories as needed

        Returns:
            ObjectResponse with the new object's CID
        """
        modify_hash, name, add_hash, create = await resolve_inputs(modify_hash, name, add_hash, create)
        params = [
            ("arg", str(_as_content_hash(modify_hash))),
            ("arg", name),
            ("arg", str(_as_content_hash(add_hash))),
            ("create", "true" if create else "false"),
        ]
        return await self._query(API_OBJECT_PATCH_ADD_LINK, params, ObjectResponse)

    async def name_publish(
        self,
        content_hash: Pending[Union[ContentHash, str]],
        key: Pending[Union[Key, str]],
    ) -> str:
        """
        Publish a CID under an IPNS key.

        Args:
            content_hash: CID to publish
            key: Key (or key name) to publish under

        Returns:
            Response body as text, invalid UTF-8 replaced
        """
        content_hash, key = await resolve_inputs(content_hash, key)
        cid = _as_content_hash(content_hash)
        key_name = key.name if isinstance(key, Key) else key
        endpoint = await self.resolver.resolve(allow_gateway=True)

        if endpoint.is_local:
            url = endpoint.url.join(API_NAME_PUBLISH)
            params = [("arg", f"/ipfs/{cid}"), ("key", key_name)]
        else:
            url = endpoint.url.join(f"ipfs/{cid}")
            params = None

        logger.info(f"Publishing /ipfs/{cid} under key {key_name!r}")
        response = await self._send(
            self.config.get_query_method() if endpoint.is_local else "GET",
            url,
            params=params,
            headers=self._headers(endpoint),
        )
        body = await self._read_body(response)
        return body.decode("utf-8", errors="replace")

    async def key_list(self) -> KeyListResponse:
        """List the keys held by the local daemon."""
        return await self._query(API_KEY_LIST, None, KeyListResponse)
