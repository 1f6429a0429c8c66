"""Client-side access layer for the IPFS daemon HTTP API."""

from ipfs_client.client import ContentStream, IpfsClient
from ipfs_client.config import Config
from ipfs_client.endpoint import Endpoint, EndpointResolver, multiaddr_to_url
from ipfs_client.exceptions import (
    HashError,
    IpfsApiError,
    IpfsApiJsonPayloadError,
    IpfsApiPayloadError,
    IpfsApiResponseError,
    IpfsApiSendRequestError,
    IpfsError,
    IpfsPathParseError,
    LocalApiUnavailableError,
)
from ipfs_client.identifiers import (
    ContentHash,
    IpfsPath,
    PathType,
    parse_hash_to_identifier,
    parse_ipfs_path,
    parse_path_type,
)
from ipfs_client.multipart import MultipartStream, multipart_boundary

__all__ = [
    "ContentStream",
    "IpfsClient",
    "Config",
    "Endpoint",
    "EndpointResolver",
    "multiaddr_to_url",
    "HashError",
    "IpfsApiError",
    "IpfsApiJsonPayloadError",
    "IpfsApiPayloadError",
    "IpfsApiResponseError",
    "IpfsApiSendRequestError",
    "IpfsError",
    "IpfsPathParseError",
    "LocalApiUnavailableError",
    "ContentHash",
    "IpfsPath",
    "PathType",
    "parse_hash_to_identifier",
    "parse_ipfs_path",
    "parse_path_type",
    "MultipartStream",
    "multipart_boundary",
]
