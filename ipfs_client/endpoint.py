"""Discovery of the local daemon's HTTP API from its multiaddr file."""

import asyncio
import ipaddress
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx
from multiaddr import Multiaddr
from multiaddr import exceptions as multiaddr_exceptions

from common.constants import PUBLIC_GATEWAY_URL
from common.logging_config import get_logger
from ipfs_client.config import Config
from ipfs_client.exceptions import LocalApiUnavailableError

logger = get_logger(__name__)

IP_PROTOCOLS = ("ip4", "ip6")
PORT_PROTOCOL = "tcp"


@dataclass(frozen=True)
class Endpoint:
    """Base URL requests are sent to; is_local is False for the public gateway."""
    url: httpx.URL
    is_local: bool


def read_api_multiaddr(api_file: Path) -> str:
    """
    Read the multiaddr the daemon advertises for its API.

    Args:
        api_file: Path to the daemon's api file (e.g. ~/.ipfs/api)

    Returns:
        The multiaddr string with surrounding whitespace removed

    Raises:
        LocalApiUnavailableError: If the file is missing, unreadable or empty
    """
    try:
        content = api_file.read_text(encoding='utf-8').strip()
    except (OSError, UnicodeDecodeError) as e:
        raise LocalApiUnavailableError(f"Cannot read API file {api_file}: {e}") from e

    if not content:
        raise LocalApiUnavailableError(f"API file {api_file} is empty")
    return content


def multiaddr_to_url(multiaddr_str: str) -> httpx.URL:
    """
    Translate an /ip4|ip6/<addr>/tcp/<port> multiaddr into an HTTP base URL.

    Only ip4, ip6 and tcp components are understood. Exactly one address
    and one port must be present.

    Args:
        multiaddr_str: Multiaddr as written by the daemon

    Returns:
        URL of the form http://<ip>:<port>/

    Raises:
        LocalApiUnavailableError: If the multiaddr cannot be turned into a URL
    """
    try:
        addr = Multiaddr(multiaddr_str)
        protocols = list(addr.protocols())
    except (ValueError, multiaddr_exceptions.Error) as e:
        raise LocalApiUnavailableError(f"Invalid multiaddr {multiaddr_str!r}: {e}") from e

    ip_protocol = None
    port_protocol = None
    for protocol in protocols:
        if protocol.name in IP_PROTOCOLS:
            if ip_protocol is not None:
                raise LocalApiUnavailableError(f"Multiaddr {multiaddr_str!r} has more than one address")
            ip_protocol = protocol
        elif protocol.name == PORT_PROTOCOL:
            if port_protocol is not None:
                raise LocalApiUnavailableError(f"Multiaddr {multiaddr_str!r} has more than one tcp port")
            port_protocol = protocol
        else:
            raise LocalApiUnavailableError(
                f"Unsupported multiaddr component {protocol.name!r} in {multiaddr_str!r}"
            )

    if ip_protocol is None or port_protocol is None:
        raise LocalApiUnavailableError(f"Multiaddr {multiaddr_str!r} lacks an address or tcp port")

    try:
        host = addr.value_for_protocol(ip_protocol.code)
        port = addr.value_for_protocol(port_protocol.code)
        ip = ipaddress.ip_address(str(host))
        url_host = f"[{ip}]" if ip.version == 6 else str(ip)
        url = httpx.URL(f"http://{url_host}:{int(port)}/")
    except (ValueError, httpx.InvalidURL, multiaddr_exceptions.Error) as e:
        raise LocalApiUnavailableError(f"Cannot build API URL from {multiaddr_str!r}: {e}") from e

    return url


class EndpointResolver:
    """
    Resolves the base URL for API calls, re-reading the api file on every call.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.public_gateway_url = httpx.URL(PUBLIC_GATEWAY_URL)

    def _read_local_api_url(self) -> httpx.URL:
        try:
            api_file = self.config.get_api_file()
        except RuntimeError as e:
            raise LocalApiUnavailableError(f"Cannot determine home directory: {e}") from e
        return multiaddr_to_url(read_api_multiaddr(api_file))

    async def local_api_url(self) -> httpx.URL:
        """
        Resolve the local daemon's API URL.

        Raises:
            LocalApiUnavailableError: If no local API address can be determined
        """
        loop = asyncio.get_running_loop()
        url = await loop.run_in_executor(None, self._read_local_api_url)
        logger.debug(f"Local IPFS API at {url}")
        return url

    async def resolve(self, allow_gateway: bool = False) -> Endpoint:
        """
        Resolve the endpoint for one operation.

        Args:
            allow_gateway: Fall back to the public gateway when no local API is found

        Returns:
            Endpoint describing where to send the request

        Raises:
            LocalApiUnavailableError: If no local API is found and fallback is not allowed
        """
        try:
            return Endpoint(url=await self.local_api_url(), is_local=True)
        except LocalApiUnavailableError as e:
            if not allow_gateway:
                logger.error(f"Local IPFS API unavailable: {e}")
                raise
            logger.warning(f"Local IPFS API unavailable ({e}), using public gateway {self.public_gateway_url}")
            return Endpoint(url=self.public_gateway_url, is_local=False)
