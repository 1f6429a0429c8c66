"""Shared pytest fixtures for all tests."""

import hashlib

import httpx
import pytest
import pytest_asyncio

from ipfs_client.client import IpfsClient
from ipfs_client.config import Config
from ipfs_client.identifiers import parse_hash_to_identifier

LOCAL_MULTIADDR = "/ip4/127.0.0.1/tcp/5001"


@pytest.fixture
def ipfs_dir(tmp_path):
    """
    Create temporary IPFS repository directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .ipfs directory (without an api file)
    """
    repo = tmp_path / '.ipfs'
    repo.mkdir()
    return repo


@pytest.fixture
def local_config(ipfs_dir):
    """
    Config pointing at a repository whose daemon listens on 127.0.0.1:5001.
    """
    (ipfs_dir / 'api').write_text(LOCAL_MULTIADDR + '\n')
    return Config(ipfs_path=str(ipfs_dir), query_method='GET')


@pytest.fixture
def offline_config(ipfs_dir):
    """
    Config pointing at a repository with no running daemon.
    """
    return Config(ipfs_path=str(ipfs_dir), query_method='GET')


@pytest.fixture
def hello_cid():
    """Raw CIDv1 of b'hello world'."""
    return parse_hash_to_identifier(hashlib.sha256(b'hello world').hexdigest())


@pytest_asyncio.fixture
async def make_client():
    """
    Factory creating IpfsClient with mocked HTTP transport.

    Yields:
        Callable taking (config, handler) and returning an IpfsClient
        whose session never touches the network. Every client is closed
        after the test.
    """
    clients = []

    def factory(config, handler):
        session = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = IpfsClient(config, session=session)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
