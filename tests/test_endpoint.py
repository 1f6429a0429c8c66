"""Unit tests for local API endpoint discovery."""

from pathlib import Path

import pytest

from common.constants import PUBLIC_GATEWAY_URL
from ipfs_client.config import Config
from ipfs_client.endpoint import EndpointResolver, multiaddr_to_url, read_api_multiaddr
from ipfs_client.exceptions import LocalApiUnavailableError


class TestMultiaddrToUrl:
    """Tests for multiaddr_to_url."""

    def test_ip4_and_tcp(self):
        assert str(multiaddr_to_url('/ip4/127.0.0.1/tcp/5001')) == 'http://127.0.0.1:5001/'

    def test_ip6_is_bracketed(self):
        assert str(multiaddr_to_url('/ip6/::1/tcp/5001')) == 'http://[::1]:5001/'

    def test_component_order_does_not_matter(self):
        assert str(multiaddr_to_url('/tcp/8080/ip4/10.0.0.2')) == 'http://10.0.0.2:8080/'

    @pytest.mark.parametrize('value', [
        '/ip4/127.0.0.1',
        '/tcp/5001',
        '/ip4/127.0.0.1/udp/5001',
        '/dns4/localhost/tcp/5001',
        '/ip4/127.0.0.1/tcp/5001/ip4/10.0.0.1',
        '/ip4/127.0.0.1/tcp/5001/tcp/5002',
        'not a multiaddr',
        '/ip4/999.0.0.1/tcp/5001',
    ])
    def test_rejected(self, value):
        with pytest.raises(LocalApiUnavailableError):
            multiaddr_to_url(value)


class TestReadApiMultiaddr:
    """Tests for read_api_multiaddr."""

    def test_strips_whitespace(self, ipfs_dir):
        (ipfs_dir / 'api').write_text('/ip4/127.0.0.1/tcp/5001\n')

        assert read_api_multiaddr(ipfs_dir / 'api') == '/ip4/127.0.0.1/tcp/5001'

    def test_missing_file(self, ipfs_dir):
        with pytest.raises(LocalApiUnavailableError):
            read_api_multiaddr(ipfs_dir / 'api')

    def test_empty_file(self, ipfs_dir):
        (ipfs_dir / 'api').write_text('\n')

        with pytest.raises(LocalApiUnavailableError):
            read_api_multiaddr(ipfs_dir / 'api')


class TestEndpointResolver:
    """Tests for EndpointResolver."""

    @pytest.mark.asyncio
    async def test_local_endpoint(self, local_config):
        endpoint = await EndpointResolver(local_config).resolve()

        assert endpoint.is_local
        assert str(endpoint.url) == 'http://127.0.0.1:5001/'

    @pytest.mark.asyncio
    async def test_missing_tcp_component(self, ipfs_dir, offline_config):
        (ipfs_dir / 'api').write_text('/ip4/127.0.0.1')

        with pytest.raises(LocalApiUnavailableError):
            await EndpointResolver(offline_config).resolve()

    @pytest.mark.asyncio
    async def test_missing_file_without_fallback(self, offline_config):
        with pytest.raises(LocalApiUnavailableError):
            await EndpointResolver(offline_config).resolve(allow_gateway=False)

    @pytest.mark.asyncio
    async def test_missing_file_with_fallback(self, offline_config):
        endpoint = await EndpointResolver(offline_config).resolve(allow_gateway=True)

        assert not endpoint.is_local
        assert str(endpoint.url) == PUBLIC_GATEWAY_URL

    @pytest.mark.asyncio
    async def test_file_is_reread_every_call(self, ipfs_dir, local_config):
        resolver = EndpointResolver(local_config)
        first = await resolver.resolve()

        (ipfs_dir / 'api').write_text('/ip4/127.0.0.1/tcp/5002')
        second = await resolver.resolve()

        assert first.url.port == 5001
        assert second.url.port == 5002

    @pytest.mark.asyncio
    async def test_default_location_under_home(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Path, 'home', classmethod(lambda cls: tmp_path))
        (tmp_path / '.ipfs').mkdir()
        (tmp_path / '.ipfs' / 'api').write_text('/ip4/127.0.0.1/tcp/5001')
        config = Config()
        config.data['ipfs_path'] = None

        endpoint = await EndpointResolver(config).resolve()

        assert str(endpoint.url) == 'http://127.0.0.1:5001/'

    @pytest.mark.asyncio
    async def test_home_cannot_be_determined(self, monkeypatch):
        def no_home(cls):
            raise RuntimeError('Could not determine home directory.')

        monkeypatch.setattr(Path, 'home', classmethod(no_home))
        config = Config()
        config.data['ipfs_path'] = None

        with pytest.raises(LocalApiUnavailableError):
            await EndpointResolver(config).resolve()

        endpoint = await EndpointResolver(config).resolve(allow_gateway=True)
        assert not endpoint.is_local
