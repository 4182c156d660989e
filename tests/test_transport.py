"""
Tests for the transport collaborators.

Covers:
- Scheme dispatch and rejection of unsupported schemes
- HttpDownloader session lifecycle
- Mapping of HTTP statuses and aiohttp failures onto channelsync errors
"""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import aiohttp
import pytest

from channelsync.exceptions import HTTPError, NetworkError, UnsupportedSchemeError
from channelsync.mirror.transport import HttpDownloader, SchemeDispatcher

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


def _mock_session(response=None, get_side_effect=None):
    session = AsyncMock()
    session.closed = False
    session.get = Mock(return_value=response, side_effect=get_side_effect)
    return session


def _mock_response(status=200, body=b"", reason="OK"):
    response = AsyncMock()
    response.status = status
    response.reason = reason
    response.read = AsyncMock(return_value=body)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=False)
    return response


class TestHttpDownloaderSession:
    """Test session management."""

    async def test_session_created_lazily(self):
        downloader = HttpDownloader(max_connections=3, timeout=10)
        assert downloader._session is None
        assert downloader.timeout.total == 10

    async def test_ensure_session_uses_connection_limit(self, mocker):
        downloader = HttpDownloader(max_connections=3)
        with (
            patch.object(aiohttp, "TCPConnector") as mock_connector,
            patch.object(aiohttp, "ClientSession") as mock_session_cls,
        ):
            mock_session = mocker.MagicMock()
            mock_session.closed = False
            mock_session_cls.return_value = mock_session

            session = await downloader._ensure_session()

            assert session is mock_session
            mock_connector.assert_called_once_with(limit=3)

    async def test_non_positive_connection_limit_clamped(self):
        assert HttpDownloader(max_connections=0).max_connections == 1

    async def test_close_with_session(self, mocker):
        downloader = HttpDownloader()
        mock_session = mocker.MagicMock()
        mock_session.closed = False
        mock_session.close = AsyncMock()
        downloader._session = mock_session

        await downloader.close()

        mock_session.close.assert_called_once()
        assert downloader._session is None

    async def test_close_without_session(self):
        downloader = HttpDownloader()
        await downloader.close()
        assert downloader._session is None


class TestHttpDownloaderFetch:
    """Test HttpDownloader.fetch."""

    async def test_returns_body(self):
        downloader = HttpDownloader()
        downloader._session = _mock_session(_mock_response(body=b"payload"))

        assert await downloader.fetch("https://up/a.tar.gz") == b"payload"

    async def test_partial_content_is_success(self):
        downloader = HttpDownloader()
        downloader._session = _mock_session(_mock_response(status=206, body=b"part"))

        assert await downloader.fetch("https://up/a.tar.gz") == b"part"

    @pytest.mark.parametrize("status", [101, 302, 304, 400, 404, 500, 503])
    async def test_error_status_raises_http_error(self, status):
        downloader = HttpDownloader()
        response = _mock_response(status=status, reason="Nope")
        downloader._session = _mock_session(response)

        with pytest.raises(HTTPError) as exc_info:
            await downloader.fetch("https://up/a.tar.gz")

        assert exc_info.value.status_code == status
        assert exc_info.value.url == "https://up/a.tar.gz"
        assert exc_info.value.details == "Nope"
        response.read.assert_not_called()

    async def test_client_error_raises_network_error(self):
        downloader = HttpDownloader()
        downloader._session = _mock_session(
            get_side_effect=aiohttp.ClientConnectionError("connection refused")
        )

        with pytest.raises(NetworkError) as exc_info:
            await downloader.fetch("https://up/a.tar.gz")

        assert "connection refused" in str(exc_info.value)

    async def test_payload_error_raises_network_error(self):
        downloader = HttpDownloader()
        response = _mock_response()
        response.read = AsyncMock(side_effect=aiohttp.ClientPayloadError("truncated"))
        downloader._session = _mock_session(response)

        with pytest.raises(NetworkError):
            await downloader.fetch("https://up/a.tar.gz")

    async def test_timeout_raises_network_error(self):
        downloader = HttpDownloader()
        downloader._session = _mock_session(get_side_effect=asyncio.TimeoutError())

        with pytest.raises(NetworkError, match="timed out"):
            await downloader.fetch("https://up/a.tar.gz")


class TestSchemeDispatcher:
    """Test SchemeDispatcher routing."""

    @pytest.mark.parametrize(
        "url", ["ftp://up/a.tar.gz", "file:///tmp/a.tar.gz", "s3://bucket/a", "/a.tar.gz"]
    )
    async def test_unsupported_scheme_rejected_before_io(self, url):
        http = Mock(spec=HttpDownloader)
        http.fetch = AsyncMock()
        dispatcher = SchemeDispatcher(http)

        with pytest.raises(UnsupportedSchemeError) as exc_info:
            await dispatcher.fetch(url)

        assert exc_info.value.url == url
        http.fetch.assert_not_called()

    @pytest.mark.parametrize("url", ["http://up/a", "https://up/a", "HTTPS://up/a"])
    async def test_http_schemes_routed(self, url):
        http = Mock(spec=HttpDownloader)
        http.fetch = AsyncMock(return_value=b"body")
        dispatcher = SchemeDispatcher(http)

        assert await dispatcher.fetch(url) == b"body"
        http.fetch.assert_awaited_once_with(url)

    async def test_context_manager_closes_http(self):
        http = Mock(spec=HttpDownloader)
        http.__aenter__ = AsyncMock(return_value=http)
        http.close = AsyncMock()

        async with SchemeDispatcher(http) as dispatcher:
            assert dispatcher.http is http

        http.close.assert_awaited_once()
