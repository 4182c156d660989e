import asyncio
import hashlib
from datetime import date
from pathlib import Path

import pytest

_ASYNC_NETWORK_BLOCK_MSG = (
    "Async network access is blocked during tests. Inject a fake Downloader "
    "or mock aiohttp.ClientSession."
)


async def _async_block_network(*_args, **_kwargs):
    """
    Prevent async network calls during tests by raising a RuntimeError.

    Raises:
        RuntimeError: `_ASYNC_NETWORK_BLOCK_MSG` explaining that async network access is blocked.
    """
    raise RuntimeError(_ASYNC_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used across the test suite."""
    config.addinivalue_line("markers", "unit: fast, isolated tests")
    config.addinivalue_line("markers", "integration: full pipeline tests")
    config.addinivalue_line("markers", "configuration: configuration loading tests")
    config.addinivalue_line("markers", "user_interface: command line tests")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point the default configuration file into a temporary directory and reset log level overrides.
    """
    config_dir = tmp_path_factory.mktemp("channelsync-config")
    monkeypatch.delenv("CHANNELSYNC_LOG_LEVEL", raising=False)

    import channelsync.config as config_module

    monkeypatch.setattr(config_module, "CONFIG_DIR", str(config_dir))
    monkeypatch.setattr(
        config_module, "CONFIG_FILE", str(config_dir / "channelsync.yaml")
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing aiohttp entry points with a blocker.
    """
    import aiohttp

    aiohttp.request = _async_block_network
    aiohttp.ClientSession.request = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.get = _async_block_network  # type: ignore[assignment]


# =============================================================================
# Fake transport and manifest builders
# =============================================================================


def sha256_hex(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of `data`."""
    return hashlib.sha256(data).hexdigest()


class FakeDownloader:
    """
    In-memory Downloader serving fixed bodies by URL.

    Attributes:
        bodies: URL to body mapping served by `fetch`.
        errors: URL to exception raised instead of serving a body.
        calls: Every URL fetched, in call order.
        delay: Seconds each fetch suspends for, to exercise concurrency.
        in_flight / max_in_flight: Concurrency observed while fetching.
    """

    def __init__(self, bodies=None, errors=None, delay=0.0):
        self.bodies = dict(bodies or {})
        self.errors = dict(errors or {})
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, url):
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if url in self.errors:
                raise self.errors[url]
            if url not in self.bodies:
                from channelsync.exceptions import HTTPError

                raise HTTPError("HTTP error 404", status_code=404, url=url)
            return self.bodies[url]
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_downloader():
    """Provide a factory for FakeDownloader instances."""
    return FakeDownloader


def make_artefact(url=None, body=None, xz_url=None, xz_body=None, available=True):
    """Build an Artefact whose hashes match the given bodies (None bodies leave hashes absent)."""
    from channelsync.mirror import Artefact, Sha256

    return Artefact(
        available=available,
        url=url,
        hash=Sha256.of(body) if body is not None else None,
        xz_url=xz_url,
        xz_hash=Sha256.of(xz_body) if xz_body is not None else None,
    )


def make_manifest(manifest_date, artefacts):
    """
    Build a Manifest from `{package: {target: Artefact}}`.

    Parameters:
        manifest_date (date | str): The manifest date.
        artefacts (dict): Nested package/target mapping of Artefacts.
    """
    from channelsync.mirror import Manifest, PackageData

    if isinstance(manifest_date, str):
        manifest_date = date.fromisoformat(manifest_date)
    return Manifest(
        date=manifest_date,
        packages={
            package: PackageData(artefacts=targets)
            for package, targets in artefacts.items()
        },
    )


@pytest.fixture
def manifest_factory():
    """Expose manifest and artefact builders to tests."""

    class _Factory:
        artefact = staticmethod(make_artefact)
        manifest = staticmethod(make_manifest)
        sha256_hex = staticmethod(sha256_hex)

    return _Factory


@pytest.fixture
def cache_root(tmp_path) -> Path:
    """A not-yet-created cache root inside the test's temp directory."""
    return tmp_path / "cache"
