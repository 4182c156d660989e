"""
Tests for the channelsync exception hierarchy.
"""

import pytest

from channelsync.exceptions import (
    BadChecksumError,
    ChannelOverlapError,
    ChannelParseError,
    ChannelSyncError,
    ConfigFileError,
    ConfigurationError,
    ConfigValidationError,
    DownloadError,
    FileSystemError,
    HTTPError,
    ManifestError,
    MixedChannelKindError,
    NetworkError,
    UnsupportedSchemeError,
    ValidationError,
)

pytestmark = pytest.mark.unit


class TestChannelSyncError:
    """Test the base exception."""

    def test_message_only(self):
        error = ChannelSyncError("Something failed")
        assert str(error) == "Something failed"
        assert error.details is None

    def test_message_with_details(self):
        error = ChannelSyncError("Something failed", details="disk full")
        assert str(error) == "Something failed - disk full"

    def test_can_be_raised_and_caught(self):
        with pytest.raises(ChannelSyncError):
            raise ChannelSyncError("boom")


class TestHierarchy:
    """Every domain error is catchable as ChannelSyncError."""

    @pytest.mark.parametrize(
        "error_cls, parent",
        [
            (ConfigFileError, ConfigurationError),
            (ConfigValidationError, ConfigurationError),
            (ConfigurationError, ChannelSyncError),
            (ChannelParseError, ValidationError),
            (ManifestError, ValidationError),
            (ValidationError, ChannelSyncError),
            (ChannelOverlapError, ChannelSyncError),
            (MixedChannelKindError, ChannelSyncError),
            (UnsupportedSchemeError, DownloadError),
            (NetworkError, DownloadError),
            (HTTPError, DownloadError),
            (BadChecksumError, DownloadError),
            (DownloadError, ChannelSyncError),
            (FileSystemError, ChannelSyncError),
        ],
    )
    def test_subclassing(self, error_cls, parent):
        assert issubclass(error_cls, parent)


class TestAttributes:
    """Test attributes carried by specific errors."""

    def test_validation_error(self):
        error = ChannelParseError("Invalid channel", field="channel", value="x:y")
        assert error.field == "channel"
        assert error.value == "x:y"

    def test_channel_overlap(self):
        error = ChannelOverlapError("dist/2024-01-02/a.tar.gz", ["nightly:2024-01-02", "beta:2024-01-02"])
        assert error.path == "dist/2024-01-02/a.tar.gz"
        assert error.channels == ("nightly:2024-01-02", "beta:2024-01-02")
        assert str(error) == (
            "Channels overlap at 'dist/2024-01-02/a.tar.gz' "
            "(nightly:2024-01-02, beta:2024-01-02)"
        )

    def test_channel_overlap_without_channels(self):
        assert str(ChannelOverlapError("dist/x")) == "Channels overlap at 'dist/x'"

    def test_mixed_channel_kind(self):
        error = MixedChannelKindError("stable")
        assert error.name == "stable"
        assert "stable" in str(error)

    def test_unsupported_scheme(self):
        error = UnsupportedSchemeError("ftp", url="ftp://h/a")
        assert error.scheme == "ftp"
        assert error.url == "ftp://h/a"
        assert str(error) == "Unsupported URL scheme 'ftp'"

    def test_http_error(self):
        error = HTTPError("HTTP error 404", status_code=404, url="https://h/a", details="Not Found")
        assert error.status_code == 404
        assert error.url == "https://h/a"
        assert str(error) == "HTTP error 404 - Not Found"

    def test_bad_checksum(self):
        error = BadChecksumError("https://h/a", expected="aa", actual="bb")
        assert error.expected == "aa"
        assert error.actual == "bb"
        assert str(error) == "Bad checksum for 'https://h/a' - expected aa, got bb"

    def test_bad_checksum_without_digests(self):
        assert BadChecksumError("https://h/a").details is None

    def test_file_system_error(self):
        error = FileSystemError("Failed to write cached file", path="/srv/x", details="EACCES")
        assert error.path == "/srv/x"
        assert str(error) == "Failed to write cached file - EACCES"
