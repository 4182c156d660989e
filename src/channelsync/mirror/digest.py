"""
SHA-256 digests for artefact verification.
"""

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles  # type: ignore[import-untyped]

from channelsync.constants import (
    DEFAULT_CHUNK_SIZE,
    SHA256_DIGEST_SIZE,
    SHA256_HEX_LENGTH,
)
from channelsync.exceptions import ValidationError

_HEX_RX = re.compile(rf"^[0-9a-fA-F]{{{SHA256_HEX_LENGTH}}}$")


@dataclass(frozen=True)
class Sha256:
    """A 32-byte SHA-256 digest, rendered as 64 lowercase hex characters."""

    digest: bytes

    def __post_init__(self) -> None:
        if len(self.digest) != SHA256_DIGEST_SIZE:
            raise ValidationError(
                f"SHA-256 digest must be {SHA256_DIGEST_SIZE} bytes",
                field="digest",
                value=self.digest.hex(),
            )

    @classmethod
    def from_hex(cls, value: str) -> "Sha256":
        """
        Parse a hex-encoded digest.

        Raises:
            ValidationError: If `value` is not exactly 64 hexadecimal characters.
        """
        if not _HEX_RX.match(value):
            raise ValidationError(
                "Invalid SHA-256 hex digest", field="hash", value=value
            )
        return cls(bytes.fromhex(value))

    @classmethod
    def of(cls, data: bytes) -> "Sha256":
        """Hash an in-memory byte buffer."""
        return cls(hashlib.sha256(data).digest())

    @classmethod
    async def of_file(cls, path: Path) -> Optional["Sha256"]:
        """
        Hash the file at `path`, streaming it in chunks.

        Returns:
            Optional[Sha256]: The digest, or None if the file does not exist.

        Raises:
            OSError: For read failures other than a missing file.
        """
        sha256_hash = hashlib.sha256()
        try:
            async with aiofiles.open(path, "rb") as f:
                while True:
                    chunk = await f.read(DEFAULT_CHUNK_SIZE)
                    if not chunk:
                        break
                    sha256_hash.update(chunk)
        except FileNotFoundError:
            return None
        return cls(sha256_hash.digest())

    @property
    def hex(self) -> str:
        return self.digest.hex()

    def __str__(self) -> str:
        return self.hex
