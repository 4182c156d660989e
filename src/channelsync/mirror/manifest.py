"""
Channel manifest model and TOML codec.

A manifest lists, per package and per target triple, the downloadable
artefacts of one channel snapshot. Values are immutable: normalization builds
new manifests rather than editing loaded ones. Fields the engine does not use
(manifest version, component lists, renames, profiles, ...) are kept in
`extra` so a republished manifest stays consumable by upstream tooling.
"""

import tomllib
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

import aiofiles  # type: ignore[import-untyped]
import tomli_w

from channelsync.constants import (
    ARTEFACT_AVAILABLE_KEY,
    ARTEFACT_HASH_KEY,
    ARTEFACT_URL_KEY,
    ARTEFACT_XZ_HASH_KEY,
    ARTEFACT_XZ_URL_KEY,
    DATE_FORMAT,
    MANIFEST_DATE_KEY,
    MANIFEST_PACKAGES_KEY,
    PACKAGE_TARGETS_KEY,
)
from channelsync.exceptions import FileSystemError, ManifestError, ValidationError

from .digest import Sha256

_ARTEFACT_KEYS = (
    ARTEFACT_AVAILABLE_KEY,
    ARTEFACT_URL_KEY,
    ARTEFACT_HASH_KEY,
    ARTEFACT_XZ_URL_KEY,
    ARTEFACT_XZ_HASH_KEY,
)


@dataclass(frozen=True)
class Artefact:
    """One downloadable file for a package/target, with its optional xz counterpart."""

    available: bool
    url: Optional[str] = None
    hash: Optional[Sha256] = None
    xz_url: Optional[str] = None
    xz_hash: Optional[Sha256] = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def variants(self) -> Iterator[Tuple[str, Optional[Sha256]]]:
        """
        Yield `(url, checksum)` for the primary and compressed variants that have a URL.

        Unavailable artefacts yield nothing regardless of URL presence.
        """
        if not self.available:
            return
        if self.url:
            yield self.url, self.hash
        if self.xz_url:
            yield self.xz_url, self.xz_hash


@dataclass(frozen=True)
class PackageData:
    """The artefacts of one package keyed by target triple."""

    artefacts: Mapping[str, Artefact] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Manifest:
    """A parsed channel manifest."""

    date: date
    packages: Mapping[str, PackageData] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def npackages(self) -> int:
        return len(self.packages)

    @property
    def date_string(self) -> str:
        return self.date.strftime(DATE_FORMAT)

    def artefacts(self) -> Iterator[Tuple[str, str, Artefact]]:
        """Yield `(package, target, artefact)` for every artefact in the manifest."""
        for package, data in self.packages.items():
            for target, artefact in data.artefacts.items():
                yield package, target, artefact


def _optional_string(table: Mapping[str, Any], key: str, where: str) -> Optional[str]:
    value = table.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ManifestError(
            f"Expected a string for '{key}'", field=where, value=repr(value)
        )
    return value


def _optional_hash(table: Mapping[str, Any], key: str, where: str) -> Optional[Sha256]:
    value = _optional_string(table, key, where)
    if value is None:
        return None
    try:
        return Sha256.from_hex(value)
    except ValidationError as e:
        raise ManifestError(
            f"Invalid '{key}' digest", field=where, value=value
        ) from e


def _parse_date(value: Any) -> date:
    # tomllib yields a date for unquoted TOML dates and a str for quoted ones
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value, DATE_FORMAT).date()
        except ValueError as e:
            raise ManifestError(
                "Invalid manifest date", field=MANIFEST_DATE_KEY, value=value
            ) from e
    raise ManifestError(
        "Missing manifest date", field=MANIFEST_DATE_KEY, value=repr(value)
    )


def _parse_artefact(table: Any, where: str) -> Artefact:
    if not isinstance(table, dict):
        raise ManifestError("Expected a table", field=where, value=repr(table))

    available = table.get(ARTEFACT_AVAILABLE_KEY)
    if not isinstance(available, bool):
        raise ManifestError(
            f"Expected a boolean for '{ARTEFACT_AVAILABLE_KEY}'",
            field=where,
            value=repr(available),
        )

    return Artefact(
        available=available,
        url=_optional_string(table, ARTEFACT_URL_KEY, where),
        hash=_optional_hash(table, ARTEFACT_HASH_KEY, where),
        xz_url=_optional_string(table, ARTEFACT_XZ_URL_KEY, where),
        xz_hash=_optional_hash(table, ARTEFACT_XZ_HASH_KEY, where),
        extra={k: v for k, v in table.items() if k not in _ARTEFACT_KEYS},
    )


def _parse_package(table: Any, where: str) -> PackageData:
    if not isinstance(table, dict):
        raise ManifestError("Expected a table", field=where, value=repr(table))

    targets = table.get(PACKAGE_TARGETS_KEY, {})
    if not isinstance(targets, dict):
        raise ManifestError(
            f"Expected a table for '{PACKAGE_TARGETS_KEY}'",
            field=where,
            value=repr(targets),
        )

    return PackageData(
        artefacts={
            target: _parse_artefact(artefact, f"{where}.{PACKAGE_TARGETS_KEY}.{target}")
            for target, artefact in targets.items()
        },
        extra={k: v for k, v in table.items() if k != PACKAGE_TARGETS_KEY},
    )


def manifest_from_dict(document: Mapping[str, Any]) -> Manifest:
    """
    Build a Manifest from a decoded TOML document.

    Raises:
        ManifestError: If required fields are missing or have the wrong type.
    """
    packages = document.get(MANIFEST_PACKAGES_KEY, {})
    if not isinstance(packages, dict):
        raise ManifestError(
            f"Expected a table for '{MANIFEST_PACKAGES_KEY}'",
            field=MANIFEST_PACKAGES_KEY,
            value=repr(packages),
        )

    return Manifest(
        date=_parse_date(document.get(MANIFEST_DATE_KEY)),
        packages={
            name: _parse_package(data, f"{MANIFEST_PACKAGES_KEY}.{name}")
            for name, data in packages.items()
        },
        extra={
            k: v
            for k, v in document.items()
            if k not in (MANIFEST_DATE_KEY, MANIFEST_PACKAGES_KEY)
        },
    )


def _artefact_to_dict(artefact: Artefact) -> Dict[str, Any]:
    table: Dict[str, Any] = dict(artefact.extra)
    table[ARTEFACT_AVAILABLE_KEY] = artefact.available
    if artefact.url is not None:
        table[ARTEFACT_URL_KEY] = artefact.url
    if artefact.hash is not None:
        table[ARTEFACT_HASH_KEY] = artefact.hash.hex
    if artefact.xz_url is not None:
        table[ARTEFACT_XZ_URL_KEY] = artefact.xz_url
    if artefact.xz_hash is not None:
        table[ARTEFACT_XZ_HASH_KEY] = artefact.xz_hash.hex
    return table


def manifest_to_dict(manifest: Manifest) -> Dict[str, Any]:
    """Convert a Manifest back into a TOML-serialisable document."""
    document: Dict[str, Any] = dict(manifest.extra)
    document[MANIFEST_DATE_KEY] = manifest.date_string
    document[MANIFEST_PACKAGES_KEY] = {
        name: {
            **data.extra,
            PACKAGE_TARGETS_KEY: {
                target: _artefact_to_dict(artefact)
                for target, artefact in sorted(data.artefacts.items())
            },
        }
        for name, data in sorted(manifest.packages.items())
    }
    return document


def load_manifest(data: bytes) -> Manifest:
    """
    Decode a manifest from TOML bytes.

    Raises:
        ManifestError: If the document is not valid TOML or not a valid manifest.
    """
    try:
        document = tomllib.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise ManifestError("Failed to decode manifest", details=str(e)) from e
    return manifest_from_dict(document)


def dump_manifest(manifest: Manifest) -> bytes:
    """Encode a manifest as TOML bytes."""
    return tomli_w.dumps(manifest_to_dict(manifest)).encode("utf-8")


async def read_manifest(path: Path) -> Manifest:
    """
    Read and decode the manifest file at `path`.

    Raises:
        FileSystemError: If the file cannot be read.
        ManifestError: If the contents are not a valid manifest.
    """
    try:
        async with aiofiles.open(path, "rb") as f:
            data = await f.read()
    except OSError as e:
        raise FileSystemError(
            "Failed to read manifest", path=str(path), details=str(e)
        ) from e
    return load_manifest(data)
