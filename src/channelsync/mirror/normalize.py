"""
Rewrite a manifest so its artefact URLs point at the mirror.
"""

from dataclasses import replace
from typing import Optional

from .channel import Channel
from .layout import archive_path
from .manifest import Manifest, PackageData


def mirror_url(host: str, manifest: Manifest, url: str) -> str:
    """Return the URL under `host` at which the artefact originally at `url` is served."""
    return f"{host.rstrip('/')}/{archive_path(manifest, url)}"


def _relocate(host: str, manifest: Manifest, url: Optional[str]) -> Optional[str]:
    if url is None:
        return None
    return mirror_url(host, manifest, url)


def normalize_manifest(channel: Channel, manifest: Manifest, host: str) -> Manifest:
    """
    Build a copy of `manifest` with every artefact URL rewritten to `host`.

    Each URL becomes `host + dist/<date>/<file>`, the file name taken from the
    original URL. Checksums, availability flags and unmodelled fields are carried
    over unchanged; the input manifest is not modified.

    Parameters:
        channel (Channel): The channel the manifest belongs to.
        manifest (Manifest): The upstream manifest.
        host (str): Base URL of the mirror, e.g. `https://mirror.example/`.

    Returns:
        Manifest: The normalized manifest.

    Raises:
        ManifestError: If an artefact URL has no file name.
    """
    del channel  # archive paths depend on the manifest date only
    packages = {}
    for name, data in manifest.packages.items():
        artefacts = {
            target: replace(
                artefact,
                url=_relocate(host, manifest, artefact.url),
                xz_url=_relocate(host, manifest, artefact.xz_url),
            )
            for target, artefact in data.artefacts.items()
        }
        packages[name] = PackageData(artefacts=artefacts, extra=data.extra)
    return replace(manifest, packages=packages)

