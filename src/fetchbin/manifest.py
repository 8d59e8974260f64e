from __future__ import annotations

import configparser
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union
from urllib.parse import urlparse

from .errors import ManifestError
from .logger import setup_logger
from .platforms import SUPPORTED_KEYS, Architecture, OperatingSystem, PlatformKey

_logger = setup_logger()

BUNDLED_MANIFEST = Path(__file__).parent / "manifests" / "dppm.conf"

_SHA256_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_ARTIFACT_PREFIX = "artifact "


@dataclass(frozen=True)
class ArtifactDescriptor:
    key: PlatformKey
    url: str
    sha256: str

    @property
    def filename(self) -> str:
        return self.url.rstrip("/").rsplit("/", 1)[-1]


@dataclass
class Manifest:
    """
    Declarative description of one prebuilt tool.

    The artifact table holds exactly one descriptor for every supported
    PlatformKey; the loader rejects anything else.
    """

    name: str
    version: str
    description: str = ""
    homepage: str = ""
    caveats: str = ""
    artifacts: Dict[PlatformKey, ArtifactDescriptor] = field(default_factory=dict)
    source: Optional[Path] = None


def is_valid_sha256(value: str) -> bool:
    return bool(_SHA256_RE.match(value or ""))


def _parse_artifact_section(section: str) -> PlatformKey:
    parts = section[len(_ARTIFACT_PREFIX):].split()
    if len(parts) != 2:
        raise ManifestError(f"Malformed artifact section [{section}]; expected [artifact <os> <arch>]")
    os_name, arch = (p.lower() for p in parts)
    if not OperatingSystem.has_value(os_name):
        raise ManifestError(f"Unknown operating system '{os_name}' in [{section}]")
    if not Architecture.has_value(arch):
        raise ManifestError(f"Unknown architecture '{arch}' in [{section}]")
    return PlatformKey(os_name, arch)


def _check_url(url: str, section: str) -> None:
    if not url:
        raise ManifestError(f"[{section}] has no url")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ManifestError(f"[{section}] url is not an http(s) URL: {url}")


def _read_caveats(parser: configparser.ConfigParser, base_dir: Path) -> str:
    caveats_file = parser.get("package", "caveats_file", fallback="").strip()
    if caveats_file:
        path = Path(caveats_file)
        if not path.is_absolute():
            path = base_dir / path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ManifestError(f"Cannot read caveats file {path}: {exc}") from exc
    return parser.get("package", "caveats", fallback="").strip()


def parse_manifest(
    text: str, base_dir: Union[str, Path] = ".", require_digests: bool = True
) -> Manifest:
    """
    Parse and validate manifest text.

    With require_digests (the default) every artifact must carry a real
    64-character sha256; placeholders such as "TBD" are a configuration
    error. Only read-only commands that never download may relax this.
    """
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read_string(text)
    except configparser.Error as exc:
        raise ManifestError(f"Malformed manifest: {exc}") from exc

    if not parser.has_section("package"):
        raise ManifestError("Manifest has no [package] section")

    name = parser.get("package", "name", fallback="").strip()
    version = parser.get("package", "version", fallback="").strip()
    if not name:
        raise ManifestError("[package] name is required")
    if "/" in name or name in (".", ".."):
        raise ManifestError(f"Invalid tool name: {name!r}")
    if not version:
        raise ManifestError("[package] version is required")

    artifacts: Dict[PlatformKey, ArtifactDescriptor] = {}
    seen_urls: Dict[str, PlatformKey] = {}
    for section in parser.sections():
        if not section.startswith(_ARTIFACT_PREFIX):
            continue
        key = _parse_artifact_section(section)
        if key in artifacts:
            raise ManifestError(f"Duplicate artifact for {key}")

        url = parser.get(section, "url", fallback="").strip()
        _check_url(url, section)
        if url in seen_urls:
            raise ManifestError(f"{key} and {seen_urls[url]} share the same url {url}")
        seen_urls[url] = key

        digest = parser.get(section, "sha256", fallback="").strip()
        if not is_valid_sha256(digest):
            if require_digests:
                raise ManifestError(
                    f"[{section}] sha256 {digest!r} is not a 64-character hex digest; "
                    "fill in the release checksum before installing"
                )
            _logger.debug("Ignoring unresolved sha256 for %s", key)
        artifacts[key] = ArtifactDescriptor(key=key, url=url, sha256=digest.lower())

    missing = [str(k) for k in SUPPORTED_KEYS if k not in artifacts]
    if missing:
        raise ManifestError(f"Manifest has no artifact for: {', '.join(missing)}")

    return Manifest(
        name=name,
        version=version,
        description=parser.get("package", "description", fallback="").strip(),
        homepage=parser.get("package", "homepage", fallback="").strip(),
        caveats=_read_caveats(parser, Path(base_dir)),
        artifacts=artifacts,
    )


def load_manifest(path: Optional[Union[str, Path]] = None, require_digests: bool = True) -> Manifest:
    """Load a manifest file; None selects the bundled DPPM manifest."""
    manifest_path = Path(path) if path else BUNDLED_MANIFEST
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Cannot read manifest {manifest_path}: {exc}") from exc

    _logger.debug("Loading manifest %s", manifest_path)
    manifest = parse_manifest(text, base_dir=manifest_path.parent, require_digests=require_digests)
    manifest.source = manifest_path
    return manifest
