from __future__ import annotations

import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from . import installer, resolver, verifier
from .config import Config
from .downloader import Downloader, check_digest
from .logger import Colors, setup_logger
from .manifest import ArtifactDescriptor, Manifest, is_valid_sha256, load_manifest
from .platforms import SUPPORTED_KEYS, PlatformKey, detect_platform

_logger = setup_logger()

# module-level singletons (initialized by init(cfg))
_cfg: Optional[Config] = None
downloader: Optional[Downloader] = None


# -------------------------
# Initialization
# -------------------------
def init(config: Config) -> None:
    """Initialize singleton instances from config."""
    global _cfg, downloader
    _cfg = config
    downloader = Downloader(_cfg)
    _logger.debug("operations initialized with install_dir=%s", _cfg.install_dir)


def _ensure_initialized() -> None:
    if not all((_cfg, downloader)):
        raise RuntimeError("operations not initialized; call operations.init(config) first")


def _load(manifest: Optional[str], require_digests: bool = True) -> Manifest:
    return load_manifest(manifest or _cfg.manifest, require_digests=require_digests)


def _install_dir(install_dir: Optional[str]) -> Path:
    return Path(install_dir).expanduser() if install_dir else _cfg.install_dir


def print_delimiter(title: str) -> None:
    """Print a terminal-width delimiter with centered title."""
    width = shutil.get_terminal_size((80, 20)).columns
    title_len = len(title) + 2
    side_len = max(0, (width - title_len) // 2)
    print("=" * side_len + f" {title} " + "=" * max(0, width - side_len - title_len))


# -------------------------
# Install pipeline
# -------------------------
class Stage(Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    DOWNLOADING = "downloading"
    VERIFYING_INTEGRITY = "verifying-integrity"
    PLACING = "placing"
    VERIFYING_INSTALL = "verifying-install"
    DONE = "done"
    FAILED = "failed"


@dataclass
class InstallResult:
    manifest: Manifest
    platform: Optional[PlatformKey] = None
    artifact: Optional[ArtifactDescriptor] = None
    path: Optional[Path] = None
    stage: Stage = Stage.IDLE
    failed_stage: Optional[Stage] = None
    verified: bool = False


class Installation:
    """
    One run of the install state machine.

    Stages run strictly in order; the first error moves the run to FAILED
    and is re-raised to the caller. Nothing is retried.
    """

    def __init__(self, manifest: Manifest, fetcher: Downloader, install_dir: Path,
                 skip_verify: bool = False, verify_timeout: int = 30) -> None:
        self.result = InstallResult(manifest=manifest)
        self.fetcher = fetcher
        self.install_dir = Path(install_dir)
        self.skip_verify = skip_verify
        self.verify_timeout = verify_timeout

    @property
    def stage(self) -> Stage:
        return self.result.stage

    def _enter(self, stage: Stage) -> None:
        _logger.debug("%s -> %s", self.result.stage.value, stage.value)
        self.result.stage = stage

    def run(self) -> InstallResult:
        if self.result.stage is not Stage.IDLE:
            raise RuntimeError("installation already ran")
        manifest = self.result.manifest
        try:
            self._enter(Stage.RESOLVING)
            self.result.platform = detect_platform()
            artifact = resolver.lookup(manifest, self.result.platform)
            self.result.artifact = artifact
            _logger.info("Detected %s; using %s", self.result.platform, artifact.url)

            self._enter(Stage.DOWNLOADING)
            download = self.fetcher.download(artifact.url)
            self._enter(Stage.VERIFYING_INTEGRITY)
            check_digest(download, artifact.sha256)
            _logger.info("Checksum OK (sha256 %s)", download.sha256)

            self._enter(Stage.PLACING)
            self.result.path = installer.place(download.data, self.install_dir, manifest.name)
            _logger.info("Installed %s", self.result.path)

            if not self.skip_verify:
                self._enter(Stage.VERIFYING_INSTALL)
                verifier.verify(self.result.path, timeout=self.verify_timeout)
                self.result.verified = True
        except Exception:
            self.result.failed_stage = self.result.stage
            self._enter(Stage.FAILED)
            raise

        self._enter(Stage.DONE)
        return self.result


def run_install(manifest: Manifest, install_dir: Path, skip_verify: bool = False) -> InstallResult:
    _ensure_initialized()
    return Installation(
        manifest, downloader, install_dir, skip_verify=skip_verify, verify_timeout=_cfg.verify_timeout
    ).run()


# -------------------------
# Commands
# -------------------------
def install(manifest: Optional[str] = None, install_dir: Optional[str] = None, skip_verify: bool = False) -> InstallResult:
    _ensure_initialized()
    m = _load(manifest)
    print(f"Installing {m.name} {m.version}...")
    result = run_install(m, _install_dir(install_dir), skip_verify=skip_verify)

    status = "OK" if result.verified else "UNVERIFIED"
    color = Colors.GREEN if result.verified else Colors.YELLOW
    print(f"[{color}{status}{Colors.RESET}] {m.name} {m.version} -> {result.path}")
    if m.caveats:
        print_delimiter("Caveats")
        print(m.caveats.rstrip())
    return result


def uninstall(manifest: Optional[str] = None, install_dir: Optional[str] = None) -> None:
    _ensure_initialized()
    m = _load(manifest, require_digests=False)
    target_dir = _install_dir(install_dir)
    if installer.remove(target_dir, m.name):
        print(f"Removed {installer.target_path(target_dir, m.name)}")


def resolve(manifest: Optional[str] = None) -> ArtifactDescriptor:
    _ensure_initialized()
    m = _load(manifest)
    artifact = resolver.resolve(m)
    print(f"{'PLATFORM':<10} {artifact.key}")
    print(f"{'URL':<10} {artifact.url}")
    print(f"{'SHA256':<10} {artifact.sha256}")
    return artifact


def info(manifest: Optional[str] = None) -> None:
    _ensure_initialized()
    m = _load(manifest, require_digests=False)
    print(f"{m.name} {m.version}")
    if m.description:
        print(m.description)
    if m.homepage:
        print(f"Homepage: {m.homepage}")
    print()
    print(f"{'PLATFORM':<14} {'SHA256':<10} URL")
    print("-" * 80)
    for key in SUPPORTED_KEYS:
        artifact = m.artifacts[key]
        digest = artifact.sha256[:8] if is_valid_sha256(artifact.sha256) else "missing"
        print(f"{str(key):<14} {digest:<10} {artifact.url}")
    if m.caveats:
        print_delimiter("Caveats")
        print(m.caveats.rstrip())


def verify(manifest: Optional[str] = None, install_dir: Optional[str] = None) -> None:
    _ensure_initialized()
    m = _load(manifest, require_digests=False)
    binary = installer.target_path(_install_dir(install_dir), m.name)
    verifier.verify(binary, timeout=_cfg.verify_timeout)
    print(f"[{Colors.GREEN}OK{Colors.RESET}] {binary} --version / --help")
