"""
fetchbin - install prebuilt command-line binaries from a package manifest.

Modules:
- cli: Command-line interface entry point.
- operations: Install state machine and command implementations.
- manifest: Package manifest loading and validation.
- resolver: Host platform to artifact lookup.
- downloader: Download and checksum engine.
- installer: Atomic placement and removal of binaries.
- verifier: Post-install smoke test.
- config: Configuration management.
"""

__version__ = "1.0.0"

from .cli import main

__all__ = ["main", "__version__"]
