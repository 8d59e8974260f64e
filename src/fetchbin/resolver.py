"""Artifact selection for the host OS/architecture."""

from __future__ import annotations

from typing import Optional

from .errors import UnsupportedPlatformError
from .manifest import ArtifactDescriptor, Manifest
from .platforms import PlatformKey, detect_platform


def lookup(manifest: Manifest, key: PlatformKey) -> ArtifactDescriptor:
    descriptor = manifest.artifacts.get(key)
    if descriptor is None:
        raise UnsupportedPlatformError(
            f"{manifest.name} {manifest.version} has no build for detected platform {key}"
        )
    return descriptor


def resolve(manifest: Manifest, key: Optional[PlatformKey] = None) -> ArtifactDescriptor:
    """Pure lookup; the key defaults to the detected host platform."""
    return lookup(manifest, key if key is not None else detect_platform())
