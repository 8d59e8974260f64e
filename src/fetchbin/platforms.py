"""Host platform detection for artifact selection."""

from __future__ import annotations

import platform
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class OperatingSystem(Enum):
    MAC = "mac"
    LINUX = "linux"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return bool(value) and value.lower() in (item.value for item in cls)


class Architecture(Enum):
    ARM64 = "arm64"
    AMD64 = "amd64"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return bool(value) and value.lower() in (item.value for item in cls)


@dataclass(frozen=True)
class PlatformKey:
    os_name: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os_name}/{self.arch}"

    @property
    def is_supported(self) -> bool:
        return OperatingSystem.has_value(self.os_name) and Architecture.has_value(self.arch)


SUPPORTED_KEYS: Tuple[PlatformKey, ...] = tuple(
    PlatformKey(os_name.value, arch.value) for os_name in OperatingSystem for arch in Architecture
)

# Names used in upstream release asset file names
RELEASE_OS_NAMES = {
    OperatingSystem.MAC.value: "macos",
    OperatingSystem.LINUX.value: "linux",
}


def normalize_os(system: str) -> str:
    s = system.strip().lower()
    if s.startswith("darwin") or s.startswith("mac"):
        return OperatingSystem.MAC.value
    if s.startswith("linux"):
        return OperatingSystem.LINUX.value
    return s


def normalize_arch(machine: str) -> str:
    m = machine.strip().lower()
    if m in ("x86_64", "amd64", "x64"):
        return Architecture.AMD64.value
    if m in ("aarch64", "arm64") or m.startswith("armv8"):
        return Architecture.ARM64.value
    return m


def platform_key(system: str, machine: str) -> PlatformKey:
    return PlatformKey(os_name=normalize_os(system), arch=normalize_arch(machine))


def detect_platform() -> PlatformKey:
    """Read the host OS and CPU architecture; never taken from user input."""
    return platform_key(platform.system(), platform.machine())
