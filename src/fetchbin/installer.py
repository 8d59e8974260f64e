"""
Placement of verified artifacts on disk.

Writes go to a temporary file in the destination directory and are then
renamed over the destination, so the installed path only ever holds a
complete executable (old or new).
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Union

from .errors import FilesystemError
from .logger import setup_logger

_logger = setup_logger()

EXECUTABLE_MODE = 0o755


def target_path(install_dir: Union[str, Path], tool_name: str) -> Path:
    return Path(install_dir) / tool_name


def _fsync_dir(directory: Path) -> None:
    """Persist the directory entry so the rename survives a crash."""
    fd = os.open(str(directory), os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def place(data: bytes, install_dir: Union[str, Path], tool_name: str) -> Path:
    """Atomically write data to <install_dir>/<tool_name> with mode 0755."""
    destination = target_path(install_dir, tool_name)
    tmp_path = None
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        # Same directory as the destination so the rename stays on one filesystem
        tf = tempfile.NamedTemporaryFile(
            dir=str(destination.parent),
            prefix=f".{tool_name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = Path(tf.name)
        with tf:
            tf.write(data)
            tf.flush()
            os.fsync(tf.fileno())
        os.chmod(tmp_path, EXECUTABLE_MODE)
        os.replace(tmp_path, destination)
        tmp_path = None
        _fsync_dir(destination.parent)
    except OSError as exc:
        raise FilesystemError(f"Cannot install {destination}: {exc}") from exc
    finally:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)

    _logger.debug("Placed %d bytes at %s", len(data), destination)
    return destination


def remove(install_dir: Union[str, Path], tool_name: str) -> bool:
    """Delete an installed binary. Returns False when nothing was installed."""
    destination = target_path(install_dir, tool_name)
    if not destination.exists() and not destination.is_symlink():
        _logger.warning("%s is not installed", destination)
        return False
    try:
        destination.unlink()
    except OSError as exc:
        raise FilesystemError(f"Cannot remove {destination}: {exc}") from exc
    _logger.debug("Removed %s", destination)
    return True
