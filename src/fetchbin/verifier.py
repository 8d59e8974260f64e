from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Sequence, Union

from .errors import VerificationError
from .logger import setup_logger

_logger = setup_logger()

SMOKE_FLAGS = ("--version", "--help")


def run_flag(binary: Union[str, Path], flag: str, timeout: int = 30) -> None:
    cmd = [str(binary), flag]
    try:
        proc = subprocess.run(cmd, capture_output=True, timeout=timeout, check=False)
    except subprocess.TimeoutExpired as exc:
        raise VerificationError(f"'{' '.join(cmd)}' did not finish within {timeout}s") from exc
    except OSError as exc:
        # ENOENT, EACCES, ENOEXEC (wrong architecture or not a binary)
        raise VerificationError(f"Cannot execute '{' '.join(cmd)}': {exc}") from exc

    _logger.debug("%s -> exit %d", " ".join(cmd), proc.returncode)
    if proc.stdout:
        _logger.debug(proc.stdout.decode("utf-8", errors="replace").rstrip())
    if proc.returncode != 0:
        if proc.stderr:
            _logger.debug(proc.stderr.decode("utf-8", errors="replace").rstrip())
        raise VerificationError(f"'{' '.join(cmd)}' exited with status {proc.returncode}")


def verify(binary: Union[str, Path], flags: Sequence[str] = SMOKE_FLAGS, timeout: int = 30) -> None:
    """Smoke-test an installed binary: every flag must exit 0."""
    for flag in flags:
        run_flag(binary, flag, timeout=timeout)
