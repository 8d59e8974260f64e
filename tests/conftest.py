import hashlib
from unittest import mock

import pytest

from fetchbin.config import Config

STUB_OK = b"#!/bin/sh\necho stubtool 2.1.0\nexit 0\n"
STUB_BAD_HELP = b'#!/bin/sh\ncase "$1" in\n  --help) echo "no help" >&2; exit 3 ;;\nesac\nexit 0\n'
STUB_BAD_VERSION = b'#!/bin/sh\ncase "$1" in\n  --version) exit 1 ;;\nesac\nexit 0\n'

BASE_URL = "https://example.invalid/releases/download/v2.1.0"


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def manifest_text(digest: str, name: str = "stubtool", extra: str = "") -> str:
    sections = [
        "[package]",
        f"name = {name}",
        "version = 2.1.0",
        "description = Stub tool used by the test-suite",
        "homepage = https://example.invalid/stubtool",
        "caveats = Run stubtool --help to get started.",
        "",
    ]
    for os_name, release_os in (("mac", "macos"), ("linux", "linux")):
        for arch in ("arm64", "amd64"):
            sections += [
                f"[artifact {os_name} {arch}]",
                f"url = {BASE_URL}/{name}-{release_os}-{arch}",
                f"sha256 = {digest}",
                "",
            ]
    return "\n".join(sections) + extra


def fake_response(data: bytes = b"", status: int = 200, reason: str = "OK", headers=None):
    resp = mock.MagicMock()
    resp.__enter__.return_value = resp
    resp.status_code = status
    resp.reason = reason
    resp.ok = 200 <= status < 400
    resp.headers = headers if headers is not None else {"content-length": str(len(data))}
    resp.iter_content.return_value = [data[i:i + 7] for i in range(0, len(data), 7)]
    return resp


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.setenv("FETCHBIN_CONFIG_DIR", str(tmp_path / "config"))
    cfg = Config()
    cfg.install_dir = tmp_path / "bin"
    cfg.progress = False
    cfg.verify_timeout = 10
    return cfg


@pytest.fixture
def manifest_file(tmp_path):
    def _write(data: bytes = STUB_OK, digest=None, name: str = "stubtool"):
        path = tmp_path / f"{name}.conf"
        path.write_text(manifest_text(digest or sha256(data), name=name), encoding="utf-8")
        return path

    return _write
