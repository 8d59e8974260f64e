from __future__ import annotations

import atexit
import hashlib
import sys
from dataclasses import dataclass
from typing import Optional

import requests
import urllib3
from requests.adapters import HTTPAdapter, Retry
from tqdm import tqdm

from . import __version__
from .config import Config
from .errors import DownloadError, IntegrityError
from .logger import setup_logger

_logger = setup_logger()

CHUNK_SIZE = 65536


@dataclass(frozen=True)
class Download:
    url: str
    data: bytes
    sha256: str


def check_digest(download: Download, expected_sha256: str) -> None:
    if download.sha256.lower() != expected_sha256.lower():
        _logger.debug("Discarding %d bytes from %s", len(download.data), download.url)
        raise IntegrityError(download.url, expected_sha256.lower(), download.sha256)


def content_length(url: str, headers) -> int:
    """Declared body size, 0 when absent. Repeated identical values are accepted."""
    raw = headers.get("content-length")
    if not raw:
        return 0
    values = {v.strip() for v in str(raw).split(",")}
    if len(values) != 1:
        raise DownloadError(f"{url} sent conflicting Content-Length values: {raw!r}")
    value = values.pop()
    if not value.isdigit():
        raise DownloadError(f"{url} sent an invalid Content-Length: {raw!r}")
    return int(value)


class Downloader:
    """
    Release artifact download engine.

    download() streams and hashes; fetch() additionally refuses to return
    bytes whose sha256 differs from the expected digest.
    """

    def __init__(self, config: Config) -> None:
        self.config = config

        # Network Configuration
        self.proxy_url = getattr(self.config, "proxy_url", None)
        self.verify_ssl = getattr(self.config, "verify_ssl", True)
        self.ca_bundle = getattr(self.config, "ca_bundle", None)
        self.retries = getattr(self.config, "retries", 0)
        self.max_size = getattr(self.config, "max_size_mb", 512) * 1024 * 1024
        self.progress = getattr(self.config, "progress", True)

        # Timeouts (Connect, Read)
        self.timeout = (
            getattr(self.config, "timeout_connect", 10),
            getattr(self.config, "timeout_read", 60),
        )

        self.session: Optional[requests.Session] = None
        self._init_session()
        atexit.register(self.close)

    def _init_session(self) -> None:
        self.session = requests.Session()
        self.session.headers["User-Agent"] = f"fetchbin/{__version__}"

        # Only explicit config decides proxies
        self.session.trust_env = False
        if self.proxy_url:
            self.session.proxies.update({
                "http": self.proxy_url,
                "https": self.proxy_url,
            })

        # Transport retries are opt-in; installer stages never retry
        retry_strategy = Retry(
            total=self.retries,
            backoff_factor=0.3,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["HEAD", "GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        if not self.verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            self.session.verify = False
            _logger.warning("SSL verification disabled (Insecure).")
        else:
            self.session.verify = self.ca_bundle if self.ca_bundle else True

    def close(self) -> None:
        if self.session:
            self.session.close()

    def _progress_bar(self, total: int, desc: str) -> tqdm:
        enabled = self.progress and sys.stderr.isatty()
        return tqdm(total=total or None, unit="B", unit_scale=True, desc=desc, disable=not enabled)

    def download(self, url: str) -> Download:
        """
        Download url into memory, hashing chunks as they arrive.

        Raises DownloadError for transport failures, non-2xx responses and
        oversized bodies. The returned bytes are NOT yet verified.
        """
        hasher = hashlib.sha256()
        chunks = []
        received = 0

        _logger.debug("Downloading %s", url)
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as resp:
                if not resp.ok:
                    raise DownloadError(f"GET {url} returned HTTP {resp.status_code} {resp.reason or ''}".rstrip())

                total = content_length(url, resp.headers)
                if total > self.max_size:
                    raise DownloadError(f"{url} is too large ({total} bytes)")

                with self._progress_bar(total, url.rsplit("/", 1)[-1]) as bar:
                    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        received += len(chunk)
                        if received > self.max_size:
                            raise DownloadError(f"{url} exceeded the {self.max_size} byte download limit")
                        hasher.update(chunk)
                        chunks.append(chunk)
                        bar.update(len(chunk))
        except requests.exceptions.RequestException as exc:
            raise DownloadError(f"Download of {url} failed: {exc}") from exc

        _logger.debug("Downloaded %s (%d bytes)", url, received)
        return Download(url=url, data=b"".join(chunks), sha256=hasher.hexdigest())

    def fetch(self, url: str, expected_sha256: str) -> bytes:
        """Download url and return its bytes only if the sha256 matches."""
        result = self.download(url)
        check_digest(result, expected_sha256)
        return result.data
