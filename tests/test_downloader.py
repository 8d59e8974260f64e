from unittest import mock

import pytest
import requests

from conftest import STUB_OK, fake_response, sha256
from fetchbin.downloader import Download, Downloader, check_digest
from fetchbin.errors import DownloadError, IntegrityError

URL = "https://example.invalid/releases/download/v2.1.0/stubtool-macos-arm64"


@pytest.fixture
def downloader(config):
    dl = Downloader(config)
    yield dl
    dl.close()


def test_session_follows_config(config):
    config.proxy_url = "http://proxy.invalid:3128"
    config.ca_bundle = "/etc/ssl/corp.pem"
    dl = Downloader(config)

    assert dl.session.trust_env is False
    assert dl.session.proxies["https"] == "http://proxy.invalid:3128"
    assert dl.session.verify == "/etc/ssl/corp.pem"
    assert dl.session.get_adapter("https://x.invalid").max_retries.total == 0
    assert dl.timeout == (config.timeout_connect, config.timeout_read)


def test_insecure_session_disables_verification(config):
    config.verify_ssl = False
    dl = Downloader(config)
    assert dl.session.verify is False


def test_fetch_returns_verified_bytes(downloader):
    with mock.patch.object(downloader.session, "get", return_value=fake_response(STUB_OK)) as mock_get:
        assert downloader.fetch(URL, sha256(STUB_OK)) == STUB_OK
    mock_get.assert_called_once_with(URL, stream=True, timeout=downloader.timeout)


def test_fetch_accepts_uppercase_digest(downloader):
    with mock.patch.object(downloader.session, "get", return_value=fake_response(STUB_OK)):
        assert downloader.fetch(URL, sha256(STUB_OK).upper()) == STUB_OK


def test_fetch_hash_mismatch_raises_integrity_error(downloader):
    expected = sha256(b"something else")
    with mock.patch.object(downloader.session, "get", return_value=fake_response(STUB_OK)):
        with pytest.raises(IntegrityError) as excinfo:
            downloader.fetch(URL, expected)

    err = excinfo.value
    assert err.url == URL
    assert err.expected == expected
    assert err.actual == sha256(STUB_OK)
    assert expected in str(err) and sha256(STUB_OK) in str(err)


def test_download_reports_actual_digest(downloader):
    with mock.patch.object(downloader.session, "get", return_value=fake_response(STUB_OK)):
        result = downloader.download(URL)
    assert result == Download(url=URL, data=STUB_OK, sha256=sha256(STUB_OK))


@pytest.mark.parametrize("status, reason", [(404, "Not Found"), (500, "Internal Server Error"), (403, "Forbidden")])
def test_non_success_status_raises_download_error(downloader, status, reason):
    with mock.patch.object(downloader.session, "get", return_value=fake_response(b"", status=status, reason=reason)):
        with pytest.raises(DownloadError, match=str(status)) as excinfo:
            downloader.fetch(URL, sha256(STUB_OK))
    assert URL in str(excinfo.value)


@pytest.mark.parametrize(
    "exc",
    [
        requests.exceptions.ConnectionError("connection refused"),
        requests.exceptions.Timeout("read timed out"),
        requests.exceptions.SSLError("certificate verify failed"),
        requests.exceptions.ChunkedEncodingError("connection broken"),
    ],
)
def test_transport_failures_raise_download_error(downloader, exc):
    with mock.patch.object(downloader.session, "get", side_effect=exc) as mock_get:
        with pytest.raises(DownloadError, match="failed") as excinfo:
            downloader.fetch(URL, sha256(STUB_OK))
    assert excinfo.value.__cause__ is exc
    assert mock_get.call_count == 1


def test_declared_size_over_limit_is_refused(downloader):
    downloader.max_size = 10
    resp = fake_response(STUB_OK, headers={"content-length": "4096"})
    with mock.patch.object(downloader.session, "get", return_value=resp):
        with pytest.raises(DownloadError, match="too large"):
            downloader.download(URL)
    resp.iter_content.assert_not_called()


def test_streamed_size_over_limit_is_refused(downloader):
    downloader.max_size = 10
    resp = fake_response(STUB_OK, headers={})
    with mock.patch.object(downloader.session, "get", return_value=resp):
        with pytest.raises(DownloadError, match="limit"):
            downloader.download(URL)


def test_check_digest_passes_on_match():
    check_digest(Download(url=URL, data=STUB_OK, sha256=sha256(STUB_OK)), sha256(STUB_OK))


@pytest.mark.parametrize("value", ["abc", "12, 34", "-5", "1e3"])
def test_invalid_content_length_raises_download_error(downloader, value):
    resp = fake_response(STUB_OK, headers={"content-length": value})
    with mock.patch.object(downloader.session, "get", return_value=resp):
        with pytest.raises(DownloadError, match="Content-Length"):
            downloader.fetch(URL, sha256(STUB_OK))
    resp.iter_content.assert_not_called()


def test_repeated_identical_content_length_is_accepted(downloader):
    size = str(len(STUB_OK))
    resp = fake_response(STUB_OK, headers={"content-length": f"{size}, {size}"})
    with mock.patch.object(downloader.session, "get", return_value=resp):
        assert downloader.fetch(URL, sha256(STUB_OK)) == STUB_OK
