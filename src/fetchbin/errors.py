"""Error kinds raised by the installer stages.

Every error is terminal for the current run; the CLI maps each kind to a
distinct process exit code.
"""


class FetchbinError(Exception):
    exit_code = 1


class UnsupportedPlatformError(FetchbinError):
    exit_code = 3


class DownloadError(FetchbinError):
    exit_code = 4


class IntegrityError(FetchbinError):
    exit_code = 5

    def __init__(self, url: str, expected: str, actual: str) -> None:
        super().__init__(f"Checksum mismatch for {url}: expected sha256 {expected}, got {actual}")
        self.url = url
        self.expected = expected
        self.actual = actual


class FilesystemError(FetchbinError):
    exit_code = 6


class VerificationError(FetchbinError):
    exit_code = 7


class ManifestError(FetchbinError):
    exit_code = 8


class ConfigError(FetchbinError):
    exit_code = 9
