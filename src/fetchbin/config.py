import configparser
import os
from pathlib import Path
from typing import Optional

from .errors import ConfigError
from .logger import setup_logger

_logger = setup_logger()


class Config:
    def __init__(self, config_dir: Optional[Path] = None) -> None:
        env_dir = os.environ.get("FETCHBIN_CONFIG_DIR", "").strip()
        if config_dir is None:
            config_dir = Path(env_dir) if env_dir else Path.home() / ".config" / "fetchbin"
        self.config_dir = Path(config_dir)
        self.config_path = self.config_dir / "fetchbin.conf"

        # Default values
        self.install_dir: Path = Path.home() / ".local" / "bin"
        self.manifest: Optional[Path] = None
        self.progress: bool = True

        # Network Defaults
        self.timeout_connect: int = 10
        self.timeout_read: int = 60
        self.retries: int = 0
        self.verify_ssl: bool = True
        self.proxy_url: Optional[str] = None
        self.ca_bundle: Optional[str] = None
        self.max_size_mb: int = 512

        # Post-install smoke test
        self.verify_timeout: int = 30

        self.load()

    def load(self) -> None:
        parser = configparser.ConfigParser(interpolation=None)
        try:
            if not self.config_path.exists():
                _logger.debug(f"Config file {self.config_path} not found. Creating default config.")
                self._write_default_config()
            parser.read(self.config_path)
        except (OSError, configparser.Error) as exc:
            raise ConfigError(f"Cannot read config {self.config_path}: {exc}") from exc

        try:
            self._apply(parser)
        except ValueError as exc:
            raise ConfigError(f"Invalid value in {self.config_path}: {exc}") from exc

    def _apply(self, parser: configparser.ConfigParser) -> None:
        # [general]
        self.install_dir = Path(parser.get("general", "install_dir", fallback=str(self.install_dir))).expanduser()
        m_path = parser.get("general", "manifest", fallback="")
        self.manifest = Path(m_path).expanduser() if m_path else None
        self.progress = parser.getboolean("general", "progress", fallback=self.progress)

        # [network]
        if parser.has_section("network"):
            self.timeout_connect = parser.getint("network", "timeout_connect", fallback=10)
            self.timeout_read = parser.getint("network", "timeout_read", fallback=60)
            self.retries = parser.getint("network", "retries", fallback=0)
            self.verify_ssl = parser.getboolean("network", "verify_ssl", fallback=True)
            self.max_size_mb = parser.getint("network", "max_size_mb", fallback=512)

            # Handle empty strings mapping to None
            ca = parser.get("network", "ca_bundle", fallback=None)
            self.ca_bundle = ca if ca else None
            p_url = parser.get("network", "proxy_url", fallback=None)
            self.proxy_url = p_url if p_url else None

        # [verify]
        self.verify_timeout = parser.getint("verify", "timeout", fallback=self.verify_timeout)

        for name in ("timeout_connect", "timeout_read", "retries", "max_size_mb", "verify_timeout"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    def _write_default_config(self) -> None:
        parser = configparser.ConfigParser(interpolation=None)
        parser["general"] = {
            "install_dir": str(self.install_dir),
            "manifest": str(self.manifest) if self.manifest else "",
            "progress": str(self.progress).lower(),
        }
        parser["network"] = {
            "timeout_connect": str(self.timeout_connect),
            "timeout_read": str(self.timeout_read),
            "retries": str(self.retries),
            "verify_ssl": str(self.verify_ssl).lower(),
            "ca_bundle": self.ca_bundle or "",
            "proxy_url": self.proxy_url or "",
            "max_size_mb": str(self.max_size_mb),
        }
        parser["verify"] = {
            "timeout": str(self.verify_timeout),
        }
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with self.config_path.open("w") as f:
            parser.write(f)
        _logger.info(f"Default config written to {self.config_path}")
