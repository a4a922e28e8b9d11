"""Configuration loading from TOML files with environment variable fallbacks."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import tomli

DEFAULT_CONFIG_PATHS = [
    Path("config.toml"),
    Path.home() / ".config" / "spiris-tui" / "config.toml",
]

DEFAULT_CLIENT_ID = "your_client_id"
DEFAULT_CLIENT_SECRET = "your_client_secret"
DEFAULT_REDIRECT_URI = "http://localhost:8080/callback"
DEFAULT_DB_PATH = ".spiris_session.db"
DEFAULT_LOG_FILE = "spiris_tui.log"
DEFAULT_LOG_LEVEL = "INFO"

PRODUCTION_API_URL = "https://eaccountingapi.vismaonline.com/v2"
SANDBOX_API_URL = "https://eaccountingapi-sandbox.test.vismaonline.com/v2"
PRODUCTION_IDENTITY_URL = "https://identity.vismaonline.com"
SANDBOX_IDENTITY_URL = "https://identity-sandbox.test.vismaonline.com"


@dataclass(frozen=True)
class SpirisConfig:
    """Spiris API and OAuth client configuration."""

    client_id: str
    client_secret: str
    environment: str
    redirect_uri: str

    @property
    def is_sandbox(self) -> bool:
        """Check if using sandbox environment."""
        return self.environment == "sandbox"

    @property
    def api_base_url(self) -> str:
        return SANDBOX_API_URL if self.is_sandbox else PRODUCTION_API_URL

    @property
    def authorize_url(self) -> str:
        identity = SANDBOX_IDENTITY_URL if self.is_sandbox else PRODUCTION_IDENTITY_URL
        return f"{identity}/connect/authorize"

    @property
    def token_url(self) -> str:
        identity = SANDBOX_IDENTITY_URL if self.is_sandbox else PRODUCTION_IDENTITY_URL
        return f"{identity}/connect/token"


@dataclass(frozen=True)
class StorageConfig:
    """Session storage configuration."""

    path: Path


@dataclass(frozen=True)
class SecurityConfig:
    """Security configuration."""

    encryption_key: str | None


@dataclass(frozen=True)
class LoggingConfig:
    """Log file configuration."""

    path: Path
    level: str


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    spiris: SpirisConfig
    storage: StorageConfig
    security: SecurityConfig
    logging: LoggingConfig


def find_config_file() -> Path | None:
    """Find the first existing config file from default paths."""
    for path in DEFAULT_CONFIG_PATHS:
        if path.exists():
            return path
    return None


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from TOML file with environment variable fallbacks."""
    path = config_path or find_config_file()
    toml_data = _load_toml_data(path)
    return _build_config(toml_data, path)


def _load_toml_data(config_path: Path | None) -> dict:
    """Load TOML data from file if it exists."""
    if config_path and config_path.exists():
        with open(config_path, "rb") as f:
            return tomli.load(f)
    return {}


def _build_config(toml_data: dict, config_path: Path | None) -> Config:
    """Build Config object from TOML data and environment variables."""
    return Config(
        spiris=_build_spiris_config(toml_data.get("spiris", {})),
        storage=_build_storage_config(toml_data.get("storage", {}), config_path),
        security=_build_security_config(toml_data.get("security", {})),
        logging=_build_logging_config(toml_data.get("logging", {})),
    )


def _build_spiris_config(spiris_data: dict) -> SpirisConfig:
    """Build Spiris config from TOML data and env vars."""
    client_id = os.environ.get(
        "SPIRIS_CLIENT_ID", spiris_data.get("client_id", DEFAULT_CLIENT_ID)
    )
    client_secret = os.environ.get(
        "SPIRIS_CLIENT_SECRET", spiris_data.get("client_secret", DEFAULT_CLIENT_SECRET)
    )
    environment = os.environ.get(
        "SPIRIS_ENVIRONMENT", spiris_data.get("environment", "production")
    )
    redirect_uri = os.environ.get(
        "SPIRIS_REDIRECT_URI", spiris_data.get("redirect_uri", DEFAULT_REDIRECT_URI)
    )
    return SpirisConfig(
        client_id=client_id,
        client_secret=client_secret,
        environment=environment,
        redirect_uri=redirect_uri,
    )


def _resolve(path_str: str, config_path: Path | None) -> Path:
    """Resolve a relative path against the config file location."""
    path = Path(path_str)
    if not path.is_absolute() and config_path:
        path = config_path.parent / path
    return path


def _build_storage_config(storage_data: dict, config_path: Path | None) -> StorageConfig:
    """Build storage config, resolving relative paths against config file location."""
    db_path = os.environ.get("SPIRIS_DB_PATH", storage_data.get("path", DEFAULT_DB_PATH))
    return StorageConfig(path=_resolve(db_path, config_path))


def _build_security_config(security_data: dict) -> SecurityConfig:
    """Build security config from TOML data and env vars."""
    encryption_key = os.environ.get(
        "SPIRIS_ENCRYPTION_KEY", security_data.get("encryption_key") or None
    )
    return SecurityConfig(encryption_key=encryption_key)


def _build_logging_config(logging_data: dict) -> LoggingConfig:
    log_file = os.environ.get("SPIRIS_LOG_FILE", logging_data.get("path", DEFAULT_LOG_FILE))
    level = os.environ.get("SPIRIS_LOG_LEVEL", logging_data.get("level", DEFAULT_LOG_LEVEL))
    return LoggingConfig(path=Path(log_file), level=level.upper())


def configure_logging(logging_config: LoggingConfig) -> None:
    """Send log records to the configured file; the terminal belongs to the UI."""
    logging.basicConfig(
        filename=logging_config.path,
        level=getattr(logging, logging_config.level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
