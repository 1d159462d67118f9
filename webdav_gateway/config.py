# webdav_gateway/config.py
"""
Configuration management using Pydantic Settings.
"""
from dataclasses import dataclass
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from webdav_gateway.file_access.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    SLACK_WEBHOOK_URL: Optional[str] = None
    # Remote WebDAV server; all three are required at request time, not at import
    WEBDAV_URL: Optional[str] = None
    WEBDAV_USERNAME: Optional[str] = None
    WEBDAV_PASSWORD: Optional[str] = None
    # Applied to every outbound call (connect, read, write, pool)
    WEBDAV_TIMEOUT_SECONDS: float = 30.0
    WEBDAV_UPLOAD_MAX_ATTEMPTS: int = Field(3, ge=1)
    WEBDAV_UPLOAD_RETRY_DELAY: float = Field(1.0, ge=0)
    WEBDAV_MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    # 0 disables the resolved-endpoint cache (probe on every request)
    WEBDAV_ENDPOINT_CACHE_TTL: float = 0.0
    # Top-level folder for uploads that carry no category
    WEBDAV_LEGACY_ROOT_FOLDER: str = "Clients"


settings = Settings()


@dataclass(frozen=True)
class WebDAVConfig:
    """Credentials and base URL for one gateway invocation."""
    base_url: str
    username: str
    password: str

    def __repr__(self) -> str:
        # Never render the password
        return f"WebDAVConfig(base_url={self.base_url!r}, username={self.username!r}, password=***)"


def config_presence(source: Settings = None) -> dict:
    """Presence booleans for the WebDAV credentials, safe to log."""
    source = source or settings
    return {
        "WEBDAV_URL": bool(source.WEBDAV_URL),
        "WEBDAV_USERNAME": bool(source.WEBDAV_USERNAME),
        "WEBDAV_PASSWORD": bool(source.WEBDAV_PASSWORD),
    }


def load_webdav_config(source: Settings = None) -> WebDAVConfig:
    """Build a WebDAVConfig or raise ConfigurationError naming the missing variables."""
    source = source or settings
    missing = [name for name, present in config_presence(source).items() if not present]
    if missing:
        raise ConfigurationError(
            "WebDAV configuration is not complete",
            details=f"Missing required environment variables: {', '.join(missing)}",
        )
    return WebDAVConfig(
        base_url=source.WEBDAV_URL.strip(),
        username=source.WEBDAV_USERNAME,
        password=source.WEBDAV_PASSWORD,
    )
