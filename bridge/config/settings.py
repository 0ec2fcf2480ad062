"""
Application settings management.

Loads configuration from environment variables (and an optional .env file)
for the bridge service, the item store and the citation-key index.
"""

import os
from pathlib import Path
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_host: str = Field(default="localhost", description="API server host")
    api_port: int = Field(default=23120, description="API server port")

    # Library Configuration
    library_id: int = Field(default=1, description="Library all operations run against")
    library_snapshot: Optional[Path] = Field(
        default=None,
        description="JSON snapshot backing the in-memory item store"
    )
    better_bibtex_url: Optional[str] = Field(
        default=None,
        description="Better BibTeX JSON-RPC URL, e.g. http://localhost:23119/better-bibtex/json-rpc"
    )

    # Request handling
    store_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for the item store before failing a request"
    )
    search_limit: int = Field(default=25, gt=0, description="Default free-text search limit")
    items_limit: int = Field(default=50, gt=0, description="Default top-level listing limit")
    citekey_scan_limit: int = Field(
        default=5000,
        gt=0,
        description="Maximum number of items scanned by the citekey fallback"
    )

    # MCP server
    bridge_url: Optional[str] = Field(
        default=None,
        description="Bridge endpoints used by the MCP server; defaults to http://API_HOST:API_PORT/mcp"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Path to log file")

    # Service identity
    plugin_name: str = Field(default="zotero-mcp-bridge", description="Name reported by /mcp/ping")
    version: str = Field(default="0.1.0", description="Bridge version")

    @field_validator("library_snapshot", "log_file", mode="before")
    @classmethod
    def expand_path(cls, v):
        """Expand user home directory in paths."""
        if v is None:
            return v
        path_str = str(v).strip()
        if not path_str:
            return None
        if path_str.startswith("~"):
            path_str = os.path.expanduser(path_str)
        return Path(path_str)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    def ensure_directories(self):
        """Create necessary directories if they don't exist."""
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
        if self.library_snapshot:
            self.library_snapshot.parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Creates and caches the settings on first call.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.ensure_directories()
    return _settings


def reset_settings():
    """Reset the global settings instance (mainly for testing)."""
    global _settings
    _settings = None
