"""Application configuration via Pydantic Settings.

All configuration is driven by environment variables (case-insensitive) and
an optional ``.env`` file.  Invalid values raise a ``ValidationError`` at
startup so misconfigured deployments fail fast.

Usage::

    from fileinspector.config import get_settings

    settings = get_settings()
    print(settings.plugin_dir)

The ``get_settings`` function is cached with ``functools.lru_cache``. To override
settings in tests, set the relevant environment variables and call
``get_settings.cache_clear()``.
"""
from __future__ import annotations

import functools
import hashlib
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent

_AV_ENGINES = ("subprocess", "clamd")


class Settings(BaseSettings):
    """FileInspector settings.

    Environment variables are read case-insensitively. A ``.env`` file in the
    working directory is loaded automatically when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Templates and plugins
    plugin_dir: Path = Field(
        default=_PACKAGE_DIR / "plugins",
        description="Directory searched for optional validator bundles",
    )
    library_manifest_path: Path = Field(
        default=_PACKAGE_DIR / "resources" / "libraries.json",
        description="JSON manifest listing known optional validator bundles",
    )
    signatures_path: Path = Field(
        default=_PACKAGE_DIR / "resources" / "signatures.json",
        description="JSON magic-number template",
    )

    # File set
    scan_root: Path | None = Field(
        default=None,
        description=(
            "Directory the HTTP API may scan inside; requests for paths outside it "
            "are refused.  Unset refuses every API scan request."
        ),
    )
    scan_recursive: bool = Field(
        default=False,
        description="Include files in subdirectories of the scan path",
    )

    # Whitelists and bounds (comma-separated lists in the environment)
    allowed_extensions: Annotated[list[str], NoDecode] = Field(default_factory=list)
    allowed_checksums: Annotated[list[str], NoDecode] = Field(default_factory=list)
    checksum_algorithm: str = Field(
        default="md5",
        description="hashlib algorithm used by the checksum whitelist",
    )
    min_size_bytes: int | None = Field(default=None, ge=0)
    max_size_bytes: int | None = Field(default=None, ge=0)
    format_verification: bool = Field(
        default=False,
        description="Run format-specific validators from loaded plugin bundles",
    )

    # Local antivirus
    av_engine: str = Field(
        default="subprocess",
        description="Local AV engine: 'subprocess' (external executable) or 'clamd'",
    )
    av_executable: str | None = Field(default=None, description="Scanner executable path")
    av_arguments: str = Field(
        default="",
        description="Scanner argument string; '{path}' is replaced by the scan path",
    )
    clamd_host: str = Field(default="localhost")
    clamd_port: int = Field(default=3310, ge=1, le=65535)
    clamd_socket_path: str | None = Field(default=None)

    # VirusTotal
    virustotal_api_key: str | None = Field(default=None)
    virustotal_base_url: str = Field(default="https://www.virustotal.com/api/v3")
    virustotal_quota: int = Field(
        default=4,
        ge=0,
        description="Maximum files per scan before the VirusTotal step disables itself",
    )
    virustotal_alert_threshold: float = Field(
        default=0.10,
        ge=0.0,
        le=1.0,
        description="Fraction of engines that must flag a file to reject it",
    )
    virustotal_timeout_seconds: float = Field(default=30.0, gt=0)

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment: development, staging, or production",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode (never set True in production)",
    )
    log_level: str = Field(default="INFO")

    @field_validator("allowed_extensions", "allowed_checksums", mode="before")
    @classmethod
    def split_comma_separated(cls, v: object) -> object:
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("checksum_algorithm")
    @classmethod
    def validate_checksum_algorithm(cls, v: str) -> str:
        v = v.lower()
        if v not in hashlib.algorithms_available:
            raise ValueError(f"unknown checksum algorithm {v!r}")
        return v

    @field_validator("av_engine")
    @classmethod
    def validate_av_engine(cls, v: str) -> str:
        v = v.lower()
        if v not in _AV_ENGINES:
            raise ValueError(f"av_engine must be one of {', '.join(_AV_ENGINES)}")
        return v


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached application settings singleton.

    The first call reads environment variables (and ``.env``). Subsequent calls
    return the cached instance. Clear the cache with ``get_settings.cache_clear()``
    between tests.
    """
    return Settings()
