"""
Pydantic v2 Configuration Models for DataLocker

Provides strict, typed configuration for:
- Storage root and URL list location
- HTTP client settings (user agent, timeout, redirects, keep-alive pool)
- Lock policy (staleness threshold, process marker)
- Logging

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ROOT = Path("/tmp/datalocker")


class HttpClientConfig(BaseModel):
    """Configuration for HTTP client behavior."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    user_agent: str = Field(default="DataLocker/0.1", description="User-Agent string")
    timeout_s: Optional[float] = Field(
        default=None, description="Request timeout in seconds (None = no timeout)"
    )
    follow_redirects: bool = Field(default=True, description="Follow 3xx redirects")
    max_keepalive_connections: int = Field(default=10, description="Keep-alive pool size")
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")

    @field_validator("timeout_s")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("timeout_s must be > 0 or None")
        return v

    @field_validator("max_keepalive_connections")
    @classmethod
    def validate_pool(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_keepalive_connections must be >= 1")
        return v


class LockPolicy(BaseModel):
    """Configuration for per-source lock files."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    stale_after_seconds: float = Field(
        default=180.0, description="Age after which a held lock may be reclaimed"
    )
    process_marker: str = Field(
        default="datalocker",
        description="Substring identifying this tool in a process command line",
    )
    stop_stale_owner: bool = Field(
        default=True, description="Signal a live owner before reclaiming its stale lock"
    )

    @field_validator("stale_after_seconds")
    @classmethod
    def validate_stale_after(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("stale_after_seconds must be > 0")
        return v

    @field_validator("process_marker")
    @classmethod
    def validate_marker(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("process_marker must not be empty")
        return v.strip()


class LoggingConfig(BaseModel):
    """Configuration for the logging sink."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    level: str = Field(default="INFO", description="Root log level name")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Format used when no logging config file is present",
    )
    config_file: str = Field(
        default=".logconf",
        description="logging.config.fileConfig file, relative to the storage root",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        name = v.upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"Unknown log level: {v}")
        return name


class DataLockerConfig(BaseModel):
    """
    Single source of truth for DataLocker configuration.

    Loaded from file (YAML/JSON), overlaid with environment variables,
    and finally overridden by CLI arguments. Precedence: file < env < CLI.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", validate_assignment=True)

    root: Path = Field(default=DEFAULT_ROOT, description="Storage root directory")
    url_list_name: str = Field(default=".urllist", description="URL list filename under root")
    http: HttpClientConfig = Field(
        default_factory=HttpClientConfig, description="HTTP client configuration"
    )
    locks: LockPolicy = Field(default_factory=LockPolicy, description="Lock policy")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    @field_validator("url_list_name")
    @classmethod
    def validate_url_list_name(cls, v: str) -> str:
        if not v or "/" in v:
            raise ValueError("url_list_name must be a plain filename")
        return v

    @property
    def url_list_path(self) -> Path:
        return self.root / self.url_list_name

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Returns:
            Hex-encoded SHA256 hash of normalized config JSON.
        """
        import hashlib
        import json

        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()
