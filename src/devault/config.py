"""Typed configuration loaded from environment variables and CLI overrides."""

from __future__ import annotations

import logging
from enum import StrEnum
from urllib.parse import urlsplit

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger: logging.Logger = logging.getLogger(__name__)

_DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}


class LogLevel(StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class VaultSettings(BaseSettings):
    """Connection settings for the secrets backend.

    Values come from ``VAULT_``-prefixed environment variables or a ``.env``
    file; keyword overrides passed to ``load`` (the CLI flags) win over both.
    """

    model_config = SettingsConfigDict(
        env_prefix="VAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    token: str = ""
    api_url: str = "http://127.0.0.1:8200"
    public_url: str = ""
    client_cert: str = ""
    client_key: str = ""
    ca_cert: str = ""
    log_level: LogLevel = LogLevel.WARNING

    @field_validator("api_url", "public_url")
    @classmethod
    def normalize_url(cls, value: str, info: ValidationInfo) -> str:
        """Strip any trailing slash; ``public_url`` may be empty, otherwise a host is required."""
        value = value.rstrip("/")
        if not value and info.field_name == "public_url":
            return value
        parts = urlsplit(value)
        if not parts.scheme or not parts.hostname:
            raise ValueError(f"{value!r} is not an absolute URL with a host")
        try:
            parts.port
        except ValueError as exc:
            raise ValueError(f"{value!r} has an invalid port") from exc
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def load(cls, **overrides: object) -> VaultSettings:
        """Load settings, applying any non-``None`` overrides.

        Logs the resolved non-secret settings at DEBUG level.
        Raises ``pydantic.ValidationError`` on invalid values.
        """
        settings = cls(**{k: v for k, v in overrides.items() if v is not None})  # type: ignore[arg-type]
        logger.debug(
            "vault_settings_loaded",
            extra={
                "api_url": settings.api_url,
                "public_url": settings.public_base_url(),
                "client_cert": settings.client_cert or None,
                "ca_cert": settings.ca_cert or None,
                "log_level": settings.log_level.value,
            },
        )
        return settings

    def client_cert_pair(self) -> tuple[str, str] | None:
        """Return ``(cert, key)`` for mutual TLS, or ``None`` if either is unset."""
        if self.client_cert and self.client_key:
            return (self.client_cert, self.client_key)
        return None

    def public_base_url(self) -> str:
        """Return the externally reachable backend URL as ``scheme://host:port``.

        CA and CRL URLs written into an intermediate mount are derived from
        this value, and the intermediate status check compares against it.
        """
        parts = urlsplit(self.public_url or self.api_url)
        host = parts.hostname or ""
        if ":" in host:
            host = f"[{host}]"
        port = parts.port or _DEFAULT_PORTS.get(parts.scheme)
        if port is None:
            return f"{parts.scheme}://{host}"
        return f"{parts.scheme}://{host}:{port}"
