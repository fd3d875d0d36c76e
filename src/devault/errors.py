"""Error hierarchy for devault.

Every error raised by the provisioning and checking code derives from
``DevaultError`` so the CLI can turn it into a non-zero exit in one place.
"""

from __future__ import annotations


class DevaultError(Exception):
    """Base exception for all devault errors."""


class PreconditionError(DevaultError):
    """A required parameter or backend capability is missing."""


class BackendError(DevaultError):
    """The secrets backend rejected a call."""


class BackendUnreachable(BackendError):
    """The secrets backend could not be reached."""


class DecodeError(DevaultError):
    """A backend response lacks an expected field or has the wrong shape."""


class CertificateGenerationFailed(DecodeError):
    """Root certificate generation returned no secret."""


class ConfigurationMismatch(DevaultError):
    """A resource exists but conflicts with the requested configuration."""


class FileEmissionError(DevaultError):
    """Writing certificate or key material to disk failed."""


__all__ = [
    "DevaultError",
    "PreconditionError",
    "BackendError",
    "BackendUnreachable",
    "DecodeError",
    "CertificateGenerationFailed",
    "ConfigurationMismatch",
    "FileEmissionError",
]
