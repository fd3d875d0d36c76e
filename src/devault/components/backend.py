"""Provider-agnostic secrets backend interface."""

from __future__ import annotations

import logging
from typing import Any, Protocol

logger: logging.Logger = logging.getLogger(__name__)

Secret = dict[str, Any]


class MountConfiguration:
    """Flattened configuration for mounting a secrets engine."""

    def __init__(
        self,
        type: str = "pki",
        description: str = "",
        default_lease_ttl: str = "",
        max_lease_ttl: str = "",
    ) -> None:
        """Initialise a mount configuration.

        Args:
            type: Secrets engine type, ``"pki"`` for every mount managed here.
            description: Human-readable mount description.
            default_lease_ttl: Default lease TTL such as ``"720h"``; empty keeps the backend default.
            max_lease_ttl: Maximum lease TTL such as ``"87600h"``; empty keeps the backend default.
        """
        self.type: str = type
        self.description: str = description
        self.default_lease_ttl: str = default_lease_ttl
        self.max_lease_ttl: str = max_lease_ttl

    def tuning(self) -> dict[str, str]:
        """Return the non-empty lease TTL settings."""
        return {
            key: value
            for key, value in (
                ("default_lease_ttl", self.default_lease_ttl),
                ("max_lease_ttl", self.max_lease_ttl),
            )
            if value
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MountConfiguration):
            return NotImplemented
        return vars(self) == vars(other)

    def __repr__(self) -> str:
        return f"MountConfiguration({vars(self)!r})"


class VaultBackend(Protocol):
    """Low-level path operations against the secrets backend.

    Every method raises ``BackendError`` (or ``BackendUnreachable``) when the
    call fails; callers propagate those unchanged.

    ``read``, ``write`` and ``delete`` return the response secret, a mapping
    with a ``"data"`` key, or ``None`` when the backend returned no body
    (``read`` also returns ``None`` for a path that does not exist).

    ``upserts_roles`` declares that writing ``{mount}/roles/{name}`` replaces
    an existing role, so role creation is safe to repeat.
    """

    @property
    def upserts_roles(self) -> bool: ...

    def list_mounts(self) -> dict[str, dict[str, Any]]: ...

    def mount(self, path: str, config: MountConfiguration) -> None: ...

    def unmount(self, path: str) -> None: ...

    def mount_config(self, path: str) -> dict[str, Any]: ...

    def tune_mount(self, path: str, config: MountConfiguration) -> None: ...

    def read(self, path: str) -> Secret | None: ...

    def write(self, path: str, data: dict[str, Any]) -> Secret | None: ...

    def delete(self, path: str) -> Secret | None: ...
