"""Signing role checks and creation."""

from __future__ import annotations

import logging
from typing import Any

from devault.components.backend import Secret, VaultBackend
from devault.components.resource import CheckOutcome

logger: logging.Logger = logging.getLogger(__name__)


class RoleConfig:
    """Parameters of a PKI signing role.

    Unset (``None`` or empty) values are left out of the request so the
    backend applies its own defaults.
    """

    def __init__(
        self,
        allowed_domains: str = "",
        allow_subdomains: bool | None = None,
        allow_any_name: bool | None = None,
        key_bits: int | None = None,
        max_ttl: str = "",
    ) -> None:
        self.allowed_domains: str = allowed_domains
        self.allow_subdomains: bool | None = allow_subdomains
        self.allow_any_name: bool | None = allow_any_name
        self.key_bits: int | None = key_bits
        self.max_ttl: str = max_ttl

    def payload(self) -> dict[str, Any]:
        return {k: v for k, v in vars(self).items() if v is not None and v != ""}


def role_path(mount: str, role: str) -> str:
    return f"{mount}/roles/{role}"


def _allowed_domains(data: dict[str, Any]) -> list[str]:
    domains = data.get("allowed_domains") or []
    if isinstance(domains, str):
        return [d.strip() for d in domains.split(",") if d.strip()]
    return [str(d) for d in domains]


def has_role(
    backend: VaultBackend,
    mount: str,
    role: str,
    common_name: str,
    allow_subdomains: bool,
) -> CheckOutcome:
    """Probe whether ``role`` exists under ``mount`` for ``common_name``.

    A role that exists but does not list ``common_name`` as an allowed domain,
    or disagrees on ``allow_subdomains``, is ``INCORRECT``. No other role
    parameter is compared.
    """
    secret = backend.read(role_path(mount, role))
    if secret is None or not secret.get("data"):
        outcome = CheckOutcome.ABSENT
    else:
        data = secret["data"]
        matches = common_name in _allowed_domains(data) and bool(
            data.get("allow_subdomains")
        ) == allow_subdomains
        outcome = CheckOutcome.PRESENT if matches else CheckOutcome.INCORRECT
    logger.debug(
        "role_state_checked",
        extra={"mount": mount, "role": role, "outcome": outcome.value},
    )
    return outcome


def create_role(backend: VaultBackend, mount: str, role: str, config: RoleConfig) -> Secret | None:
    """Write ``role`` under ``mount``, replacing any existing definition."""
    logger.info("creating_role", extra={"mount": mount, "role": role})
    return backend.write(role_path(mount, role), config.payload())
