"""Tests for signing role probes and creation."""
from __future__ import annotations

from conftest import FakeVaultBackend
from devault.components.backend import MountConfiguration
from devault.components.resource import CheckOutcome
from devault.providers.vault.roles import RoleConfig, create_role, has_role


def _mounted(backend: FakeVaultBackend) -> FakeVaultBackend:
    backend.mount("root-ca", MountConfiguration())
    return backend


def test_role_config_payload_drops_unset_values() -> None:
    """Unset role fields are left out of the payload."""
    config = RoleConfig(key_bits=4096, max_ttl="8760h", allow_any_name=True)
    assert config.payload() == {"key_bits": 4096, "max_ttl": "8760h", "allow_any_name": True}


def test_has_role_absent(backend: FakeVaultBackend) -> None:
    """A missing role is ABSENT."""
    assert has_role(_mounted(backend), "root-ca", "root-ca", "example.org", True) is CheckOutcome.ABSENT


def test_has_role_present_after_create(backend: FakeVaultBackend) -> None:
    """A created role for the common name is PRESENT."""
    _mounted(backend)
    create_role(
        backend,
        "root-ca",
        "root-ca",
        RoleConfig(allowed_domains="example.org", allow_subdomains=True, key_bits=4096),
    )
    assert backend.engines["root-ca"].roles["root-ca"]["key_bits"] == 4096
    assert has_role(backend, "root-ca", "root-ca", "example.org", True) is CheckOutcome.PRESENT


def test_has_role_incorrect_on_domain_mismatch(backend: FakeVaultBackend) -> None:
    """A role for another domain is INCORRECT."""
    _mounted(backend)
    create_role(backend, "root-ca", "root-ca", RoleConfig(allowed_domains="other.org", allow_subdomains=True))
    assert has_role(backend, "root-ca", "root-ca", "example.org", True) is CheckOutcome.INCORRECT


def test_has_role_incorrect_on_subdomain_mismatch(backend: FakeVaultBackend) -> None:
    """A role without subdomains is INCORRECT."""
    _mounted(backend)
    create_role(backend, "root-ca", "root-ca", RoleConfig(allowed_domains="example.org", allow_subdomains=False))
    assert has_role(backend, "root-ca", "root-ca", "example.org", True) is CheckOutcome.INCORRECT


def test_has_role_accepts_comma_separated_domains() -> None:
    """allowed_domains may come back as a comma-separated string."""
    class _Backend:
        def read(self, path: str) -> dict[str, object]:
            return {"data": {"allowed_domains": "a.org, example.org", "allow_subdomains": True}}

    assert has_role(_Backend(), "m", "r", "example.org", True) is CheckOutcome.PRESENT  # type: ignore[arg-type]
