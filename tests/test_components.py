"""Verify that the resource interface and dispatch are importable and well-typed."""
from __future__ import annotations

import pytest

from devault.components.backend import MountConfiguration, VaultBackend
from devault.components.resource import CheckOutcome, PkiResource, ResourceKind
from devault.context import PkiContext
from devault.errors import DevaultError, PreconditionError
from devault.providers.vault.intermediate_ca import IntermediateCA
from devault.providers.vault.root_ca import RootCA
from devault.providers.vault.tls import TlsCert
from devault.resources import build_resource


def test_protocols_are_importable() -> None:
    assert VaultBackend is not None
    assert PkiResource is not None


def test_resource_kind_values() -> None:
    assert ResourceKind.ROOT_CA == "root-ca"
    assert ResourceKind.INTERMEDIATE_CA == "intermediate-ca"
    assert ResourceKind.TLS == "tls"


def test_check_outcome_members() -> None:
    assert {o.name for o in CheckOutcome} == {"PRESENT", "INCORRECT", "ABSENT", "UNKNOWN"}


def test_mount_configuration_equality() -> None:
    assert MountConfiguration(max_lease_ttl="1h") == MountConfiguration(max_lease_ttl="1h")
    assert MountConfiguration(max_lease_ttl="1h") != MountConfiguration(max_lease_ttl="2h")


def test_errors_share_a_base() -> None:
    assert issubclass(PreconditionError, DevaultError)


@pytest.mark.parametrize(
    ("kind", "expected"),
    [
        (ResourceKind.ROOT_CA, RootCA),
        (ResourceKind.INTERMEDIATE_CA, IntermediateCA),
        (ResourceKind.TLS, TlsCert),
    ],
)
def test_build_resource_dispatches_on_kind(context: PkiContext, kind: ResourceKind, expected: type) -> None:
    resource = build_resource(kind, context, mount="m")
    assert isinstance(resource, expected)
    assert resource.kind is kind


def test_build_resource_keeps_defaults_for_none(context: PkiContext) -> None:
    resource = build_resource(ResourceKind.ROOT_CA, context, mount=None, common_name="example.org")
    assert resource._args.mount == "root-ca"  # type: ignore[attr-defined]
