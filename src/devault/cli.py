"""de-vault command line interface.

Commands are grouped by verb (``init``, ``check``, ``generate``, ``revoke``,
``remove``) with one subcommand per PKI resource. Each invocation resolves
settings once, builds a single ``PkiContext`` and runs one resource
operation, printing a step report to stdout.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import click
from pydantic import ValidationError

from devault.components.backend import VaultBackend
from devault.components.resource import ResourceKind
from devault.config import VaultSettings
from devault.context import PkiContext
from devault.errors import DevaultError
from devault.log import configure_logging
from devault.providers.vault.backend import HvacBackend
from devault.providers.vault.intermediate_ca import (
    DEFAULT_INTERMEDIATE_MOUNT,
    DEFAULT_INTERMEDIATE_ROLE,
)
from devault.providers.vault.root_ca import DEFAULT_ROOT_MOUNT, DEFAULT_ROOT_ROLE
from devault.report import StepReport
from devault.resources import build_resource

logger: logging.Logger = logging.getLogger(__name__)


class CliState:
    """Holds CLI-level overrides until a command needs the context.

    ``backend_factory`` is replaceable so the CLI can run against any
    ``VaultBackend``.
    """

    def __init__(
        self,
        backend_factory: Callable[[VaultSettings], VaultBackend] = HvacBackend.from_settings,
    ) -> None:
        self.backend_factory: Callable[[VaultSettings], VaultBackend] = backend_factory
        self.overrides: dict[str, str | None] = {}

    def context(self) -> PkiContext:
        try:
            settings = VaultSettings.load(**self.overrides)
        except ValidationError as exc:
            raise click.UsageError(str(exc)) from exc
        configure_logging(settings.log_level.value)
        return PkiContext(settings, self.backend_factory(settings))


def _run(state: CliState, kind: ResourceKind, operation: str, **params: str | None) -> None:
    resource = build_resource(kind, state.context(), **params)
    report = StepReport()
    try:
        getattr(resource, operation)(report)
    except DevaultError as exc:
        logger.error("operation_failed", extra={"kind": kind.value, "operation": operation})
        raise click.ClickException(str(exc)) from exc
    finally:
        report.flush()
    incorrect = report.incorrect()
    if incorrect:
        raise click.ClickException(
            "resources exist but are misconfigured: " + ", ".join(label.rstrip(":") for label in incorrect)
        )


pass_state = click.make_pass_decorator(CliState, ensure=True)


@click.group()
@click.option("--token", default=None, help="Token used to authenticate with Vault.")
@click.option("--api-url", default=None, help="URL of the Vault API.")
@click.option("--client-cert", default=None, help="Client certificate for mutual TLS with Vault.")
@click.option("--client-key", default=None, help="Client key for mutual TLS with Vault.")
@click.option("--ca-cert", default=None, help="CA bundle used to verify the Vault server.")
@click.option(
    "--public-url",
    default=None,
    help="Externally reachable Vault URL used for CA and CRL URLs. Defaults to --api-url.",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
)
@click.pass_context
def cli(ctx: click.Context, **overrides: str | None) -> None:
    """Utility for managing PKI in a Vault deployment."""
    state = ctx.ensure_object(CliState)
    state.overrides = overrides


@cli.group("init")
def init_group() -> None:
    """Creates the resources represented by the subcommands."""


@cli.group("check")
def check_group() -> None:
    """Reports the status of the resources represented by the subcommands."""


@cli.group("generate")
def generate_group() -> None:
    """Generates the resources represented by the subcommands."""


@cli.group("revoke")
def revoke_group() -> None:
    """Revokes the resources represented by the subcommands."""


@cli.group("remove")
def remove_group() -> None:
    """Clears out the resources associated with the subcommands."""


def _mount_option(default: str, help: str) -> Callable:
    return click.option("--mount", default=default, show_default=True, help=help)


_common_name = click.option("--common-name", default="", help="Common name for the certificate.")


@init_group.command("root-ca")
@_mount_option(DEFAULT_ROOT_MOUNT, "Path to the root CA pki backend.")
@click.option("--role", default=DEFAULT_ROOT_ROLE, show_default=True, help="Root CA role name.")
@_common_name
@pass_state
def init_root_ca(state: CliState, mount: str, role: str, common_name: str) -> None:
    """Initialize a root CA: backend mount, role and root cert.

    Does not recreate anything that already exists. For a full reset use
    'remove root-ca' followed by 'init root-ca'.
    """
    _run(state, ResourceKind.ROOT_CA, "provision", mount=mount, role=role, common_name=common_name)


@check_group.command("root-ca")
@_mount_option(DEFAULT_ROOT_MOUNT, "Path to the root CA pki backend.")
@click.option("--role", default=DEFAULT_ROOT_ROLE, show_default=True, help="Root CA role name.")
@_common_name
@pass_state
def check_root_ca(state: CliState, mount: str, role: str, common_name: str) -> None:
    """Check whether the root CA backend, role and cert exist."""
    _run(state, ResourceKind.ROOT_CA, "check", mount=mount, role=role, common_name=common_name)


@remove_group.command("root-ca")
@_mount_option(DEFAULT_ROOT_MOUNT, "Path to the root CA pki backend.")
@pass_state
def remove_root_ca(state: CliState, mount: str) -> None:
    """Unmount the root CA backend. Succeeds if it is already unmounted."""
    _run(state, ResourceKind.ROOT_CA, "teardown", mount=mount)


@init_group.command("intermediate-ca")
@_mount_option(DEFAULT_INTERMEDIATE_MOUNT, "Path to the intermediate CA pki backend.")
@click.option(
    "--root-mount", default=DEFAULT_ROOT_MOUNT, show_default=True, help="Path to the root CA pki backend."
)
@click.option(
    "--role", default=DEFAULT_INTERMEDIATE_ROLE, show_default=True, help="Intermediate CA role name."
)
@_common_name
@pass_state
def init_intermediate_ca(
    state: CliState, mount: str, root_mount: str, role: str, common_name: str
) -> None:
    """Initialize an intermediate CA signed by the root CA."""
    _run(
        state,
        ResourceKind.INTERMEDIATE_CA,
        "provision",
        mount=mount,
        root_mount=root_mount,
        role=role,
        common_name=common_name,
    )


@check_group.command("intermediate-ca")
@_mount_option(DEFAULT_INTERMEDIATE_MOUNT, "Path to the intermediate CA pki backend.")
@click.option(
    "--role", default=DEFAULT_INTERMEDIATE_ROLE, show_default=True, help="Intermediate CA role name."
)
@_common_name
@pass_state
def check_intermediate_ca(state: CliState, mount: str, role: str, common_name: str) -> None:
    """Check the intermediate CA backend, role and URL configuration.

    If the backend is not mounted the remaining lines are UNKNOWN.
    """
    _run(
        state, ResourceKind.INTERMEDIATE_CA, "check", mount=mount, role=role, common_name=common_name
    )


@remove_group.command("intermediate-ca")
@_mount_option(DEFAULT_INTERMEDIATE_MOUNT, "Path to the intermediate CA pki backend.")
@pass_state
def remove_intermediate_ca(state: CliState, mount: str) -> None:
    """Unmount the intermediate CA backend. Succeeds if it is already unmounted."""
    _run(state, ResourceKind.INTERMEDIATE_CA, "teardown", mount=mount)


@generate_group.command("tls")
@_mount_option(DEFAULT_INTERMEDIATE_MOUNT, "Path to the issuing intermediate CA pki backend.")
@click.option("--role", default="", help="Role to create for issuing the certificate.")
@_common_name
@click.option("--cert-path", default="", help="File to write the certificate chain to.")
@click.option("--key-path", default="", help="File to write the private key to.")
@pass_state
def generate_tls(
    state: CliState, mount: str, role: str, common_name: str, cert_path: str, key_path: str
) -> None:
    """Generate a new TLS cert/key pair and print its serial number."""
    _run(
        state,
        ResourceKind.TLS,
        "provision",
        mount=mount,
        role=role,
        common_name=common_name,
        cert_path=cert_path,
        key_path=key_path,
    )


_serial_number = click.option("--serial-number", default="", help="Serial number of the TLS cert.")


@check_group.command("tls")
@_mount_option(DEFAULT_INTERMEDIATE_MOUNT, "Path to the issuing intermediate CA pki backend.")
@_serial_number
@pass_state
def check_tls(state: CliState, mount: str, serial_number: str) -> None:
    """Check the status of a TLS cert/key pair by its serial number."""
    _run(state, ResourceKind.TLS, "check", mount=mount, serial_number=serial_number)


@revoke_group.command("tls")
@_mount_option(DEFAULT_INTERMEDIATE_MOUNT, "Path to the issuing intermediate CA pki backend.")
@_serial_number
@pass_state
def revoke_tls(state: CliState, mount: str, serial_number: str) -> None:
    """Revoke a TLS cert/key pair by its serial number."""
    _run(state, ResourceKind.TLS, "teardown", mount=mount, serial_number=serial_number)


def main() -> None:
    cli(prog_name="de-vault")
