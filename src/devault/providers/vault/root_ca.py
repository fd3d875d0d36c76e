"""Root CA: mount, signing role and self-signed root certificate."""

from __future__ import annotations

import logging

from devault.components.backend import MountConfiguration
from devault.components.resource import CheckOutcome, ResourceKind, require
from devault.context import PkiContext
from devault.errors import ConfigurationMismatch
from devault.providers.vault import certs
from devault.providers.vault.mounts import ensure_mounted, ensure_unmounted, is_mounted
from devault.providers.vault.roles import RoleConfig, create_role, has_role
from devault.report import StepReport

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_ROOT_MOUNT: str = "root-ca"
DEFAULT_ROOT_ROLE: str = "root-ca"
ROOT_MAX_LEASE_TTL: str = "87600h"


class RootCAArgs:
    """Arguments for the root CA resource.

    Args:
        mount: Path of the root CA PKI backend.
        role: Name of the signing role on the root CA backend.
        common_name: Common name of the root certificate; also the role's allowed domain.
    """

    def __init__(
        self,
        mount: str = DEFAULT_ROOT_MOUNT,
        role: str = DEFAULT_ROOT_ROLE,
        common_name: str = "",
    ) -> None:
        self.mount: str = mount
        self.role: str = role
        self.common_name: str = common_name


class RootCA:
    """Root CA satisfying ``PkiResource``.

    ``provision`` never recreates a mount, role or certificate that already
    exists, so a partially provisioned backend can be resumed by running it
    again. For a full reset use ``teardown`` followed by ``provision``.
    """

    kind: ResourceKind = ResourceKind.ROOT_CA

    def __init__(self, context: PkiContext, args: RootCAArgs) -> None:
        self._backend = context.backend
        self._args: RootCAArgs = args

    def provision(self, report: StepReport) -> None:
        args = self._args
        require(mount=args.mount, role=args.role, common_name=args.common_name)
        logger.info("provisioning_root_ca", extra={"mount": args.mount, "common_name": args.common_name})

        with report.step("Mounting root CA backend:"):
            ensure_mounted(
                self._backend,
                args.mount,
                MountConfiguration(type="pki", description="root CA", max_lease_ttl=ROOT_MAX_LEASE_TTL),
            )

        with report.step("Creating root CA role:"):
            role_state = has_role(self._backend, args.mount, args.role, args.common_name, True)
            if role_state is CheckOutcome.INCORRECT:
                # A role for another common name may belong to an existing root.
                self._refuse_other_root()
            if role_state is not CheckOutcome.PRESENT:
                create_role(
                    self._backend,
                    args.mount,
                    args.role,
                    RoleConfig(
                        allowed_domains=args.common_name,
                        allow_subdomains=True,
                        allow_any_name=True,
                        key_bits=certs.CA_KEY_BITS,
                    ),
                )

        with report.step("Creating root CA cert:"):
            if self._refuse_other_root() is CheckOutcome.ABSENT:
                certs.generate_root_cert(self._backend, args.mount, args.common_name)

    def _refuse_other_root(self) -> CheckOutcome:
        """Return the root cert state, raising if it was issued for another common name."""
        args = self._args
        cert_state = certs.has_root_cert(self._backend, args.mount, args.common_name)
        if cert_state is CheckOutcome.INCORRECT:
            raise ConfigurationMismatch(
                f"{args.mount} already holds a root CA for a different common name; "
                "run 'remove root-ca' first"
            )
        return cert_state

    def check(self, report: StepReport) -> None:
        args = self._args
        require(mount=args.mount, role=args.role, common_name=args.common_name)

        mounted = is_mounted(self._backend, args.mount)
        report.check(
            "Root CA backend is mounted:",
            CheckOutcome.PRESENT if mounted else CheckOutcome.ABSENT,
        )

        role_state = CheckOutcome.UNKNOWN
        if mounted:
            role_state = has_role(self._backend, args.mount, args.role, args.common_name, True)
        report.check("Root CA role exists:", role_state)

        cert_state = CheckOutcome.UNKNOWN
        if role_state is CheckOutcome.PRESENT:
            cert_state = certs.has_root_cert(self._backend, args.mount, args.common_name)
        report.check("Root CA cert exists:", cert_state)

    def teardown(self, report: StepReport) -> None:
        require(mount=self._args.mount)
        with report.step("Unmounting root CA backend:"):
            ensure_unmounted(self._backend, self._args.mount)
