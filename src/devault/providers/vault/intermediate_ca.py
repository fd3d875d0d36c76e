"""Intermediate CA: a PKI backend whose certificate is signed by the root CA."""

from __future__ import annotations

import logging

from devault.components.backend import MountConfiguration
from devault.components.resource import CheckOutcome, ResourceKind, require
from devault.context import PkiContext
from devault.providers.vault import certs
from devault.providers.vault.mounts import ensure_mounted, ensure_unmounted, is_mounted
from devault.providers.vault.roles import RoleConfig, create_role, has_role
from devault.providers.vault.root_ca import DEFAULT_ROOT_MOUNT
from devault.report import StepReport

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_INTERMEDIATE_MOUNT: str = "intermediate-ca"
DEFAULT_INTERMEDIATE_ROLE: str = "intermediate-ca"
INTERMEDIATE_MAX_LEASE_TTL: str = "26280h"


class IntermediateCAArgs:
    """Arguments for the intermediate CA resource.

    Args:
        mount: Path of the intermediate CA PKI backend.
        role: Name of the signing role on the intermediate CA backend.
        common_name: Common name of the intermediate certificate.
        root_mount: Path of the root CA backend that signs the intermediate CSR.
    """

    def __init__(
        self,
        mount: str = DEFAULT_INTERMEDIATE_MOUNT,
        role: str = DEFAULT_INTERMEDIATE_ROLE,
        common_name: str = "",
        root_mount: str = DEFAULT_ROOT_MOUNT,
    ) -> None:
        self.mount: str = mount
        self.role: str = role
        self.common_name: str = common_name
        self.root_mount: str = root_mount


class IntermediateCA:
    """Intermediate CA satisfying ``PkiResource``.

    Only the mount and role are checked before being created. Every
    ``provision`` run generates a fresh CSR, has the root CA sign it and
    imports the result, so the root CA must already be provisioned.
    """

    kind: ResourceKind = ResourceKind.INTERMEDIATE_CA

    def __init__(self, context: PkiContext, args: IntermediateCAArgs) -> None:
        self._backend = context.backend
        self._base_url: str = context.public_base_url
        self._args: IntermediateCAArgs = args

    def provision(self, report: StepReport) -> None:
        args = self._args
        require(
            mount=args.mount,
            role=args.role,
            common_name=args.common_name,
            root_mount=args.root_mount,
        )
        logger.info(
            "provisioning_intermediate_ca",
            extra={"mount": args.mount, "root_mount": args.root_mount, "common_name": args.common_name},
        )

        with report.step("Creating the intermediate CA:"):
            ensure_mounted(
                self._backend,
                args.mount,
                MountConfiguration(
                    type="pki",
                    description="intermediate CA",
                    max_lease_ttl=INTERMEDIATE_MAX_LEASE_TTL,
                ),
            )

        with report.step("Creating a CSR:"):
            csr = certs.generate_csr(self._backend, args.mount, args.common_name)

        with report.step("Signing the intermediate CSR with the root CA:"):
            signed = certs.sign_csr(self._backend, args.root_mount, csr, args.common_name)

        with report.step("Importing the signed cert into the intermediate CA:"):
            certs.import_cert(self._backend, args.mount, signed)

        with report.step("Set the CA and CRL URLs for the intermediate CA:"):
            certs.configure_ca_access(self._backend, self._base_url, args.mount)

        with report.step("Creating intermediate CA role:"):
            role_state = has_role(self._backend, args.mount, args.role, args.common_name, True)
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
                        max_ttl=certs.INTERMEDIATE_SIGNED_TTL,
                    ),
                )

    def check(self, report: StepReport) -> None:
        """Report mount, role and URL configuration; later lines need the mount."""
        args = self._args
        require(mount=args.mount, role=args.role, common_name=args.common_name)

        mounted = is_mounted(self._backend, args.mount)
        report.check(
            "Intermediate CA backend is mounted:",
            CheckOutcome.PRESENT if mounted else CheckOutcome.ABSENT,
        )

        role_state = CheckOutcome.UNKNOWN
        config_state = CheckOutcome.UNKNOWN
        if mounted:
            role_state = has_role(self._backend, args.mount, args.role, args.common_name, True)
        report.check("Intermediate CA role exists:", role_state)

        if mounted:
            config_state = certs.check_ca_access(self._backend, self._base_url, args.mount)
        report.check("Intermediate CA backend is configured correctly:", config_state)

    def teardown(self, report: StepReport) -> None:
        require(mount=self._args.mount)
        with report.step("Unmounting intermediate CA backend:"):
            ensure_unmounted(self._backend, self._args.mount)
