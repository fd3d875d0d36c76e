"""Leaf TLS certificate/key pairs issued by an intermediate CA."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from devault.components.resource import ResourceKind, require
from devault.context import PkiContext
from devault.errors import FileEmissionError, PreconditionError
from devault.providers.vault import certs
from devault.providers.vault.intermediate_ca import DEFAULT_INTERMEDIATE_MOUNT
from devault.providers.vault.roles import RoleConfig, create_role
from devault.report import StepReport

logger: logging.Logger = logging.getLogger(__name__)

TLS_ROLE_MAX_TTL: str = "8760h"
KEY_FILE_MODE: int = 0o600


class TlsArgs:
    """Arguments for leaf certificate operations.

    Args:
        mount: Path of the intermediate CA backend that issues the certificate.
        role: Per-site role created on ``mount`` for issuance.
        common_name: Common name of the leaf certificate.
        cert_path: File receiving the certificate followed by the issuing CA.
        key_path: File receiving the private key.
        serial_number: Serial of an issued certificate, for check and revoke.
    """

    def __init__(
        self,
        mount: str = DEFAULT_INTERMEDIATE_MOUNT,
        role: str = "",
        common_name: str = "",
        cert_path: str = "",
        key_path: str = "",
        serial_number: str = "",
    ) -> None:
        self.mount: str = mount
        self.role: str = role
        self.common_name: str = common_name
        self.cert_path: str = cert_path
        self.key_path: str = key_path
        self.serial_number: str = serial_number


def _emit(path: str, contents: str) -> None:
    try:
        Path(path).write_text(contents, encoding="ascii")
    except OSError as exc:
        raise FileEmissionError(f"writing {path}: {exc}") from exc


def _emit_private(path: str, contents: str) -> None:
    """Write ``contents`` readable by the owner only, tightening an existing file too."""
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, KEY_FILE_MODE)
        with os.fdopen(fd, "w", encoding="ascii") as handle:
            os.fchmod(handle.fileno(), KEY_FILE_MODE)
            handle.write(contents)
    except OSError as exc:
        raise FileEmissionError(f"writing {path}: {exc}") from exc


class TlsCert:
    """Leaf certificate satisfying ``PkiResource``.

    ``provision`` issues a new certificate on every run; the serial number it
    reports is the only handle for a later ``check`` or ``teardown``
    (revocation) and is not stored anywhere.
    """

    kind: ResourceKind = ResourceKind.TLS

    def __init__(self, context: PkiContext, args: TlsArgs) -> None:
        self._backend = context.backend
        self._args: TlsArgs = args

    def provision(self, report: StepReport) -> None:
        args = self._args
        require(
            mount=args.mount,
            role=args.role,
            common_name=args.common_name,
            cert_path=args.cert_path,
            key_path=args.key_path,
        )
        # The role is written unconditionally on every run.
        if not self._backend.upserts_roles:
            raise PreconditionError("backend does not guarantee that role writes are upserts")

        with report.step("Creating TLS role:"):
            create_role(
                self._backend,
                args.mount,
                args.role,
                RoleConfig(
                    key_bits=certs.CA_KEY_BITS,
                    max_ttl=TLS_ROLE_MAX_TTL,
                    allow_any_name=True,
                ),
            )

        with report.step("Issuing TLS cert:"):
            issued = certs.issue_cert(self._backend, args.mount, args.role, args.common_name)

        with report.step(f"Writing TLS cert to {args.cert_path}:"):
            _emit(args.cert_path, issued.chain_pem())

        with report.step(f"Writing TLS key to {args.key_path}:"):
            _emit_private(args.key_path, issued.key_pem())

        logger.info("tls_cert_issued", extra={"mount": args.mount, "serial_number": issued.serial_number})
        report.add("Serial number:", issued.serial_number)

    def check(self, report: StepReport) -> None:
        args = self._args
        require(mount=args.mount, serial_number=args.serial_number)
        revoked_at = certs.revocation_time(self._backend, args.mount, args.serial_number)
        report.add("Revocation time:", str(revoked_at))

    def teardown(self, report: StepReport) -> None:
        args = self._args
        require(mount=args.mount, serial_number=args.serial_number)
        with report.step("Revoking TLS cert:"):
            revoked_at = certs.revoke_cert(self._backend, args.mount, args.serial_number)
        report.add("Revocation time:", str(revoked_at))
