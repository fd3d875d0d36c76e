"""PKI certificate endpoints: root generation, CSR signing, issuance, revocation.

Key generation and signing happen inside the backend. This module only
sequences the requests and validates the shape of what comes back; PEM
material is parsed with ``cryptography`` to make sure it is well formed.
"""

from __future__ import annotations

import logging
from typing import Any

from cryptography import x509
from cryptography.x509.oid import NameOID

from devault.components.backend import Secret, VaultBackend
from devault.components.resource import CheckOutcome
from devault.errors import CertificateGenerationFailed, DecodeError

logger: logging.Logger = logging.getLogger(__name__)

ROOT_CA_TTL: str = "87600h"
INTERMEDIATE_CSR_TTL: str = "26280h"
INTERMEDIATE_SIGNED_TTL: str = "8760h"
LEAF_TTL: str = "720h"
CA_KEY_BITS: int = 4096


def secret_data(secret: Secret | None, what: str) -> dict[str, Any]:
    """Return ``secret["data"]`` or raise ``DecodeError``."""
    if secret is None:
        raise DecodeError(f"{what}: backend returned no secret")
    data = secret.get("data")
    if not isinstance(data, dict):
        raise DecodeError(f"{what}: response has no data")
    return data


def require_str(data: dict[str, Any], field: str, what: str) -> str:
    """Return ``data[field]`` if it is a non-empty string, else raise ``DecodeError``."""
    value = data.get(field)
    if not isinstance(value, str) or not value:
        raise DecodeError(f"{what}: {field} was not found")
    return value


def load_certificate(pem: str, what: str) -> x509.Certificate:
    try:
        return x509.load_pem_x509_certificate(pem.encode("ascii"))
    except ValueError as exc:
        raise DecodeError(f"{what}: certificate is not valid PEM") from exc


def subject_common_name(cert: x509.Certificate) -> str | None:
    attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return None
    value = attrs[0].value
    return value if isinstance(value, str) else value.decode("utf-8")


def has_root_cert(backend: VaultBackend, mount: str, expected_cn: str) -> CheckOutcome:
    """Probe the CA certificate of ``mount``.

    ``INCORRECT`` when a CA certificate exists with a different common name.
    """
    secret = backend.read(f"{mount}/cert/ca")
    data = secret.get("data") if secret is not None else None
    pem = data.get("certificate") if isinstance(data, dict) else None
    if not pem:
        return CheckOutcome.ABSENT
    found_cn = subject_common_name(load_certificate(pem, f"{mount}/cert/ca"))
    logger.debug(
        "root_cert_checked",
        extra={"mount": mount, "common_name": found_cn, "expected": expected_cn},
    )
    return CheckOutcome.PRESENT if found_cn == expected_cn else CheckOutcome.INCORRECT


def generate_root_cert(
    backend: VaultBackend,
    mount: str,
    common_name: str,
    ttl: str = ROOT_CA_TTL,
    key_bits: int = CA_KEY_BITS,
) -> Secret:
    """Have the backend generate a self-signed root CA certificate."""
    logger.info("generating_root_cert", extra={"mount": mount, "common_name": common_name})
    secret = backend.write(
        f"{mount}/root/generate/internal",
        {"common_name": common_name, "ttl": ttl, "key_bits": key_bits},
    )
    if secret is None:
        raise CertificateGenerationFailed(f"{mount}: root CA cert secret is nil")
    return secret


def generate_csr(
    backend: VaultBackend,
    mount: str,
    common_name: str,
    ttl: str = INTERMEDIATE_CSR_TTL,
    key_bits: int = CA_KEY_BITS,
) -> str:
    """Generate an intermediate CSR on ``mount`` and return it as PEM."""
    logger.info("generating_csr", extra={"mount": mount, "common_name": common_name})
    secret = backend.write(
        f"{mount}/intermediate/generate/internal",
        {"common_name": common_name, "ttl": ttl, "key_bits": key_bits},
    )
    return require_str(secret_data(secret, "CSR"), "csr", "CSR")


def sign_csr(
    backend: VaultBackend,
    root_mount: str,
    csr: str,
    common_name: str,
    ttl: str = INTERMEDIATE_SIGNED_TTL,
) -> str:
    """Sign ``csr`` with the CA on ``root_mount`` and return the PEM certificate."""
    logger.info("signing_csr", extra={"root_mount": root_mount, "common_name": common_name})
    secret = backend.write(
        f"{root_mount}/root/sign-intermediate",
        {"csr": csr, "common_name": common_name, "ttl": ttl},
    )
    pem = require_str(secret_data(secret, "signed CSR"), "certificate", "signed CSR")
    load_certificate(pem, "signed CSR")
    return pem


def import_cert(backend: VaultBackend, mount: str, certificate: str) -> Secret | None:
    logger.info("importing_signed_cert", extra={"mount": mount})
    return backend.write(f"{mount}/intermediate/set-signed", {"certificate": certificate})


def ca_access_urls(base_url: str, mount: str) -> tuple[str, str]:
    """Return the ``(issuing certificate, CRL distribution point)`` URLs for ``mount``."""
    return (f"{base_url}/v1/{mount}/ca", f"{base_url}/v1/{mount}/crl")


def configure_ca_access(backend: VaultBackend, base_url: str, mount: str) -> Secret | None:
    ca_url, crl_url = ca_access_urls(base_url, mount)
    logger.info("configuring_ca_access", extra={"mount": mount, "ca_url": ca_url, "crl_url": crl_url})
    return backend.write(
        f"{mount}/config/urls",
        {"issuing_certificates": [ca_url], "crl_distribution_points": [crl_url]},
    )


def check_ca_access(backend: VaultBackend, base_url: str, mount: str) -> CheckOutcome:
    """Compare the URL configuration of ``mount`` against the expected URLs.

    A missing configuration or missing field is a ``DecodeError``; values that
    do not include the expected URL are ``INCORRECT``.
    """
    what = f"{mount}/config/urls"
    data = secret_data(backend.read(what), what)
    ca_url, crl_url = ca_access_urls(base_url, mount)
    outcome = CheckOutcome.PRESENT
    for field, expected in (("issuing_certificates", ca_url), ("crl_distribution_points", crl_url)):
        values = data.get(field)
        if not isinstance(values, list):
            raise DecodeError(f"{what}: {field} was not found")
        if expected not in values:
            logger.warning(
                "ca_access_mismatch",
                extra={"mount": mount, "field": field, "expected": expected, "found": values},
            )
            outcome = CheckOutcome.INCORRECT
    return outcome


class IssuedCertificate:
    """Certificate material returned by a leaf issuance."""

    def __init__(
        self,
        serial_number: str,
        certificate: str,
        issuing_ca: str,
        private_key: str,
    ) -> None:
        self.serial_number: str = serial_number
        self.certificate: str = certificate
        self.issuing_ca: str = issuing_ca
        self.private_key: str = private_key

    def chain_pem(self) -> str:
        return f"{self.certificate}\n{self.issuing_ca}\n"

    def key_pem(self) -> str:
        return f"{self.private_key}\n"


def issue_cert(
    backend: VaultBackend,
    mount: str,
    role: str,
    common_name: str,
    ttl: str = LEAF_TTL,
) -> IssuedCertificate:
    """Issue a leaf certificate; every field of the result must be present."""
    logger.info("issuing_cert", extra={"mount": mount, "role": role, "common_name": common_name})
    secret = backend.write(
        f"{mount}/issue/{role}",
        {"common_name": common_name, "ttl": ttl, "format": "pem"},
    )
    data = secret_data(secret, "issued cert")
    return IssuedCertificate(
        serial_number=require_str(data, "serial_number", "issued cert"),
        certificate=require_str(data, "certificate", "issued cert"),
        issuing_ca=require_str(data, "issuing_ca", "issued cert"),
        private_key=require_str(data, "private_key", "issued cert"),
    )


def _revocation_time(data: dict[str, Any], what: str) -> Any:
    if data.get("revocation_time") is None:
        raise DecodeError(f"{what}: revocation_time was not found")
    return data["revocation_time"]


def revocation_time(backend: VaultBackend, mount: str, serial_number: str) -> Any:
    """Return the raw ``revocation_time`` of a certificate, as the backend reports it."""
    what = f"{mount}/cert/{serial_number}"
    return _revocation_time(secret_data(backend.read(what), what), what)


def revoke_cert(backend: VaultBackend, mount: str, serial_number: str) -> Any:
    """Revoke a certificate and return the non-zero ``revocation_time``."""
    what = f"{mount}/revoke"
    logger.info("revoking_cert", extra={"mount": mount, "serial_number": serial_number})
    secret = backend.write(what, {"serial_number": serial_number})
    revoked_at = _revocation_time(secret_data(secret, what), what)
    if revoked_at in (0, "0", ""):
        raise DecodeError(f"{what}: revocation_time was zero for {serial_number}")
    return revoked_at
