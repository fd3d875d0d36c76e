"""In-memory stand-in for a Vault server with PKI secrets engines."""
from __future__ import annotations

import datetime
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from devault.components.backend import MountConfiguration
from devault.config import VaultSettings
from devault.context import PkiContext
from devault.errors import BackendError

REVOKED_AT: int = 1700000000


def _pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii").strip()


def _key_pem(key: ec.EllipticCurvePrivateKey) -> str:
    return (
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
        .decode("ascii")
        .strip()
    )


def _serial_text(serial: int) -> str:
    raw = f"{serial:x}"
    raw = raw if len(raw) % 2 == 0 else f"0{raw}"
    return ":".join(raw[i : i + 2] for i in range(0, len(raw), 2))


def _build_cert(
    common_name: str,
    public_key: Any,
    issuer: x509.Name | None,
    signing_key: ec.EllipticCurvePrivateKey,
    ca: bool,
) -> x509.Certificate:
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(tz=datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer or subject)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(signing_key, hashes.SHA256())
    )


class _PkiEngine:
    def __init__(self, config: MountConfiguration) -> None:
        self.config: MountConfiguration = config
        self.roles: dict[str, dict[str, Any]] = {}
        self.ca_key: ec.EllipticCurvePrivateKey | None = None
        self.ca_cert: x509.Certificate | None = None
        self.pending_key: ec.EllipticCurvePrivateKey | None = None
        self.urls: dict[str, list[str]] = {"issuing_certificates": [], "crl_distribution_points": []}
        self.certs: dict[str, dict[str, Any]] = {}


class FakeVaultBackend:
    """Models just enough of Vault's PKI engine to run every resource operation."""

    upserts_roles: bool = True

    def __init__(self) -> None:
        self.engines: dict[str, _PkiEngine] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: dict[tuple[str, str], Exception] = {}

    def _record(self, op: str, path: str) -> None:
        self.calls.append((op, path))
        failure = self.fail_on.get((op, path))
        if failure is not None:
            raise failure

    def _route(self, path: str) -> tuple[_PkiEngine, str]:
        for mount in sorted(self.engines, key=len, reverse=True):
            if path.startswith(f"{mount}/"):
                return self.engines[mount], path[len(mount) + 1 :]
        raise BackendError(f"no handler for route '{path}'")

    def list_mounts(self) -> dict[str, dict[str, Any]]:
        self._record("list_mounts", "sys/mounts")
        mounts: dict[str, dict[str, Any]] = {"secret/": {"type": "kv"}, "sys/": {"type": "system"}}
        for path, engine in self.engines.items():
            mounts[f"{path}/"] = {"type": engine.config.type, "description": engine.config.description}
        return mounts

    def mount(self, path: str, config: MountConfiguration) -> None:
        self._record("mount", path)
        if path in self.engines:
            raise BackendError(f"path is already in use at {path}/")
        self.engines[path] = _PkiEngine(config)

    def unmount(self, path: str) -> None:
        self._record("unmount", path)
        self.engines.pop(path, None)

    def mount_config(self, path: str) -> dict[str, Any]:
        self._record("mount_config", path)
        return self.engines[path].config.tuning()

    def tune_mount(self, path: str, config: MountConfiguration) -> None:
        self._record("tune_mount", path)
        self.engines[path].config = config

    def read(self, path: str) -> dict[str, Any] | None:
        self._record("read", path)
        engine, rest = self._route(path)
        if rest.startswith("roles/"):
            role = engine.roles.get(rest[len("roles/") :])
            return {"data": dict(role)} if role is not None else None
        if rest == "cert/ca":
            if engine.ca_cert is None:
                return None
            return {"data": {"certificate": _pem(engine.ca_cert)}}
        if rest == "config/urls":
            return {"data": {k: list(v) for k, v in engine.urls.items()}}
        if rest.startswith("cert/"):
            cert = engine.certs.get(rest[len("cert/") :])
            return {"data": dict(cert)} if cert is not None else None
        raise BackendError(f"unsupported path '{path}'")

    def write(self, path: str, data: dict[str, Any]) -> dict[str, Any] | None:
        self._record("write", path)
        engine, rest = self._route(path)
        if rest.startswith("roles/"):
            role = dict(data)
            if isinstance(role.get("allowed_domains"), str):
                role["allowed_domains"] = [d for d in role["allowed_domains"].split(",") if d]
            engine.roles[rest[len("roles/") :]] = role
            return None
        if rest == "root/generate/internal":
            key = ec.generate_private_key(ec.SECP256R1())
            engine.ca_key = key
            engine.ca_cert = _build_cert(data["common_name"], key.public_key(), None, key, ca=True)
            return {"data": {"certificate": _pem(engine.ca_cert), "issuing_ca": _pem(engine.ca_cert)}}
        if rest == "intermediate/generate/internal":
            key = ec.generate_private_key(ec.SECP256R1())
            engine.pending_key = key
            csr = (
                x509.CertificateSigningRequestBuilder()
                .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, data["common_name"])]))
                .sign(key, hashes.SHA256())
            )
            return {"data": {"csr": csr.public_bytes(serialization.Encoding.PEM).decode("ascii")}}
        if rest == "root/sign-intermediate":
            if engine.ca_key is None or engine.ca_cert is None:
                raise BackendError("no default issuer currently configured")
            csr = x509.load_pem_x509_csr(data["csr"].encode("ascii"))
            cert = _build_cert(
                data["common_name"], csr.public_key(), engine.ca_cert.subject, engine.ca_key, ca=True
            )
            return {"data": {"certificate": _pem(cert), "issuing_ca": _pem(engine.ca_cert)}}
        if rest == "intermediate/set-signed":
            if engine.pending_key is None:
                raise BackendError("no pending intermediate key")
            engine.ca_key = engine.pending_key
            engine.ca_cert = x509.load_pem_x509_certificate(data["certificate"].encode("ascii"))
            return None
        if rest == "config/urls":
            engine.urls = {k: list(v) for k, v in data.items()}
            return None
        if rest.startswith("issue/"):
            if rest[len("issue/") :] not in engine.roles:
                raise BackendError(f"unknown role: {rest[len('issue/'):]}")
            if engine.ca_key is None or engine.ca_cert is None:
                raise BackendError("no default issuer currently configured")
            key = ec.generate_private_key(ec.SECP256R1())
            cert = _build_cert(
                data["common_name"], key.public_key(), engine.ca_cert.subject, engine.ca_key, ca=False
            )
            serial = _serial_text(cert.serial_number)
            engine.certs[serial] = {"certificate": _pem(cert), "revocation_time": 0}
            return {
                "data": {
                    "certificate": _pem(cert),
                    "issuing_ca": _pem(engine.ca_cert),
                    "private_key": _key_pem(key),
                    "serial_number": serial,
                }
            }
        if rest == "revoke":
            cert = engine.certs.get(data["serial_number"])
            if cert is None:
                raise BackendError(f"certificate with serial {data['serial_number']} not found")
            if not cert["revocation_time"]:
                cert["revocation_time"] = REVOKED_AT
            return {"data": {"revocation_time": cert["revocation_time"]}}
        raise BackendError(f"unsupported path '{path}'")

    def delete(self, path: str) -> dict[str, Any] | None:
        self._record("delete", path)
        engine, rest = self._route(path)
        if rest.startswith("roles/"):
            engine.roles.pop(rest[len("roles/") :], None)
        return None


@pytest.fixture
def backend() -> FakeVaultBackend:
    return FakeVaultBackend()


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> VaultSettings:
    for name in ("TOKEN", "API_URL", "PUBLIC_URL", "CLIENT_CERT", "CLIENT_KEY", "CA_CERT", "LOG_LEVEL"):
        monkeypatch.delenv(f"VAULT_{name}", raising=False)
    return VaultSettings(api_url="https://vault.example.org:8200", token="s.test", _env_file=None)


@pytest.fixture
def context(settings: VaultSettings, backend: FakeVaultBackend) -> PkiContext:
    return PkiContext(settings, backend)
