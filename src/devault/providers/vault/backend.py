"""hvac implementation of VaultBackend."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import hvac
import hvac.exceptions
import requests

from devault.components.backend import MountConfiguration, Secret
from devault.config import VaultSettings
from devault.errors import BackendError, BackendUnreachable

logger: logging.Logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(operation: str, path: str) -> Iterator[None]:
    """Re-raise hvac and transport errors as devault backend errors."""
    try:
        yield
    except hvac.exceptions.VaultError as exc:
        logger.debug("backend_call_rejected", extra={"operation": operation, "path": path})
        raise BackendError(f"{operation} {path}: {exc}") from exc
    except requests.exceptions.RequestException as exc:
        logger.debug("backend_unreachable", extra={"operation": operation, "path": path})
        raise BackendUnreachable(f"{operation} {path}: {exc}") from exc


def _as_secret(response: Any) -> Secret | None:
    # hvac hands back the raw requests.Response for bodiless (204) replies.
    return response if isinstance(response, dict) else None


class HvacBackend:
    """``VaultBackend`` backed by an ``hvac.Client``.

    The PKI engine's role endpoint overwrites existing roles on write, so
    ``upserts_roles`` is always true.
    """

    upserts_roles: bool = True

    def __init__(self, client: hvac.Client) -> None:
        self._client: hvac.Client = client

    @classmethod
    def from_settings(
        cls,
        settings: VaultSettings,
        client_factory: Callable[..., hvac.Client] = hvac.Client,
    ) -> HvacBackend:
        """Build a client from resolved settings."""
        logger.debug("creating_vault_client", extra={"api_url": settings.api_url})
        client = client_factory(
            url=settings.api_url,
            token=settings.token or None,
            cert=settings.client_cert_pair(),
            verify=settings.ca_cert or True,
        )
        return cls(client)

    def list_mounts(self) -> dict[str, dict[str, Any]]:
        with _translate_errors("list mounts", "sys/mounts"):
            response = self._client.sys.list_mounted_secrets_engines()
        # Newer servers nest the table under "data"; older ones return it bare.
        mounts = response.get("data", response)
        return {path: info for path, info in mounts.items() if isinstance(info, dict)}

    def mount(self, path: str, config: MountConfiguration) -> None:
        logger.debug("mounting_backend", extra={"path": path, "type": config.type})
        with _translate_errors("mount", path):
            self._client.sys.enable_secrets_engine(
                backend_type=config.type,
                path=path,
                description=config.description or None,
                config=config.tuning() or None,
            )

    def unmount(self, path: str) -> None:
        logger.debug("unmounting_backend", extra={"path": path})
        with _translate_errors("unmount", path):
            self._client.sys.disable_secrets_engine(path=path)

    def mount_config(self, path: str) -> dict[str, Any]:
        with _translate_errors("read mount config", path):
            response = self._client.sys.read_mount_configuration(path=path)
        return response.get("data", response)

    def tune_mount(self, path: str, config: MountConfiguration) -> None:
        logger.debug("tuning_backend", extra={"path": path, **config.tuning()})
        with _translate_errors("tune mount", path):
            self._client.sys.tune_mount_configuration(
                path=path,
                description=config.description or None,
                **config.tuning(),
            )

    def read(self, path: str) -> Secret | None:
        with _translate_errors("read", path):
            response = self._client.read(path)
        return _as_secret(response)

    def write(self, path: str, data: dict[str, Any]) -> Secret | None:
        with _translate_errors("write", path):
            response = self._client.write_data(path, data=data)
        return _as_secret(response)

    def delete(self, path: str) -> Secret | None:
        with _translate_errors("delete", path):
            response = self._client.delete(path)
        return _as_secret(response)
