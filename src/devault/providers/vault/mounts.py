"""Mount state checks and idempotent mount lifecycle helpers."""

from __future__ import annotations

import logging

from devault.components.backend import MountConfiguration, VaultBackend

logger: logging.Logger = logging.getLogger(__name__)


def is_mounted(backend: VaultBackend, path: str) -> bool:
    """Return True if a secrets engine is mounted at ``path``.

    Mount table keys carry a trailing ``/``; it is stripped before comparing.
    Backend errors from listing the mounts propagate to the caller.
    """
    mounts = backend.list_mounts()
    found = any(m.rstrip("/") == path for m in mounts)
    logger.debug("mount_state_checked", extra={"path": path, "mounted": found})
    return found


def ensure_mounted(backend: VaultBackend, path: str, config: MountConfiguration) -> bool:
    """Mount ``path`` unless it is already mounted.

    Returns True if a new mount was created.
    """
    if is_mounted(backend, path):
        return False
    logger.info("mounting_pki_backend", extra={"path": path, "max_lease_ttl": config.max_lease_ttl})
    backend.mount(path, config)
    return True


def ensure_unmounted(backend: VaultBackend, path: str) -> bool:
    """Unmount ``path`` if it is mounted.

    Returns True if something was unmounted; an absent mount is not an error.
    """
    if not is_mounted(backend, path):
        return False
    logger.info("unmounting_pki_backend", extra={"path": path})
    backend.unmount(path)
    return True
