"""Per-invocation context shared by every PKI resource."""

from __future__ import annotations

import logging

from devault.components.backend import VaultBackend
from devault.config import VaultSettings

logger: logging.Logger = logging.getLogger(__name__)


class PkiContext:
    """Resolved settings and the backend client for one CLI invocation.

    Built once at start-up and passed to each resource constructor.
    """

    def __init__(self, settings: VaultSettings, backend: VaultBackend) -> None:
        self.settings: VaultSettings = settings
        self.backend: VaultBackend = backend

    @property
    def public_base_url(self) -> str:
        return self.settings.public_base_url()
