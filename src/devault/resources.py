"""Dispatch from a ``ResourceKind`` to its ``PkiResource`` implementation."""

from __future__ import annotations

import logging

from devault.components.resource import PkiResource, ResourceKind
from devault.context import PkiContext
from devault.providers.vault.intermediate_ca import IntermediateCA, IntermediateCAArgs
from devault.providers.vault.root_ca import RootCA, RootCAArgs
from devault.providers.vault.tls import TlsArgs, TlsCert

logger: logging.Logger = logging.getLogger(__name__)

_RESOURCES: dict[ResourceKind, tuple[type, type]] = {
    ResourceKind.ROOT_CA: (RootCA, RootCAArgs),
    ResourceKind.INTERMEDIATE_CA: (IntermediateCA, IntermediateCAArgs),
    ResourceKind.TLS: (TlsCert, TlsArgs),
}


def build_resource(kind: ResourceKind, context: PkiContext, **params: str) -> PkiResource:
    """Construct the resource for ``kind`` from keyword parameters.

    Parameters left as ``None`` fall back to the argument class defaults.
    """
    resource_cls, args_cls = _RESOURCES[kind]
    args = args_cls(**{k: v for k, v in params.items() if v is not None})
    logger.debug("resource_built", extra={"kind": kind.value})
    return resource_cls(context, args)
