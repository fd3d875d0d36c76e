"""Provider-agnostic PKI resource interface."""

from __future__ import annotations

import logging
from enum import Enum, StrEnum
from typing import TYPE_CHECKING, Protocol

from devault.errors import PreconditionError

if TYPE_CHECKING:
    from devault.report import StepReport

logger: logging.Logger = logging.getLogger(__name__)


class ResourceKind(StrEnum):
    """PKI resources managed from the command line."""

    ROOT_CA = "root-ca"
    INTERMEDIATE_CA = "intermediate-ca"
    TLS = "tls"


class CheckOutcome(Enum):
    """Result of a single read-only probe.

    ``INCORRECT`` means the resource exists but does not match what was
    asked for; ``UNKNOWN`` means a prerequisite was missing so the probe
    was not attempted.
    """

    PRESENT = "present"
    INCORRECT = "incorrect"
    ABSENT = "absent"
    UNKNOWN = "unknown"


class PkiResource(Protocol):
    """Shared lifecycle of a PKI resource in the secrets backend.

    Each operation records its steps on ``report`` and raises a
    ``DevaultError`` on the first fatal failure.
    """

    kind: ResourceKind

    def provision(self, report: StepReport) -> None:
        """Create whatever is missing, in dependency order."""
        ...

    def check(self, report: StepReport) -> None:
        """Report the state of each sub-resource without mutating anything."""
        ...

    def teardown(self, report: StepReport) -> None:
        """Remove (CAs) or revoke (leaf certificates) the resource."""
        ...


def require(**params: str) -> None:
    """Raise ``PreconditionError`` naming the first empty parameter."""
    for name, value in params.items():
        if not value:
            raise PreconditionError(f"--{name.replace('_', '-')} must be set.")
