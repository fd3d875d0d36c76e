"""Column-aligned step report written to stdout.

Rows are buffered and only written on ``flush`` so that the label column can
be aligned across the whole report. Callers must flush before exiting, even
on failure, so that completed steps remain visible.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum
from typing import TextIO

from devault.components.resource import CheckOutcome

logger: logging.Logger = logging.getLogger(__name__)


class Status(StrEnum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    YES = "YES"
    NO = "NO"
    UNKNOWN = "UNKNOWN"


_OUTCOME_STATUS: dict[CheckOutcome, Status] = {
    CheckOutcome.PRESENT: Status.YES,
    CheckOutcome.INCORRECT: Status.NO,
    CheckOutcome.ABSENT: Status.NO,
    CheckOutcome.UNKNOWN: Status.UNKNOWN,
}


class StepReport:
    """Buffered ``label<TAB>value`` report."""

    def __init__(self, stream: TextIO | None = None, padding: int = 1) -> None:
        self._stream: TextIO = stream if stream is not None else sys.stdout
        self._padding: int = padding
        self._rows: list[tuple[str, str]] = []
        self.outcomes: dict[str, CheckOutcome] = {}

    @contextmanager
    def step(self, label: str) -> Iterator[None]:
        """Record SUCCESS for ``label`` if the block completes, FAILURE if it raises."""
        logger.debug("step_started", extra={"step": label})
        try:
            yield
        except Exception:
            self.add(label, Status.FAILURE)
            raise
        self.add(label, Status.SUCCESS)

    def check(self, label: str, outcome: CheckOutcome) -> CheckOutcome:
        """Record a check line and remember its outcome."""
        self.outcomes[label] = outcome
        self.add(label, _OUTCOME_STATUS[outcome])
        return outcome

    def add(self, label: str, value: str) -> None:
        self._rows.append((label, str(value)))

    @property
    def rows(self) -> list[tuple[str, str]]:
        return list(self._rows)

    def incorrect(self) -> list[str]:
        """Return the labels of checks whose resource exists but is misconfigured."""
        return [label for label, outcome in self.outcomes.items() if outcome is CheckOutcome.INCORRECT]

    def flush(self) -> None:
        """Write all buffered rows, aligned, and clear the buffer."""
        if not self._rows:
            return
        width = max(len(label) for label, _ in self._rows) + self._padding
        for label, value in self._rows:
            self._stream.write(f"{label.ljust(width)}{value}\n")
        self._stream.flush()
        self._rows.clear()
