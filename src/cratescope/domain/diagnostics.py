"""Domain layer: recoverable problems accumulated over one run.

Only configuration and output-root failures abort a run. Everything else
is recorded here and surfaced by the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


class Stage(Enum):
    """Pipeline stage a diagnostic comes from."""

    COLLECTION = "collection"
    EXTRACTION = "extraction"
    IDENTITY = "identity"
    OUTPUT = "output"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Single recoverable problem.

    Invariants (FAIL-FIRST):
        - message non-empty
    """

    stage: Stage
    path: str
    message: str

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        if not self.message:
            raise ValueError("diagnostic message must not be empty")


@dataclass(frozen=True, slots=True)
class DiagnosticsReport:
    """All diagnostics of a run plus unresolved-call counts.

    Attributes:
        diagnostics: Recorded problems in pipeline order
        unresolved_by_reason: Unresolved call count per reason value
    """

    diagnostics: tuple[Diagnostic, ...] = ()
    unresolved_by_reason: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def has_problems(self) -> bool:
        """True when any diagnostic was recorded."""
        return bool(self.diagnostics)
