"""Domain exceptions: all public errors of cratescope.

Hexagonal architecture: all exceptions visible to users defined in domain.
Infrastructure/Application use these, not define their own public exceptions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class CrateScopeError(Exception):
    """Base for all cratescope error exceptions.

    Allows: except CrateScopeError to catch all library errors.
    """


class ConfigError(CrateScopeError, ValueError):
    """Invalid analysis configuration.

    Fatal: the run cannot start. Inherits ValueError for semantic correctness.

    Attributes:
        field: Name of the offending setting.
        reason: Why the value is invalid.
    """

    def __init__(self, field: str, reason: str) -> None:
        """Initialize with setting name and reason."""
        self.field = field
        self.reason = reason
        super().__init__(f"invalid {field}: {reason}")


class ParseError(CrateScopeError, SyntaxError):
    """Failed to read or parse a Rust source file.

    Recovered by the pipeline: the file contributes an empty extraction.
    Inherits SyntaxError for semantic correctness.

    Attributes:
        path: Path to file that failed.
        reason: Error description.
    """

    def __init__(self, *, path: str, reason: str) -> None:
        """Initialize with file path and error reason."""
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class RegistryFrozenError(CrateScopeError, RuntimeError):
    """Write attempted on a frozen type registry.

    The registry becomes read-only once resolution begins.
    """

    def __init__(self) -> None:
        """Initialize with fixed message."""
        super().__init__("type registry is frozen, no further registrations allowed")


class OutputRootError(CrateScopeError, OSError):
    """Output root directory could not be created.

    Fatal: aborts the run before any file is written.

    Attributes:
        path: Output root path.
        reason: Underlying OS error description.
    """

    def __init__(self, path: str, reason: str) -> None:
        """Initialize with output root and reason."""
        self.path = path
        self.reason = reason
        super().__init__(f"cannot create output root {path}: {reason}")


class OutputWriteError(CrateScopeError, OSError):
    """One or more output artifacts could not be written.

    Raised after every other artifact has been written, so the failure
    summary covers the whole run.

    Attributes:
        failures: (path, reason) pairs, in write order.
        files_written: Artifacts that were written despite the failures.
    """

    def __init__(self, failures: Sequence[tuple[str, str]], files_written: int = 0) -> None:
        """Initialize with collected failures."""
        if not failures:
            raise ValueError("OutputWriteError requires at least one failure")

        self.failures = tuple(failures)
        self.files_written = files_written

        lines = [f"{len(self.failures)} output artifact(s) failed:"]
        lines.extend(f"  {path}: {reason}" for path, reason in self.failures)
        super().__init__("\n".join(lines))
