"""Analysis configuration.

Everything a run needs to know up front. Immutable; validated on
construction so an invalid configuration never reaches the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from cratescope.domain.exceptions import ConfigError

DEFAULT_EXTENSIONS: tuple[str, ...] = (".rs",)
DEFAULT_EXCLUDES: tuple[str, ...] = ("**/target/**", "**/.git/**", "**/node_modules/**")
DEFAULT_OUTPUT_DIR = Path("output")
DEFAULT_CRATE_NAME = "crate"
DEFAULT_WORKERS = 4


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    """Run configuration DTO.

    Immutable configuration object with FAIL-FIRST validation.

    Attributes:
        target_dir: Root of the Rust source tree to analyze.
        output_dir: Directory receiving the ``structure/`` tree.
        extensions: File extension allow-list, each starting with ".".
        exclude: Exclude patterns (see collector for semantics).
        crate_name: First segment of every module path.
        workers: Thread count for extraction and resolution. 1 = sequential.
        generated_at: Fixed ISO-8601 timestamp for reproducible output.
            None = SOURCE_DATE_EPOCH or the current time.
    """

    target_dir: Path
    output_dir: Path = DEFAULT_OUTPUT_DIR
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    exclude: tuple[str, ...] = DEFAULT_EXCLUDES
    crate_name: str = DEFAULT_CRATE_NAME
    workers: int = DEFAULT_WORKERS
    generated_at: str | None = None

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        if not str(self.target_dir):
            raise ConfigError("target_dir", "must not be empty")

        if not self.extensions:
            raise ConfigError("extensions", "at least one extension required")
        for ext in self.extensions:
            if not ext.startswith(".") or len(ext) < 2:
                raise ConfigError("extensions", f"{ext!r} must start with '.'")

        for pattern in self.exclude:
            if not pattern:
                raise ConfigError("exclude", "patterns must not be empty")

        if not self.crate_name.isidentifier():
            raise ConfigError("crate_name", f"{self.crate_name!r} is not an identifier")

        if self.workers < 1:
            raise ConfigError("workers", f"must be >= 1, got {self.workers}")

        if self.generated_at is not None:
            try:
                datetime.fromisoformat(self.generated_at.replace("Z", "+00:00"))
            except ValueError as e:
                raise ConfigError(
                    "generated_at", f"{self.generated_at!r} is not ISO-8601"
                ) from e

    @property
    def structure_dir(self) -> Path:
        """Root of everything the writer produces."""
        return self.output_dir / "structure"
