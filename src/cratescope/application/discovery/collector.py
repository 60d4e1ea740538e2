"""Source file discovery from directory structure."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from cratescope.domain.configuration import DEFAULT_EXCLUDES, DEFAULT_EXTENSIONS
from cratescope.domain.diagnostics import Diagnostic, Stage
from cratescope.domain.exceptions import ConfigError
from cratescope.infrastructure.filters.path import matches_any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CollectionResult:
    """Files selected for analysis.

    Attributes:
        root: Collection root
        files: Root-relative posix paths, sorted lexicographically
        diagnostics: Directories that could not be listed
    """

    root: Path
    files: tuple[str, ...]
    diagnostics: tuple[Diagnostic, ...] = ()

    def absolute(self, relative_path: str) -> Path:
        """Absolute path of a collected file."""
        return self.root / relative_path


def collect_files(
    root: Path,
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
    exclude: tuple[str, ...] = DEFAULT_EXCLUDES,
) -> CollectionResult:
    """Collect candidate source files under root.

    A directory or file is pruned the moment any exclude pattern matches its
    root-relative path. Unlistable directories are skipped with a warning.

    Args:
        root: Directory to scan
        extensions: File extension allow-list (".rs")
        exclude: Exclude patterns, see infrastructure.filters.path

    Returns:
        CollectionResult with files sorted by relative posix path

    Raises:
        ConfigError: If root is not an existing directory

    Example:
        >>> collect_files(Path("game/src")).files
        ('combat/mod.rs', 'combat/unit.rs', 'lib.rs')
    """
    if not root.is_dir():
        raise ConfigError("target_dir", f"not a directory: {root}")

    files: list[str] = []
    diagnostics: list[Diagnostic] = []

    def on_error(error: OSError) -> None:
        path = Path(error.filename) if error.filename else root
        relative = _relative(path, root)
        logger.warning("skipping unreadable directory %s: %s", relative, error.strerror)
        diagnostics.append(
            Diagnostic(Stage.COLLECTION, relative, f"cannot list directory: {error.strerror}")
        )

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        current = Path(dirpath)

        # prune in place so os.walk never descends into excluded directories
        kept: list[str] = []
        for name in sorted(dirnames):
            relative = _relative(current / name, root)
            if matches_any(relative, exclude):
                logger.debug("excluded directory %s", relative)
                continue
            kept.append(name)
        dirnames[:] = kept

        for name in filenames:
            if not name.endswith(extensions):
                continue
            relative = _relative(current / name, root)
            if matches_any(relative, exclude):
                logger.debug("excluded file %s", relative)
                continue
            files.append(relative)

    files.sort()
    logger.info("collected %d source files under %s", len(files), root)
    return CollectionResult(root=root, files=tuple(files), diagnostics=tuple(diagnostics))


def _relative(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()
