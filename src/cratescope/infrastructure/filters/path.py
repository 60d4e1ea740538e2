"""Path filters.

Match root-relative posix paths against exclude patterns:

- contains ``**``: glob where ``**`` spans zero or more path segments,
  ``*`` and ``?`` stay inside one segment.
- contains ``*``, ``?`` or ``[`` (no ``**``): fnmatch against the basename.
- no wildcard: substring match against the whole relative path.
"""

from __future__ import annotations

import fnmatch
import re
from functools import lru_cache
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

_WILDCARDS = frozenset("*?[")


def matches(relative_path: str, pattern: str) -> bool:
    """Check one root-relative posix path against one pattern.

    Examples:
        matches("a/target/x.rs", "**/target/**")  → True
        matches("target", "**/target/**")         → True
        matches("a/gen_x.rs", "gen_*")            → True
        matches("a/fixtures/x.rs", "fixtures")    → True
    """
    if not pattern:
        raise ValueError("pattern must not be empty")

    if "**" in pattern:
        return _globstar_regex(pattern).match(relative_path) is not None
    if _WILDCARDS.intersection(pattern):
        return fnmatch.fnmatchcase(PurePosixPath(relative_path).name, pattern)
    return pattern in relative_path


def matches_any(relative_path: str, patterns: Iterable[str]) -> bool:
    """Check if path matches any pattern."""
    return any(matches(relative_path, p) for p in patterns)


@lru_cache(maxsize=256)
def _globstar_regex(pattern: str) -> re.Pattern[str]:
    """Translate a ``**`` glob into an anchored regex."""
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("/**", i) and i + 3 == n:
            out.append("(?:/.*)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        else:
            ch = pattern[i]
            if ch == "*":
                out.append("[^/]*")
            elif ch == "?":
                out.append("[^/]")
            elif ch == "[":
                end = pattern.find("]", i + 1)
                if end == -1:
                    out.append(re.escape(ch))
                else:
                    body = pattern[i + 1 : end].replace("\\", "\\\\")
                    if body.startswith("!"):
                        body = "^" + body[1:]
                    out.append(f"[{body}]")
                    i = end
            else:
                out.append(re.escape(ch))
            i += 1
    return re.compile("^" + "".join(out) + "$")
