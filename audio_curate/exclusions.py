from __future__ import annotations

import fnmatch
from typing import Iterable


def is_excluded(folder_name: str, patterns: Iterable[str]) -> bool:
    """Glob match (``*``, ``?``, ``[...]``) of a folder name, ignoring case."""
    name = (folder_name or "").casefold()
    for pattern in patterns or ():
        if not pattern:
            continue
        if fnmatch.fnmatchcase(name, pattern.casefold()):
            return True
    return False


class ExclusionMatcher:
    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self.patterns = [p for p in patterns if p]

    def is_excluded(self, folder_name: str, patterns: Iterable[str] | None = None) -> bool:
        return is_excluded(folder_name, self.patterns if patterns is None else patterns)
