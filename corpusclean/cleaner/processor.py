"""Per-line decision: drop, or keep with substitutions applied."""
from __future__ import annotations

from typing import Optional

from .patterns import PatternSet


def process_line(line: str, patterns: PatternSet) -> Optional[str]:
    """
    Classify one line.

    Removal is checked against the original *line*; substitutions only run on
    lines that survive it.

    Returns:
        ``None`` if the line is dropped, otherwise the rewritten line
    """
    if patterns.matches_removal(line):
        return None
    return patterns.apply_substitutions(line)
