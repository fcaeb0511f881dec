"""Compiled removal and substitution rules.

A :class:`PatternSet` is built once per run from the pattern document and is
then shared, read-only, by every file pipeline.  Nothing mutates it after
``__init__`` returns.

Replacement templates default to the *dollar* syntax used by existing pattern
files (``$1``, ``${1}``, ``$name``, ``${name}``, ``$$``).  They are translated
to :mod:`re` templates at construction time so matching never pays for it.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

import yaml  # type: ignore

from .errors import PatternCompileError, PatternConfigError

logger = logging.getLogger(__name__)

SYNTAXES = ("dollar", "python")
DEFAULT_SYNTAX = "dollar"

_GROUP_NAME_RE = re.compile(r"[A-Za-z0-9_]+")
_GROUP_NUMBER_RE = re.compile(r"[0-9]+")


class SubstitutionRule(NamedTuple):
    """One ordered (regex, replacement) rule."""

    pattern: re.Pattern[str]
    replacement: str  # as written in the configuration
    template: str  # :mod:`re` template actually passed to ``sub``

    def apply(self, line: str) -> str:
        return self.pattern.sub(self.template, line)


# -----------------------------------------------------------
# Template translation
# -----------------------------------------------------------


def translate_dollar_template(replacement: str) -> Tuple[str, List[str]]:
    """Translate a dollar-style template into an :mod:`re` template.

    Returns the translated template and the group references it contains
    (as strings, numbers included) so the caller can validate them.

    ``$$`` is a literal dollar, a ``$`` that does not start a reference is
    kept literally, and backslashes are literal characters.
    """
    out: List[str] = []
    refs: List[str] = []
    i = 0
    n = len(replacement)
    while i < n:
        ch = replacement[i]
        if ch == "\\":
            out.append("\\\\")
            i += 1
            continue
        if ch != "$":
            out.append(ch)
            i += 1
            continue

        # ch == "$"
        if i + 1 < n and replacement[i + 1] == "$":
            out.append("$")
            i += 2
            continue
        if i + 1 < n and replacement[i + 1] == "{":
            end = replacement.find("}", i + 2)
            name = replacement[i + 2:end] if end != -1 else ""
            if end == -1 or not name:
                out.append("$")
                i += 1
                continue
            refs.append(name)
            out.append(f"\\g<{name}>")
            i = end + 1
            continue
        m = _GROUP_NAME_RE.match(replacement, i + 1)
        if m is None:
            out.append("$")
            i += 1
            continue
        name = m.group(0)
        refs.append(name)
        out.append(f"\\g<{name}>")
        i = m.end()
    return "".join(out), refs


def _check_group_refs(pattern: re.Pattern[str], refs: Iterable[str]) -> Optional[str]:
    """Return an error message for the first reference *pattern* cannot satisfy."""
    for ref in refs:
        if _GROUP_NUMBER_RE.fullmatch(ref):
            if int(ref) > pattern.groups:
                return f"replacement references group {ref} but the regex has {pattern.groups} group(s)"
        elif ref not in pattern.groupindex:
            return f"replacement references unknown group name {ref!r}"
    return None


# -----------------------------------------------------------
# Pattern set
# -----------------------------------------------------------


def _as_pair(entry: Any) -> Tuple[Any, Any]:
    if isinstance(entry, dict):
        return entry.get("regex"), entry.get("replacement")
    regex, replacement = entry
    return regex, replacement


class PatternSet:
    """Immutable collection of removal patterns and ordered substitutions."""

    __slots__ = ("_remove", "_substitutions", "_syntax")

    def __init__(
        self,
        remove: Sequence[str] = (),
        replace: Sequence[Union[Tuple[str, str], Dict[str, str]]] = (),
        syntax: str = DEFAULT_SYNTAX,
    ):
        """
        Compile every pattern.

        Args:
            remove: Raw regex strings; a line matching any of them is dropped
            replace: Ordered ``(regex, replacement)`` pairs or mappings with
                ``regex`` and ``replacement`` keys
            syntax: Replacement template syntax, ``"dollar"`` or ``"python"``

        Raises:
            PatternCompileError: A regex or a template does not compile
        """
        if syntax not in SYNTAXES:
            raise ValueError(f"Unsupported replacement syntax: {syntax!r}")

        compiled_remove: List[re.Pattern[str]] = []
        for index, raw in enumerate(remove):
            compiled_remove.append(_compile(raw, "remove", index))

        substitutions: List[SubstitutionRule] = []
        for index, entry in enumerate(replace):
            raw, replacement = _as_pair(entry)
            pattern = _compile(raw, "replace", index)
            if not isinstance(replacement, str):
                raise PatternCompileError(str(raw), "replace", index, "replacement must be a string")
            template = _build_template(pattern, replacement, syntax, index)
            substitutions.append(SubstitutionRule(pattern, replacement, template))

        self._remove: Tuple[re.Pattern[str], ...] = tuple(compiled_remove)
        self._substitutions: Tuple[SubstitutionRule, ...] = tuple(substitutions)
        self._syntax = syntax

    @property
    def remove_patterns(self) -> Tuple[re.Pattern[str], ...]:
        return self._remove

    @property
    def substitutions(self) -> Tuple[SubstitutionRule, ...]:
        return self._substitutions

    @property
    def syntax(self) -> str:
        return self._syntax

    def matches_removal(self, line: str) -> bool:
        """True if any removal pattern matches anywhere in *line*."""
        return any(p.search(line) for p in self._remove)

    def apply_substitutions(self, line: str) -> str:
        """Run every substitution in order; each sees the previous one's output."""
        for rule in self._substitutions:
            line = rule.apply(line)
        return line

    def __repr__(self) -> str:
        return (f"PatternSet(remove={len(self._remove)}, "
                f"replace={len(self._substitutions)}, syntax={self._syntax!r})")


def _compile(raw: Any, section: str, index: int) -> re.Pattern[str]:
    if not isinstance(raw, str):
        raise PatternCompileError(repr(raw), section, index, "pattern must be a string")
    try:
        return re.compile(raw)
    except re.error as e:
        raise PatternCompileError(raw, section, index, str(e)) from e


def _build_template(pattern: re.Pattern[str], replacement: str, syntax: str, index: int) -> str:
    if syntax == "dollar":
        template, refs = translate_dollar_template(replacement)
        problem = _check_group_refs(pattern, refs)
        if problem:
            raise PatternCompileError(pattern.pattern, "replace", index, problem)
        return template

    # Native re template; sub() compiles the template before scanning.
    try:
        pattern.sub(replacement, "")
    except (re.error, IndexError) as e:
        raise PatternCompileError(pattern.pattern, "replace", index, f"bad replacement: {e}") from e
    return replacement


# -----------------------------------------------------------
# YAML loading
# -----------------------------------------------------------


def load_patterns(path: Union[str, Path], syntax: Optional[str] = None) -> PatternSet:
    """
    Load and compile a pattern document.

    Args:
        path: YAML file with ``remove`` and ``replace`` keys
        syntax: Override the document's ``syntax`` key

    Raises:
        PatternConfigError: File unreadable or document malformed
        PatternCompileError: A pattern or template does not compile
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            doc = yaml.safe_load(f)
    except OSError as e:
        raise PatternConfigError(f"cannot read pattern file: {e.strerror or e}", source=path) from e
    except UnicodeDecodeError as e:
        raise PatternConfigError(f"pattern file is not valid UTF-8: {e}", source=path) from e
    except yaml.YAMLError as e:
        raise PatternConfigError(f"invalid YAML: {e}", source=path) from e

    remove, replace, doc_syntax = _validate_document(doc, path)
    syntax = syntax or doc_syntax or DEFAULT_SYNTAX
    if syntax not in SYNTAXES:
        raise PatternConfigError(f"unsupported syntax {syntax!r} (expected one of {', '.join(SYNTAXES)})",
                                 source=path)

    try:
        patterns = PatternSet(remove, replace, syntax=syntax)
    except PatternCompileError as e:
        raise PatternCompileError(e.pattern, e.section, e.index, e.reason, source=path) from e

    logger.debug("Loaded %r from %s", patterns, path)
    return patterns


def _validate_document(doc: Any, path: Path) -> Tuple[List[str], List[Tuple[str, str]], Optional[str]]:
    if doc is None:
        doc = {}
    if not isinstance(doc, dict):
        raise PatternConfigError(f"expected a mapping at top level, got {type(doc).__name__}", source=path)

    remove = doc.get("remove")
    if remove is None:
        remove = []
    if not isinstance(remove, list):
        raise PatternConfigError("'remove' must be a list of regex strings", source=path)
    for i, raw in enumerate(remove):
        if not isinstance(raw, str):
            raise PatternConfigError(f"remove[{i}] must be a string, got {type(raw).__name__}", source=path)

    replace_raw = doc.get("replace")
    if replace_raw is None:
        replace_raw = []
    if not isinstance(replace_raw, list):
        raise PatternConfigError("'replace' must be a list of {regex, replacement} mappings", source=path)
    replace: List[Tuple[str, str]] = []
    for i, entry in enumerate(replace_raw):
        if not isinstance(entry, dict):
            raise PatternConfigError(f"replace[{i}] must be a mapping with 'regex' and 'replacement'",
                                     source=path)
        for key in ("regex", "replacement"):
            if key not in entry:
                raise PatternConfigError(f"replace[{i}] is missing '{key}'", source=path)
            if not isinstance(entry[key], str):
                raise PatternConfigError(
                    f"replace[{i}].{key} must be a string, got {type(entry[key]).__name__}", source=path)
        replace.append((entry["regex"], entry["replacement"]))

    doc_syntax = doc.get("syntax")
    if doc_syntax is not None and not isinstance(doc_syntax, str):
        raise PatternConfigError("'syntax' must be a string", source=path)

    return remove, replace, doc_syntax
