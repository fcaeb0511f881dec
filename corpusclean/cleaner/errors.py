"""Exception hierarchy for corpusclean.

Two families:

- configuration errors (:class:`PatternConfigError`, :class:`PatternCompileError`,
  :class:`EncodingConfigError`)
  abort the whole run before any file is touched;
- per-file errors (:class:`FileJobError` subclasses) are isolated to the
  language file that raised them.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class CleanError(Exception):
    """Base class for every error raised by corpusclean."""


# -----------------------------------------------------------
# Configuration errors
# -----------------------------------------------------------


class PatternConfigError(CleanError):
    """The pattern document is missing, unreadable or malformed."""

    def __init__(self, message: str, source: Optional[Union[str, Path]] = None):
        self.source = str(source) if source is not None else None
        if self.source:
            message = f"{self.source}: {message}"
        super().__init__(message)


class PatternCompileError(PatternConfigError):
    """A regex (or its replacement template) failed to compile."""

    def __init__(self, pattern: str, section: str, index: int, reason: str,
                 source: Optional[Union[str, Path]] = None):
        self.pattern = pattern
        self.section = section
        self.index = index
        self.reason = reason
        super().__init__(
            f"invalid pattern in {section}[{index}] {pattern!r}: {reason}",
            source=source,
        )


# -----------------------------------------------------------
# Per-file errors
# -----------------------------------------------------------


class FileJobError(CleanError):
    """Failure while processing one language file."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class InputOpenError(FileJobError):
    """Input file could not be opened for reading."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(path, f"cannot open input: {reason}")


class OutputOpenError(FileJobError):
    """Output file (or directory) could not be opened for writing."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(path, f"cannot open output: {reason}")


class LineDecodeError(FileJobError):
    """A line is not valid text in the configured encoding."""

    def __init__(self, path: Union[str, Path], line_number: int, reason: str):
        self.line_number = line_number
        super().__init__(path, f"line {line_number} is not valid text: {reason}")


class EncodingConfigError(CleanError, ValueError):
    """The configured text encoding is unknown or not ASCII-compatible."""

    def __init__(self, encoding: str, reason: str):
        self.encoding = encoding
        self.reason = reason
        super().__init__(f"encoding {encoding!r}: {reason}")
