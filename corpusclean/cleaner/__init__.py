"""corpusclean cleaner package.

Core public API lives here so external users can::

    from corpusclean.cleaner import load_patterns, run_corpus

    patterns = load_patterns("patterns.yaml")
    summary = run_corpus("europarl", "en,de", "raw", "prepro", patterns)

Building blocks:
    from corpusclean.cleaner.patterns import PatternSet
    from corpusclean.cleaner.processor import process_line
    from corpusclean.cleaner.file_pipeline import process_file
    from corpusclean.cleaner.coordinator import build_jobs, run_jobs
"""

from importlib.metadata import PackageNotFoundError, version as _pkg_version


# Semantic version of the installed package
try:
    __version__: str = _pkg_version("corpusclean")
except PackageNotFoundError:  # pragma: no cover – local dev path
    __version__ = "1.0.0"

from .errors import (
    CleanError,
    PatternConfigError,
    PatternCompileError,
    EncodingConfigError,
    FileJobError,
    InputOpenError,
    OutputOpenError,
    LineDecodeError,
)
from .patterns import PatternSet, SubstitutionRule, load_patterns
from .processor import process_line
from .output import FileJob, PipelineStats, FileResult, RunSummary
from .progress import ProgressEvent, ProgressReporter
from .file_pipeline import process_file
from .coordinator import build_jobs, parse_languages, run_corpus, run_jobs

__all__ = [
    "__version__",
    # Errors
    "CleanError",
    "PatternConfigError",
    "PatternCompileError",
    "EncodingConfigError",
    "FileJobError",
    "InputOpenError",
    "OutputOpenError",
    "LineDecodeError",
    # Patterns
    "PatternSet",
    "SubstitutionRule",
    "load_patterns",
    "process_line",
    # Pipeline
    "FileJob",
    "PipelineStats",
    "FileResult",
    "RunSummary",
    "ProgressEvent",
    "ProgressReporter",
    "process_file",
    "build_jobs",
    "parse_languages",
    "run_corpus",
    "run_jobs",
]
