"""corpusclean - Regex-driven cleaning of multilingual text corpora.

For every language file of a corpus, lines matching a *removal* pattern are
dropped and the remaining lines are rewritten by an ordered list of regex
substitutions.  Languages are processed in parallel.

Quick Start:
    # CLI usage
    corpusclean clean --corpus europarl --languages en,de --patterns patterns.yaml

    # Python API
    from corpusclean import load_patterns, run_corpus
    summary = run_corpus("europarl", "en,de", "raw", "prepro", load_patterns("patterns.yaml"))
"""

from .cleaner import __version__

# Re-export main API
from .cleaner import (
    CleanError,
    PatternConfigError,
    PatternCompileError,
    EncodingConfigError,
    FileJobError,
    InputOpenError,
    OutputOpenError,
    LineDecodeError,
    PatternSet,
    load_patterns,
    process_line,
    FileJob,
    PipelineStats,
    FileResult,
    RunSummary,
    ProgressReporter,
    process_file,
    build_jobs,
    run_corpus,
)

__all__ = [
    "__version__",
    "CleanError",
    "PatternConfigError",
    "PatternCompileError",
    "EncodingConfigError",
    "FileJobError",
    "InputOpenError",
    "OutputOpenError",
    "LineDecodeError",
    "PatternSet",
    "load_patterns",
    "process_line",
    "FileJob",
    "PipelineStats",
    "FileResult",
    "RunSummary",
    "ProgressReporter",
    "process_file",
    "build_jobs",
    "run_corpus",
]
