"""Run coordinator: one file pipeline per language, all in parallel.

Every language gets its own worker thread.  The :class:`PatternSet` is the
only shared object and is never written after construction.  A per-file
failure becomes a failed :class:`FileResult` for that language; the other
languages run to completion.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List, Optional, Union

import psutil

from .errors import FileJobError, OutputOpenError
from .file_pipeline import DEFAULT_ENCODING, check_encoding, process_file
from .output import FileJob, FileResult, RunSummary
from .patterns import PatternSet
from .progress import ProgressReporter

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES = "en,de,fr,es,it,pt"
DEFAULT_INPUT_DIR = "raw"
DEFAULT_OUTPUT_DIR = "prepro"


def parse_languages(languages: Union[str, Iterable[str]]) -> List[str]:
    """Split a comma-separated list; drop blanks and repeats, keep order."""
    if isinstance(languages, str):
        languages = languages.split(",")
    seen: List[str] = []
    for lang in languages:
        lang = lang.strip()
        if lang and lang not in seen:
            seen.append(lang)
    return seen


def corpus_file_name(corpus: str, language: str) -> str:
    return f"{corpus}.{language}"


def build_jobs(
    corpus: str,
    languages: Union[str, Iterable[str]],
    input_dir: Union[str, Path],
    output_dir: Union[str, Path],
) -> List[FileJob]:
    """One :class:`FileJob` per language, named ``<corpus>.<language>``."""
    if not corpus:
        raise ValueError("corpus name must not be empty")
    langs = parse_languages(languages)
    if not langs:
        raise ValueError("no languages given")

    input_dir = Path(input_dir)
    output_dir = Path(output_dir)
    return [
        FileJob(lang, input_dir / corpus_file_name(corpus, lang), output_dir / corpus_file_name(corpus, lang))
        for lang in langs
    ]


def ensure_output_dir(output_dir: Union[str, Path]) -> Path:
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputOpenError(output_dir, e.strerror or str(e)) from e
    return output_dir


def run_jobs(
    jobs: List[FileJob],
    patterns: PatternSet,
    max_workers: Optional[int] = None,
    reporter: Optional[ProgressReporter] = None,
    encoding: str = DEFAULT_ENCODING,
    atomic: bool = True,
    corpus: str = "",
) -> RunSummary:
    """
    Run *jobs* concurrently and collect one result per job.

    Results are appended in completion order.  Only :class:`FileJobError`
    is turned into a failed result; anything else is a bug and propagates.
    """
    summary = RunSummary(corpus)
    events = reporter.events if reporter is not None else None
    workers = max(1, min(max_workers or len(jobs), len(jobs)))
    start = time.time()

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="clean") as executor:
        futures = {
            executor.submit(process_file, job, patterns, events, encoding, atomic): job
            for job in jobs
        }
        for future in as_completed(futures):
            job = futures[future]
            try:
                stats = future.result()
            except FileJobError as e:
                summary.add(FileResult(job, error=e))
            else:
                summary.add(FileResult(job, stats=stats))

    summary.elapsed_seconds = time.time() - start
    summary.peak_memory_mb = psutil.Process().memory_info().rss / 1024 / 1024

    if summary.succeeded:
        logger.info("Cleaned %d file(s) in %.2fs", len(jobs), summary.elapsed_seconds)
    else:
        logger.warning("%d of %d file(s) failed", len(summary.failures), len(jobs))
    return summary


def run_corpus(
    corpus: str,
    languages: Union[str, Iterable[str]],
    input_dir: Union[str, Path],
    output_dir: Union[str, Path],
    patterns: PatternSet,
    max_workers: Optional[int] = None,
    reporter: Optional[ProgressReporter] = None,
    encoding: str = DEFAULT_ENCODING,
    atomic: bool = True,
) -> RunSummary:
    """
    Clean every ``<input_dir>/<corpus>.<lang>`` into ``<output_dir>``.

    Args:
        corpus: Corpus name, without the language extension
        languages: Language codes, as a list or comma-separated string
        input_dir: Directory holding the raw corpora
        output_dir: Directory for cleaned corpora; created if missing
        patterns: Compiled pattern set shared by every pipeline
        max_workers: Thread cap (default: one per language)
        reporter: Progress reporter receiving pipeline events
        encoding: Text encoding of the corpus files
        atomic: Write through a temporary file and rename on success

    Returns:
        Summary holding one result per language

    Raises:
        EncodingConfigError: *encoding* is unknown or not ASCII-compatible
        OutputOpenError: The output directory cannot be created
    """
    check_encoding(encoding)
    jobs = build_jobs(corpus, languages, input_dir, output_dir)
    ensure_output_dir(output_dir)
    return run_jobs(
        jobs,
        patterns,
        max_workers=max_workers,
        reporter=reporter,
        encoding=encoding,
        atomic=atomic,
        corpus=corpus,
    )
