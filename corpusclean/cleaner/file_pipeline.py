"""Single-file cleaning pipeline.

Reads one language file line by line, drops or rewrites each line with the
shared :class:`~corpusclean.cleaner.patterns.PatternSet` and writes the kept
lines, in input order, to the output file.

Output is written to ``<output>.partial`` and renamed into place only once the
whole file went through, so a failed file never leaves something that looks
like a finished output.
"""
from __future__ import annotations

import codecs
import contextlib
import logging
import os
import queue
import time
from pathlib import Path
from typing import BinaryIO, Generator, Optional, Tuple

from .errors import CleanError, EncodingConfigError, FileJobError, InputOpenError, LineDecodeError, OutputOpenError
from .output import FileJob, PipelineStats
from .patterns import PatternSet
from .processor import process_line
from .progress import FAILED, FINISHED, PROGRESS, PROGRESS_EVERY, STARTED, ProgressEvent, emit, finished_message

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"
PARTIAL_SUFFIX = ".partial"


def _reason(e: OSError) -> str:
    return e.strerror or str(e)


def partial_path(output_path: Path) -> Path:
    return output_path.with_name(output_path.name + PARTIAL_SUFFIX)


def check_encoding(encoding: str) -> str:
    """Return *encoding* if it is known and encodes ASCII as single bytes.

    Lines are split on the byte ``\\n``, so encodings like UTF-16 would cut
    characters in half.  Raises :class:`EncodingConfigError` otherwise.
    """
    try:
        codecs.lookup(encoding)
    except LookupError as e:
        raise EncodingConfigError(encoding, "unknown encoding") from e
    if "a\n".encode(encoding) != b"a\n" or b"a\n".decode(encoding) != "a\n":
        raise EncodingConfigError(encoding, "not ASCII-compatible")
    return encoding


def iter_lines(handle: BinaryIO, path: Path, encoding: str = DEFAULT_ENCODING
               ) -> Generator[Tuple[int, str], None, None]:
    """Yield ``(line_number, text)`` for every line of a binary *handle*.

    ``\\n`` and ``\\r\\n`` terminators are both removed.  A line that does not
    decode raises :class:`LineDecodeError` with its 1-based number.
    """
    for number, raw in enumerate(handle, 1):
        if raw.endswith(b"\n"):
            raw = raw[:-1]
            if raw.endswith(b"\r"):
                raw = raw[:-1]
        try:
            text = raw.decode(encoding)
        except UnicodeDecodeError as e:
            raise LineDecodeError(path, number, str(e)) from e
        yield number, text


def process_file(
    job: FileJob,
    patterns: PatternSet,
    events: Optional["queue.Queue[Optional[ProgressEvent]]"] = None,
    encoding: str = DEFAULT_ENCODING,
    atomic: bool = True,
) -> PipelineStats:
    """
    Clean one language file.

    Args:
        job: Input and output paths for one language
        patterns: Shared, read-only pattern set
        events: Optional queue receiving :class:`ProgressEvent` messages
        encoding: Text encoding of input and output (must be ASCII-compatible)
        atomic: Write through ``<output>.partial`` and rename on success

    Returns:
        Line statistics for the file

    Raises:
        InputOpenError: Input cannot be opened; no output is created
        OutputOpenError: Output cannot be created
        LineDecodeError: A line is not valid in *encoding*; the file is aborted
        EncodingConfigError: *encoding* is unknown or not ASCII-compatible
        FileJobError: Writing or finalising the output failed
    """
    check_encoding(encoding)

    try:
        stats = _run(job, patterns, events, encoding, atomic)
    except CleanError as e:
        logger.warning("[%s] %s", job.language, e)
        emit(events, ProgressEvent(FAILED, job.language, job.input_path, error=e))
        raise

    logger.debug("[%s] %s", job.language, finished_message(job.input_path, stats))
    emit(events, ProgressEvent(FINISHED, job.language, job.input_path,
                               lines=stats.total_lines, stats=stats))
    return stats


def _run(job: FileJob, patterns: PatternSet,
         events: Optional["queue.Queue[Optional[ProgressEvent]]"],
         encoding: str, atomic: bool) -> PipelineStats:
    start = time.time()
    stats = PipelineStats()

    try:
        in_file = open(job.input_path, "rb")
    except OSError as e:
        raise InputOpenError(job.input_path, _reason(e)) from e

    with in_file:
        logger.debug("[%s] Processing %s -> %s", job.language, job.input_path, job.output_path)
        emit(events, ProgressEvent(STARTED, job.language, job.input_path))

        target = partial_path(job.output_path) if atomic else job.output_path
        try:
            out_file = open(target, "w", encoding=encoding, newline="\n")
        except OSError as e:
            raise OutputOpenError(job.output_path, _reason(e)) from e

        try:
            with out_file:
                for number, line in iter_lines(in_file, job.input_path, encoding):
                    cleaned = process_line(line, patterns)
                    stats.add_line(dropped=cleaned is None)
                    if cleaned is not None:
                        try:
                            out_file.write(cleaned)
                        except UnicodeEncodeError as e:
                            raise FileJobError(job.output_path,
                                               f"cannot encode output for input line {number}: {e}") from e
                        out_file.write("\n")
                    if number % PROGRESS_EVERY == 0:
                        emit(events, ProgressEvent(PROGRESS, job.language, job.input_path, lines=number))
            if atomic:
                os.replace(target, job.output_path)
        except OSError as e:
            _discard(target)
            raise FileJobError(job.output_path, f"I/O error: {_reason(e)}") from e
        except BaseException:
            _discard(target)
            raise

    stats.elapsed_seconds = time.time() - start
    return stats


def _discard(path: Path) -> None:
    with contextlib.suppress(FileNotFoundError):
        os.remove(path)
