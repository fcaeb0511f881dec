"""Progress reporting for concurrent file pipelines.

Pipelines never touch the terminal.  They put :class:`ProgressEvent` messages
on a queue and a single :class:`ProgressReporter` thread turns them into one
tqdm bar per language.  A pipeline given no queue simply reports nothing.
"""
from __future__ import annotations

import logging
import queue
import sys
import threading
from pathlib import Path
from typing import Dict, NamedTuple, Optional, TextIO

from tqdm import tqdm

from .errors import CleanError
from .output import PipelineStats

logger = logging.getLogger(__name__)

STARTED = "started"
PROGRESS = "progress"
FINISHED = "finished"
FAILED = "failed"

# Lines between two PROGRESS events from one pipeline
PROGRESS_EVERY = 10_000

_BAR_FORMAT = "{desc} {n_fmt} lines [{elapsed}, {rate_fmt}] {postfix}"


class ProgressEvent(NamedTuple):
    kind: str
    language: str
    path: Path
    lines: int = 0
    stats: Optional[PipelineStats] = None
    error: Optional[CleanError] = None


def emit(events: Optional["queue.Queue[Optional[ProgressEvent]]"], event: ProgressEvent) -> None:
    """Put *event* on *events* if there is a sink at all."""
    if events is not None:
        events.put(event)


def finished_message(path: Path, stats: PipelineStats) -> str:
    return f"Finished processing {path}, ({stats.describe()})"


class ProgressReporter:
    """Single consumer of progress events.

    Usage::

        with ProgressReporter() as reporter:
            run_corpus(..., reporter=reporter)
    """

    def __init__(self, enabled: bool = True, file: Optional[TextIO] = None):
        self.enabled = enabled
        self.file = file or sys.stderr
        self.events: "queue.Queue[Optional[ProgressEvent]]" = queue.Queue()
        self.messages: Dict[str, str] = {}
        self._bars: Dict[str, tqdm] = {}
        self._thread: Optional[threading.Thread] = None

    # -- lifecycle -------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._consume, name="progress-reporter", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Drain outstanding events and close every bar."""
        if self._thread is None:
            return
        self.events.put(None)
        self._thread.join()
        self._thread = None
        for bar in self._bars.values():
            bar.close()
        self._bars.clear()

    def __enter__(self) -> "ProgressReporter":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # -- consumer --------------------------------------------------------

    def _consume(self) -> None:
        while True:
            event = self.events.get()
            if event is None:
                break
            self.handle(event)

    def _bar(self, language: str) -> tqdm:
        bar = self._bars.get(language)
        if bar is None:
            bar = tqdm(
                total=None,
                desc=language,
                position=len(self._bars),
                bar_format=_BAR_FORMAT,
                file=self.file,
                disable=not self.enabled,
                leave=True,
            )
            self._bars[language] = bar
        return bar

    def handle(self, event: ProgressEvent) -> None:
        """Apply one event to the matching bar."""
        bar = self._bar(event.language)

        if event.kind == STARTED:
            message = f"Processing {event.path}"
        elif event.kind == PROGRESS:
            bar.update(event.lines - bar.n)
            return
        elif event.kind == FINISHED and event.stats is not None:
            bar.update(event.stats.total_lines - bar.n)
            message = finished_message(event.path, event.stats)
            logger.info("[%s] %s", event.language, message)
        elif event.kind == FAILED:
            message = f"Failed {event.path}: {event.error}"
        else:
            logger.debug("Ignoring unknown progress event %r", event)
            return

        self.messages[event.language] = message
        bar.set_postfix_str(message, refresh=True)
