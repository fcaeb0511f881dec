"""Statistics and results for cleaning runs.

- :class:`PipelineStats` counts lines for one language file
- :class:`FileResult` pairs a job with its stats or its error
- :class:`RunSummary` aggregates one run and can be saved as JSON
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Union

from .errors import CleanError


class FileJob(NamedTuple):
    """One language file: where to read it and where to write it."""

    language: str
    input_path: Path
    output_path: Path


class PipelineStats:
    """Line counts for one processed file."""

    def __init__(self, total_lines: int = 0, skipped_lines: int = 0):
        self.total_lines = total_lines
        self.skipped_lines = skipped_lines
        self.elapsed_seconds = 0.0

    def add_line(self, dropped: bool) -> None:
        self.total_lines += 1
        if dropped:
            self.skipped_lines += 1

    @property
    def retained_lines(self) -> int:
        return self.total_lines - self.skipped_lines

    @property
    def retention_ratio(self) -> float:
        """Retained / total; 0.0 for an empty file."""
        if self.total_lines == 0:
            return 0.0
        return self.retained_lines / self.total_lines

    @property
    def retention_percent(self) -> float:
        return self.retention_ratio * 100

    def describe(self) -> str:
        """Human-readable ``retained / total = pct`` fragment."""
        return f"{self.retained_lines} / {self.total_lines} = {self.retention_percent:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_lines': self.total_lines,
            'skipped_lines': self.skipped_lines,
            'retained_lines': self.retained_lines,
            'retention_ratio': self.retention_ratio,
            'elapsed_seconds': self.elapsed_seconds,
            'lines_per_second': self.total_lines / max(self.elapsed_seconds, 1e-9),
        }

    def __repr__(self) -> str:
        return f"PipelineStats(total_lines={self.total_lines}, skipped_lines={self.skipped_lines})"


class FileResult:
    """Outcome of one language's pipeline: stats on success, error on failure."""

    def __init__(self, job: FileJob, stats: Optional[PipelineStats] = None,
                 error: Optional[CleanError] = None):
        if (stats is None) == (error is None):
            raise ValueError("FileResult needs exactly one of stats or error")
        self.job = job
        self.stats = stats
        self.error = error

    @property
    def language(self) -> str:
        return self.job.language

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            'language': self.language,
            'input_path': str(self.job.input_path),
            'output_path': str(self.job.output_path),
            'ok': self.ok,
        }
        if self.stats is not None:
            record['stats'] = self.stats.to_dict()
        else:
            record['error'] = {'type': type(self.error).__name__, 'message': str(self.error)}
        return record


class RunSummary:
    """All per-language results of one run, in completion order."""

    def __init__(self, corpus: str, results: Optional[List[FileResult]] = None):
        self.corpus = corpus
        self.results: List[FileResult] = list(results or [])
        self.elapsed_seconds = 0.0
        self.peak_memory_mb = 0.0

    def add(self, result: FileResult) -> None:
        self.results.append(result)

    @property
    def succeeded(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failures(self) -> List[FileResult]:
        return [r for r in self.results if not r.ok]

    def result_for(self, language: str) -> Optional[FileResult]:
        for r in self.results:
            if r.language == language:
                return r
        return None

    def totals(self) -> Dict[str, Any]:
        total = sum(r.stats.total_lines for r in self.results if r.stats)
        skipped = sum(r.stats.skipped_lines for r in self.results if r.stats)
        return {
            'languages': len(self.results),
            'succeeded': len(self.results) - len(self.failures),
            'failed': len(self.failures),
            'total_lines': total,
            'skipped_lines': skipped,
            'retained_lines': total - skipped,
            'retention_ratio': (total - skipped) / max(total, 1),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'corpus': self.corpus,
            'succeeded': self.succeeded,
            'elapsed_seconds': self.elapsed_seconds,
            'peak_memory_mb': self.peak_memory_mb,
            'totals': self.totals(),
            'files': [r.to_dict() for r in self.results],
        }

    def save_stats(self, output_dir: Union[str, Path]) -> Path:
        """Write the summary to ``<output_dir>/<corpus>_stats.json``."""
        stats_path = Path(output_dir) / f"{self.corpus}_stats.json"
        with open(stats_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return stats_path
