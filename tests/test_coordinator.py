"""Run coordinator tests: job naming, fan-out and per-language isolation."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from corpusclean.cleaner.coordinator import build_jobs, parse_languages, run_corpus, run_jobs
from corpusclean.cleaner.errors import EncodingConfigError, InputOpenError, LineDecodeError, OutputOpenError
from corpusclean.cleaner.output import FileJob, FileResult, PipelineStats, RunSummary
from corpusclean.cleaner.patterns import PatternSet
from corpusclean.cleaner.progress import ProgressReporter


@pytest.fixture()
def patterns() -> PatternSet:
    return PatternSet(remove=["^#"], replace=[("foo", "bar")])


def _write_corpus(raw: Path, corpus: str, files: dict) -> None:
    raw.mkdir(parents=True, exist_ok=True)
    for lang, data in files.items():
        (raw / f"{corpus}.{lang}").write_bytes(data)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def test_parse_languages() -> None:
    assert parse_languages("en,de,fr,es,it,pt") == ["en", "de", "fr", "es", "it", "pt"]
    assert parse_languages(" en , de,,en ") == ["en", "de"]
    assert parse_languages(["fr", "fr"]) == ["fr"]
    assert parse_languages("") == []


def test_build_jobs_naming() -> None:
    jobs = build_jobs("europarl", "en,de", "raw", "prepro")
    assert jobs == [
        FileJob("en", Path("raw/europarl.en"), Path("prepro/europarl.en")),
        FileJob("de", Path("raw/europarl.de"), Path("prepro/europarl.de")),
    ]


@pytest.mark.parametrize("corpus,languages", [("", "en"), ("europarl", ""), ("europarl", " , ")])
def test_build_jobs_rejects_empty_input(corpus: str, languages: str) -> None:
    with pytest.raises(ValueError):
        build_jobs(corpus, languages, "raw", "prepro")


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


def test_run_creates_output_dir_and_cleans_every_language(tmp_path: Path, patterns: PatternSet) -> None:
    raw = tmp_path / "raw"
    out = tmp_path / "nested" / "prepro"
    _write_corpus(raw, "corp", {
        "en": b"# comment\nfoo baz\nhello foo world\n",
        "de": b"foo\n",
    })

    summary = run_corpus("corp", "en,de", raw, out, patterns)

    assert summary.succeeded
    assert sorted(r.language for r in summary.results) == ["de", "en"]
    assert (out / "corp.en").read_text(encoding="utf-8") == "bar baz\nhello bar world\n"
    assert (out / "corp.de").read_text(encoding="utf-8") == "bar\n"

    en = summary.result_for("en")
    assert en.stats.total_lines == 3
    assert en.stats.skipped_lines == 1
    assert en.stats.retained_lines == 2


def test_missing_language_is_isolated(tmp_path: Path, patterns: PatternSet) -> None:
    raw = tmp_path / "raw"
    out = tmp_path / "prepro"
    _write_corpus(raw, "corp", {"en": b"# comment\nfoo baz\nhello foo world\n"})

    summary = run_corpus("corp", "en,de", raw, out, patterns)

    assert not summary.succeeded
    en = summary.result_for("en")
    de = summary.result_for("de")
    assert en.ok
    assert (out / "corp.en").read_text(encoding="utf-8") == "bar baz\nhello bar world\n"
    assert not de.ok
    assert isinstance(de.error, InputOpenError)
    assert de.error.path == raw / "corp.de"
    assert not (out / "corp.de").exists()
    assert summary.failures == [de]


def test_decode_failure_is_isolated(tmp_path: Path, patterns: PatternSet) -> None:
    raw = tmp_path / "raw"
    out = tmp_path / "prepro"
    _write_corpus(raw, "corp", {"en": b"foo\n", "fr": b"ok\n\xff\n", "it": b"# x\n"})

    summary = run_corpus("corp", ["en", "fr", "it"], raw, out, patterns)

    assert isinstance(summary.result_for("fr").error, LineDecodeError)
    assert summary.result_for("en").ok
    assert summary.result_for("it").ok
    assert summary.result_for("it").stats.retained_lines == 0
    assert not (out / "corp.fr").exists()


def test_many_languages_with_few_workers(tmp_path: Path, patterns: PatternSet) -> None:
    raw = tmp_path / "raw"
    out = tmp_path / "prepro"
    langs = [f"l{i}" for i in range(8)]
    _write_corpus(raw, "corp", {lang: f"foo {lang}\n# skip\n".encode() * 50 for lang in langs})

    summary = run_corpus("corp", langs, raw, out, patterns, max_workers=3)

    assert summary.succeeded
    assert len(summary.results) == 8
    for lang in langs:
        assert (out / f"corp.{lang}").read_text(encoding="utf-8") == f"bar {lang}\n" * 50
        assert summary.result_for(lang).stats.skipped_lines == 50
    assert summary.totals()["total_lines"] == 8 * 100


def test_unusable_output_dir_is_a_setup_error(tmp_path: Path, patterns: PatternSet) -> None:
    blocker = tmp_path / "prepro"
    blocker.write_text("not a directory")
    with pytest.raises(OutputOpenError):
        run_corpus("corp", "en", tmp_path / "raw", blocker, patterns)


@pytest.mark.parametrize("encoding", ["no-such-codec", "utf-16"])
def test_unusable_encoding_fails_before_any_file(tmp_path: Path, patterns: PatternSet, encoding: str) -> None:
    raw = tmp_path / "raw"
    out = tmp_path / "prepro"
    _write_corpus(raw, "corp", {"en": b"foo\n", "de": b"foo\n"})

    with pytest.raises(EncodingConfigError):
        run_corpus("corp", "en,de", raw, out, patterns, encoding=encoding)
    assert not out.exists()


def test_reporter_collects_messages(tmp_path: Path, patterns: PatternSet) -> None:
    raw = tmp_path / "raw"
    out = tmp_path / "prepro"
    _write_corpus(raw, "corp", {"en": b"# comment\nfoo baz\nhello foo world\n"})

    with ProgressReporter(enabled=False) as reporter:
        run_corpus("corp", "en,de", raw, out, patterns, reporter=reporter)

    assert reporter.messages["en"] == f"Finished processing {raw / 'corp.en'}, (2 / 3 = 66.67)"
    assert reporter.messages["de"].startswith(f"Failed {raw / 'corp.de'}")


def test_run_jobs_with_no_jobs(patterns: PatternSet) -> None:
    summary = run_jobs([], patterns, corpus="empty")
    assert summary.succeeded
    assert summary.results == []


# ---------------------------------------------------------------------------
# Stats and summaries
# ---------------------------------------------------------------------------


def test_stats_zero_lines_is_defined() -> None:
    stats = PipelineStats()
    assert stats.retention_ratio == 0.0
    assert stats.retention_percent == 0.0
    assert stats.describe() == "0 / 0 = 0.00"


def test_stats_describe() -> None:
    stats = PipelineStats(total_lines=3, skipped_lines=1)
    assert stats.retained_lines == 2
    assert stats.describe() == "2 / 3 = 66.67"


def test_file_result_needs_exactly_one_outcome() -> None:
    job = FileJob("en", Path("a"), Path("b"))
    with pytest.raises(ValueError):
        FileResult(job)
    with pytest.raises(ValueError):
        FileResult(job, stats=PipelineStats(), error=InputOpenError("a", "gone"))


def test_save_stats(tmp_path: Path) -> None:
    summary = RunSummary("corp")
    summary.add(FileResult(FileJob("en", Path("raw/corp.en"), Path("prepro/corp.en")),
                           stats=PipelineStats(total_lines=4, skipped_lines=1)))
    summary.add(FileResult(FileJob("de", Path("raw/corp.de"), Path("prepro/corp.de")),
                           error=InputOpenError("raw/corp.de", "No such file or directory")))

    path = summary.save_stats(tmp_path)

    assert path == tmp_path / "corp_stats.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["corpus"] == "corp"
    assert data["succeeded"] is False
    assert data["totals"]["retained_lines"] == 3
    assert data["totals"]["failed"] == 1
    files = {f["language"]: f for f in data["files"]}
    assert files["en"]["stats"]["skipped_lines"] == 1
    assert files["de"]["error"]["type"] == "InputOpenError"
