"""corpusclean command-line interface.

Usage
-----
$ corpusclean clean --corpus europarl --languages en,de,fr --patterns patterns.yaml
$ corpusclean check patterns.yaml
$ corpusclean preview --corpus europarl --language de --lines 20

The *clean* command cleans ``<input-dir>/<corpus>.<lang>`` for every language,
in parallel, into ``<output-dir>/<corpus>.<lang>``.

The *check* command compiles a pattern file and reports what it contains.

The *preview* command shows what the patterns would do to the first lines of
one language file without writing anything.

Exit status: 0 on success, 1 if any language failed, 2 on a setup error
(bad pattern file, unusable output directory, bad arguments), 130 when
interrupted.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from tqdm.contrib.logging import logging_redirect_tqdm

from .cleaner import __version__
from .cleaner.coordinator import (
    DEFAULT_INPUT_DIR,
    DEFAULT_LANGUAGES,
    DEFAULT_OUTPUT_DIR,
    corpus_file_name,
    parse_languages,
    run_corpus,
)
from .cleaner.errors import EncodingConfigError, FileJobError, OutputOpenError, PatternConfigError
from .cleaner.file_pipeline import DEFAULT_ENCODING, check_encoding, iter_lines
from .cleaner.output import RunSummary
from .cleaner.patterns import SYNTAXES, PatternSet, load_patterns
from .cleaner.processor import process_line
from .cleaner.progress import ProgressReporter

logger = logging.getLogger(__name__)

DEFAULT_PATTERNS = "patterns.yaml"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_SETUP = 2
EXIT_INTERRUPTED = 130

# -----------------------------------------------------------
# Helpers
# -----------------------------------------------------------


def _encoding(value: str) -> str:
    try:
        return check_encoding(value)
    except EncodingConfigError as e:
        raise argparse.ArgumentTypeError(str(e))


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(args: argparse.Namespace) -> PatternSet:
    patterns = load_patterns(args.patterns, syntax=args.syntax)
    logger.info("Loaded %r from %s", patterns, args.patterns)
    return patterns


def _print_summary(summary: RunSummary) -> None:
    totals = summary.totals()

    print("\n" + "=" * 60)
    print(f"📊 CORPUS {summary.corpus!r} PROCESSED")
    print("=" * 60)
    print(f"⏱️  Processing Time: {summary.elapsed_seconds:.2f}s")
    print(f"💾 Memory: {summary.peak_memory_mb:.1f} MB")
    print()

    for result in sorted(summary.results, key=lambda r: r.language):
        if result.ok:
            stats = result.stats
            print(f"   ✅ {result.language}: {stats.retained_lines:,} / {stats.total_lines:,} lines kept "
                  f"({stats.retention_percent:.2f}%), {stats.skipped_lines:,} removed")
        else:
            print(f"   ❌ {result.language}: {result.error}")
    print()

    print(f"📥 Input: {totals['total_lines']:,} lines")
    print(f"📤 Output: {totals['retained_lines']:,} lines")
    print(f"🗑️  Removed: {totals['skipped_lines']:,} lines")


# -----------------------------------------------------------
# Commands
# -----------------------------------------------------------


def _cmd_clean(args: argparse.Namespace) -> int:
    """Clean every language file of a corpus."""
    if not args.corpus.strip():
        print("❌ No corpus name given", file=sys.stderr)
        return EXIT_SETUP
    languages = parse_languages(args.languages)
    if not languages:
        print("❌ No languages given", file=sys.stderr)
        return EXIT_SETUP

    patterns = _load(args)

    if not args.quiet:
        print(f"🧹 corpusclean {__version__} - cleaning {args.corpus} ({', '.join(languages)})")

    with logging_redirect_tqdm():
        with ProgressReporter(enabled=not args.quiet) as reporter:
            summary = run_corpus(
                corpus=args.corpus,
                languages=languages,
                input_dir=args.input_dir,
                output_dir=args.output_dir,
                patterns=patterns,
                max_workers=args.workers,
                reporter=reporter,
                encoding=args.encoding,
                atomic=not args.no_atomic,
            )

    if not args.quiet:
        _print_summary(summary)

    for result in summary.failures:
        print(f"❌ {result.language}: {result.job.input_path}: {result.error.reason}", file=sys.stderr)

    if args.save_stats:
        stats_path = summary.save_stats(args.output_dir)
        if not args.quiet:
            print(f"💾 Detailed stats saved to {stats_path}")

    if summary.succeeded:
        if not args.quiet:
            print("\n✅ All languages cleaned successfully!")
        return EXIT_OK
    return EXIT_FAILED


def _cmd_check(args: argparse.Namespace) -> int:
    """Compile a pattern file and report its contents."""
    patterns = _load(args)
    print(f"✅ {args.patterns}: {len(patterns.remove_patterns)} removal pattern(s), "
          f"{len(patterns.substitutions)} substitution(s), {patterns.syntax} syntax")
    if args.show:
        for p in patterns.remove_patterns:
            print(f"   - remove  {p.pattern}")
        for rule in patterns.substitutions:
            print(f"   ~ replace {rule.pattern.pattern} -> {rule.replacement}")
    return EXIT_OK


def _cmd_preview(args: argparse.Namespace) -> int:
    """Show the decision for the first lines of one language file."""
    patterns = _load(args)
    path = Path(args.input_dir) / corpus_file_name(args.corpus, args.language)

    print(f"🔍 Preview of {path}")
    print("=" * 40)

    try:
        handle = open(path, "rb")
    except OSError as e:
        print(f"❌ {path}: cannot open input: {e.strerror or e}", file=sys.stderr)
        return EXIT_FAILED

    kept = dropped = 0
    with handle:
        try:
            for number, line in iter_lines(handle, path, args.encoding):
                if number > args.lines:
                    break
                cleaned = process_line(line, patterns)
                if cleaned is None:
                    dropped += 1
                    print(f"{number:>6} - {line}")
                elif cleaned == line:
                    kept += 1
                    print(f"{number:>6} = {line}")
                else:
                    kept += 1
                    print(f"{number:>6} ~ {line}")
                    print(f"{'':>6} > {cleaned}")
        except FileJobError as e:
            print(f"❌ {e}", file=sys.stderr)
            return EXIT_FAILED

    print("-" * 40)
    print(f"{kept} kept, {dropped} removed")
    return EXIT_OK


# -----------------------------------------------------------
# Entrypoint
# -----------------------------------------------------------


def create_argument_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-p", "--patterns", default=DEFAULT_PATTERNS,
                        help=f"Path to the patterns YAML file (default: {DEFAULT_PATTERNS})")
    common.add_argument("--syntax", choices=SYNTAXES, default=None,
                        help="Replacement template syntax (default: from the pattern file, else dollar)")
    common.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log more (-v info, -vv debug)")

    parser = argparse.ArgumentParser(
        prog="corpusclean",
        description="Clean multilingual corpora with regex removal and substitution patterns",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(required=True, dest="cmd")

    # clean
    p_clean = sub.add_parser("clean", parents=[common], help="Clean every language file of a corpus")
    p_clean.add_argument("-c", "--corpus", required=True,
                         help="The name of the corpus, without the language extension")
    p_clean.add_argument("-l", "--languages", default=DEFAULT_LANGUAGES,
                         help=f"Comma separated list of languages to clean (default: {DEFAULT_LANGUAGES})")
    p_clean.add_argument("-i", "--input-dir", default=DEFAULT_INPUT_DIR,
                         help=f"Input directory, where the raw corpora are located (default: {DEFAULT_INPUT_DIR})")
    p_clean.add_argument("-o", "--output-dir", default=DEFAULT_OUTPUT_DIR,
                         help=f"Output directory for the processed corpora (default: {DEFAULT_OUTPUT_DIR})")
    p_clean.add_argument("-j", "--workers", type=int, default=None,
                         help="Maximum number of files processed at once (default: one per language)")
    p_clean.add_argument("--encoding", type=_encoding, default=DEFAULT_ENCODING,
                         help=f"Encoding of the corpus files (default: {DEFAULT_ENCODING})")
    p_clean.add_argument("--no-atomic", action="store_true",
                         help="Write outputs in place instead of through a temporary file")
    p_clean.add_argument("--save-stats", action="store_true",
                         help="Save statistics to <output-dir>/<corpus>_stats.json")
    p_clean.add_argument("-q", "--quiet", action="store_true",
                         help="Suppress progress bars and the summary")
    p_clean.set_defaults(func=_cmd_clean)

    # check
    p_check = sub.add_parser("check", parents=[common], help="Validate a pattern file")
    p_check.add_argument("--show", action="store_true", help="List every compiled pattern")
    p_check.set_defaults(func=_cmd_check)

    # preview
    p_preview = sub.add_parser("preview", parents=[common], help="Preview the effect of the patterns on one file")
    p_preview.add_argument("-c", "--corpus", required=True,
                           help="The name of the corpus, without the language extension")
    p_preview.add_argument("-L", "--language", default="en", help="Language to preview (default: en)")
    p_preview.add_argument("-i", "--input-dir", default=DEFAULT_INPUT_DIR,
                           help=f"Input directory (default: {DEFAULT_INPUT_DIR})")
    p_preview.add_argument("-n", "--lines", type=int, default=10,
                           help="Number of lines to show (default: 10)")
    p_preview.add_argument("--encoding", type=_encoding, default=DEFAULT_ENCODING,
                           help=f"Encoding of the corpus file (default: {DEFAULT_ENCODING})")
    p_preview.set_defaults(func=_cmd_preview)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        return args.func(args)
    except (PatternConfigError, EncodingConfigError, OutputOpenError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_SETUP
    except KeyboardInterrupt:  # pragma: no cover
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
