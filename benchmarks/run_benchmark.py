#!/usr/bin/env python3
"""
Benchmark suite for markup-compressor.

Measures minified size, gzipped size and timing across the BASIC, AGGRESSIVE
and EXTREME levels for every corpus file.

Usage:
    python benchmarks/run_benchmark.py                 # basic run
    python benchmarks/run_benchmark.py --gzip          # also report gzipped sizes
    python benchmarks/run_benchmark.py --output results.json  # save to file
    python benchmarks/run_benchmark.py --iterations 20  # average over 20 runs
"""

from __future__ import annotations

import argparse
import datetime
import json
import platform
import statistics
import sys
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path

# Ensure the src package is importable when running from repo root.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_PROJECT_ROOT / "src"))

from markup_compressor import CompressionLevel, minify_html, wrap  # noqa: E402

_LEVELS = (CompressionLevel.BASIC, CompressionLevel.AGGRESSIVE, CompressionLevel.EXTREME)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class LevelResult:
    """Benchmark result for a single (file, level) combination."""

    level: int
    original_bytes: int
    minified_bytes: int
    ratio: float
    savings_pct: float
    mean_time_ms: float
    median_time_ms: float
    min_time_ms: float
    max_time_ms: float
    gzipped_bytes: int | None = None


@dataclass(slots=True)
class FileResult:
    """Benchmark results for a single corpus file across all levels."""

    filename: str
    original_bytes: int
    levels: list[LevelResult] = field(default_factory=list)


@dataclass(slots=True)
class BenchmarkReport:
    """Full benchmark report."""

    timestamp: str
    python_version: str
    platform: str
    iterations: int
    gzip: bool
    files: list[FileResult] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_SEP = "-" * 100
_HEADER_FMT = "  {:<12s} {:>10s} {:>10s} {:>8s} {:>8s} {:>10s} {:>10s}"
_ROW_FMT = "  {:<12s} {:>10,d} {:>10,d} {:>7.1f}% {:>7.1f}% {:>9.2f}ms {:>9.2f}ms"
_GZIP_HEADER_FMT = " {:>10s}"
_GZIP_ROW_FMT = " {:>10,d}"


def _print_table_header(*, gzip: bool) -> None:
    header = _HEADER_FMT.format(
        "Level", "Orig", "Min", "Ratio", "Saved", "Mean(ms)", "Med(ms)"
    )
    if gzip:
        header += _GZIP_HEADER_FMT.format("Gzipped")
    print(header)


def _print_table_row(r: LevelResult, *, gzip: bool) -> None:
    row = _ROW_FMT.format(
        CompressionLevel(r.level).name,
        r.original_bytes,
        r.minified_bytes,
        r.ratio * 100,
        r.savings_pct,
        r.mean_time_ms,
        r.median_time_ms,
    )
    if gzip and r.gzipped_bytes is not None:
        row += _GZIP_ROW_FMT.format(r.gzipped_bytes)
    print(row)


# ---------------------------------------------------------------------------
# Core benchmark logic
# ---------------------------------------------------------------------------


def benchmark_text(
    text: str,
    *,
    iterations: int = 10,
    gzip: bool = False,
) -> list[LevelResult]:
    """Minify *text* at every concrete level and return results."""
    results: list[LevelResult] = []
    orig_len = len(text.encode("utf-8"))

    for level in _LEVELS:
        timings: list[float] = []
        minified = ""

        for _ in range(iterations):
            t0 = time.perf_counter()
            minified = minify_html(text, level)
            t1 = time.perf_counter()
            timings.append((t1 - t0) * 1000)  # ms

        body = minified.encode("utf-8")
        ratio = len(body) / orig_len if orig_len > 0 else 1.0

        results.append(LevelResult(
            level=int(level),
            original_bytes=orig_len,
            minified_bytes=len(body),
            ratio=ratio,
            savings_pct=(1.0 - ratio) * 100.0,
            mean_time_ms=statistics.mean(timings),
            median_time_ms=statistics.median(timings),
            min_time_ms=min(timings),
            max_time_ms=max(timings),
            gzipped_bytes=len(wrap(body, True)) if gzip else None,
        ))

    return results


def run_benchmark(
    corpus_dir: Path,
    *,
    iterations: int = 10,
    gzip: bool = False,
    output_path: Path | None = None,
) -> BenchmarkReport:
    """Run the full benchmark over all corpus files."""
    report = BenchmarkReport(
        timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        python_version=platform.python_version(),
        platform=platform.platform(),
        iterations=iterations,
        gzip=gzip,
    )

    corpus_files = sorted(corpus_dir.glob("*.html"))
    if not corpus_files:
        print(f"No .html files found in {corpus_dir}")
        sys.exit(1)

    print("\nmarkup-compressor benchmark")
    print(f"Python {platform.python_version()} on {platform.platform()}")
    print(f"Iterations per level: {iterations}")
    if gzip:
        print("Gzip sizes: ON (level 9)")
    print(_SEP)

    for fp in corpus_files:
        text = fp.read_text(encoding="utf-8")
        level_results = benchmark_text(text, iterations=iterations, gzip=gzip)
        fr = FileResult(filename=fp.name, original_bytes=level_results[0].original_bytes, levels=level_results)
        report.files.append(fr)

        print(f"\n  File: {fp.name} ({fr.original_bytes:,d} bytes)")
        _print_table_header(gzip=gzip)
        for lr in level_results:
            _print_table_row(lr, gzip=gzip)

    # Summary across all files
    print(f"\n{_SEP}")
    print("  AGGREGATE SUMMARY")
    print(_SEP)
    _print_table_header(gzip=gzip)

    for level in _LEVELS:
        per_file = [lr for fr in report.files for lr in fr.levels if lr.level == level]
        all_orig = sum(fr.original_bytes for fr in report.files)
        all_min = sum(lr.minified_bytes for lr in per_file)
        ratio = all_min / all_orig if all_orig > 0 else 1.0

        agg = LevelResult(
            level=int(level),
            original_bytes=all_orig,
            minified_bytes=all_min,
            ratio=ratio,
            savings_pct=(1.0 - ratio) * 100.0,
            mean_time_ms=statistics.mean(lr.mean_time_ms for lr in per_file),
            median_time_ms=statistics.median(lr.median_time_ms for lr in per_file),
            min_time_ms=0.0,
            max_time_ms=0.0,
        )
        if gzip:
            agg.gzipped_bytes = sum(lr.gzipped_bytes or 0 for lr in per_file)

        _print_table_row(agg, gzip=gzip)

    print()

    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(asdict(report), indent=2), encoding="utf-8")
        print(f"  Results saved to {output_path}")
        print()

    return report


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Benchmark suite for markup-compressor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--corpus",
        type=Path,
        default=Path(__file__).resolve().parent / "corpus",
        help="Directory with .html corpus files (default: benchmarks/corpus/)",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=10,
        help="Number of iterations per (file, level) to average timing (default: 10)",
    )
    parser.add_argument(
        "--gzip",
        action="store_true",
        help="Also report the gzipped size of each minified output",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Path to save JSON results (e.g. benchmarks/results.json)",
    )
    args = parser.parse_args()

    run_benchmark(
        corpus_dir=args.corpus,
        iterations=args.iterations,
        gzip=args.gzip,
        output_path=args.output,
    )


if __name__ == "__main__":
    main()
