#!/usr/bin/env python3
"""Compare the recursive and iterative magic math strategies from the command line."""

import argparse
import sys

from magic_math.services.benchmark_service import BenchmarkReport, run_benchmark

LARGE_SAMPLE = 500


def print_report(report: BenchmarkReport) -> None:
    print(f"\nBenchmarking magic math for n={report.n}:")
    for label, timing in (("Recursive (memoized)", report.recursive), ("Iterative", report.iterative)):
        for i, run_ms in enumerate(timing.runs_ms, start=1):
            print(f"  Run {i}: {label} - {run_ms:.2f}ms")
        if timing.error:
            print(f"  {label} - Failed: {timing.error}")

    print("\nResults summary:")
    for label, timing in (("Recursive (memoized)", report.recursive), ("Iterative", report.iterative)):
        avg = timing.average_ms
        print(f"  {label}: {avg:.2f}ms average" if avg is not None else f"  {label}: no successful runs")

    winner = report.winner
    if winner == "tie":
        print("  Tie: both implementations performed equally")
    elif winner == "none":
        print("  No winner: both implementations failed")
    elif report.improvement_pct is not None:
        print(f"  Winner: {winner} ({report.improvement_pct}% faster)")
    else:
        print(f"  Winner: {winner} (the other implementation failed)")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Benchmark magic math implementations")
    parser.add_argument("n", type=int, nargs="?", default=30, help="Input value to calculate")
    parser.add_argument("runs", type=int, nargs="?", default=5, help="Number of runs to average over")
    args = parser.parse_args(argv)

    if args.n < 0:
        print("Error: n must be a non-negative integer", file=sys.stderr)
        return 1
    if args.runs < 1:
        print("Error: runs must be a positive integer", file=sys.stderr)
        return 1

    print("Magic Math Algorithm Benchmark")
    print_report(run_benchmark(args.n, args.runs))

    if args.n < LARGE_SAMPLE:
        print(f"\nTesting with larger input (n={LARGE_SAMPLE})...")
        print_report(run_benchmark(LARGE_SAMPLE, 3))

    print("\nBenchmark completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
