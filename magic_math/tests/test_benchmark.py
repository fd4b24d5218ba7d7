"""Tests for the benchmark service and CLI."""

import pytest

from magic_math.core.exceptions import InvalidInputError
from magic_math.scripts.benchmark import main
from magic_math.services.benchmark_service import (
    BenchmarkReport,
    StrategyTiming,
    benchmark_summary,
    run_benchmark,
)


class TestBenchmarkReport:
    """Winner selection from timings."""

    def test_faster_strategy_wins(self):
        report = BenchmarkReport(
            n=10,
            recursive=StrategyTiming(runs_ms=[2.0, 2.0]),
            iterative=StrategyTiming(runs_ms=[1.0, 1.0]),
        )
        assert report.winner == "iterative"
        assert report.improvement_pct == 50.0

    def test_tie(self):
        report = BenchmarkReport(10, StrategyTiming(runs_ms=[1.0]), StrategyTiming(runs_ms=[1.0]))
        assert report.winner == "tie"
        assert report.improvement_pct is None

    def test_failed_strategy_loses(self):
        report = BenchmarkReport(
            10,
            StrategyTiming(error="RecursionError: too deep"),
            StrategyTiming(runs_ms=[1.0]),
        )
        assert report.winner == "iterative"
        assert report.to_dict()["recursive_ms"] is None

    def test_both_failed(self):
        report = BenchmarkReport(10, StrategyTiming(error="x"), StrategyTiming(error="y"))
        assert report.winner == "none"


class TestRunBenchmark:
    """Tests for run_benchmark and benchmark_summary."""

    def test_times_every_run(self):
        report = run_benchmark(50, runs=3)

        assert len(report.recursive.runs_ms) == 3
        assert len(report.iterative.runs_ms) == 3
        assert report.winner in {"recursive", "iterative", "tie"}

    def test_rejects_bad_arguments(self):
        with pytest.raises(InvalidInputError):
            run_benchmark(-1)
        with pytest.raises(ValueError):
            run_benchmark(10, runs=0)

    def test_summary_shape(self):
        summary = benchmark_summary(sizes=(5, 20), runs=1)

        assert summary["message"] == "Magic Math Benchmark"
        assert [row["n"] for row in summary["tests"]] == [5, 20]
        assert set(summary["tests"][0]) >= {"recursive_ms", "iterative_ms", "winner"}


class TestBenchmarkCli:
    """Tests for the benchmark script entry point."""

    def test_prints_summary(self, capsys):
        assert main(["20", "2"]) == 0

        out = capsys.readouterr().out
        assert "n=20" in out
        assert "n=500" in out
        assert "Benchmark completed." in out

    def test_rejects_negative_input(self, capsys):
        assert main(["-5"]) == 1
        assert "non-negative" in capsys.readouterr().err
