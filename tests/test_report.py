"""
Unit tests for src/analysis/report.py and src/analysis/runner.py.

Covers the output payload shape, summary counters, version filter label,
diagnostics pass-through, JSON-serializability, and the runner's export.
"""

from __future__ import annotations

import json

import pytest

from src.analysis.report import build_irr_report
from src.analysis.runner import export_report, main, run_analytics
from src.repository import InMemoryRepository

from .conftest import make_reviewer, make_score, make_study


@pytest.fixture
def inputs():
    scores = [
        make_score("S1", "alice", answers=2),
        make_score("S1", "bob", answers=2),
        make_score("S2", "alice", answers=0),
        make_score("S2", "bob", answers=1),
        make_score("S3", "alice", answers=1, version="V1"),
        make_score("S3", "carol", answers=1, notes="[TEST] do not count"),
        make_score("S4", "bob", answers={"q1": "brilliant"}),
    ]
    studies = [make_study("S1", 2020), make_study("S2", 2021), make_study("S3", 2019)]
    reviewers = [make_reviewer("alice", "Alice", "Ng"), make_reviewer("bob", "Bo", "Li")]
    return scores, studies, reviewers


class TestBuildIrrReport:

    def test_top_level_shape(self, registry, inputs):
        report = build_irr_report(*inputs, registry)
        assert set(report) == {
            "summary", "irr", "articles", "reviewers", "distributions", "questionStats", "diagnostics",
        }
        assert set(report["irr"]) == {"cohensKappaPairs", "fleissKappas", "fleissKappaMean", "icc"}

    def test_summary_counters(self, registry, inputs):
        summary = build_irr_report(*inputs, registry)["summary"]
        assert summary["totalScores"] == 5
        assert summary["totalArticles"] == 3
        assert summary["totalReviewers"] == 2
        assert summary["articlesWithMultipleReviewers"] == 2
        assert summary["versionFilter"] == "All"
        assert summary["versionCounts"] == {"V2": 6, "V1": 1}

    def test_version_filter(self, registry, inputs):
        report = build_irr_report(*inputs, registry, rubric_version="V1")
        assert report["summary"]["versionFilter"] == "V1"
        assert report["summary"]["totalScores"] == 1
        assert report["diagnostics"]["version_filtered"] == 5
        assert report["irr"]["cohensKappaPairs"] == []
        assert report["irr"]["icc"]["defined"] is False

    def test_diagnostics(self, registry, inputs):
        diagnostics = build_irr_report(*inputs, registry)["diagnostics"]
        assert diagnostics["excluded_marker"] == 1
        assert diagnostics["invalid_answer"] == 1

    def test_irr_sections(self, registry, inputs):
        irr = build_irr_report(*inputs, registry)["irr"]
        assert [(p["raterA"], p["raterB"]) for p in irr["cohensKappaPairs"]] == [("alice", "bob")]
        assert set(irr["fleissKappas"]) == {f"q{i}" for i in range(1, 12)}
        q1 = irr["fleissKappas"]["q1"]
        assert q1["n"] == 2
        assert q1["lowConfidence"] is True
        assert irr["icc"]["statistic"] == "icc"
        assert irr["icc"]["n"] == 2

    def test_distributions_and_lists(self, registry, inputs):
        report = build_irr_report(*inputs, registry)
        assert report["distributions"]["q1"] == {"high": 2, "moderate": 2, "low": 1}
        assert report["articles"][0]["id"] in {"S1", "S2"}
        assert report["reviewers"][0]["alias"] == "alice"

    def test_histogram_and_question_stats(self, registry, inputs):
        report = build_irr_report(*inputs, registry)
        summary = report["summary"]
        # Totals: 22, 22, 0, 11, 11.
        assert summary["meanTotalScore"] == 13.2
        counts = {b["range"]: b["count"] for b in summary["scoreHistogram"]}
        assert counts == {**{r: 0 for r in counts}, "0-1": 1, "10-11": 2, "22": 2}
        assert report["questionStats"]["q1"]["counts"] == report["distributions"]["q1"]
        assert report["questionStats"]["q1"]["mean"] == 1.2

    def test_icc_leaves_out_incomplete_scores(self, registry, inputs):
        scores, studies, reviewers = inputs
        scores = [*scores, make_score("S3", "bob", answers={"q1": 1})]
        icc = build_irr_report(scores, studies, reviewers, registry)["irr"]["icc"]
        assert icc["n"] == 2
        assert icc["incompleteExcluded"] == 1

    def test_json_serializable(self, registry, inputs):
        report = build_irr_report(*inputs, registry)
        json.loads(json.dumps(report))

    def test_empty_inputs_never_raise(self, registry):
        report = build_irr_report([], [], [], registry)
        assert report["summary"]["totalScores"] == 0
        assert report["summary"]["overallAgreement"] is None
        assert report["irr"]["icc"]["reason"] == "insufficient_sample"
        assert report["irr"]["fleissKappaMean"]["value"] is None


class TestRunner:

    def test_run_analytics_exports(self, tmp_path, inputs):
        repo = InMemoryRepository(*inputs)
        report = run_analytics(repo, output_dir=tmp_path)
        out_path = tmp_path / "irr_report.json"
        assert out_path.exists()
        saved = json.loads(out_path.read_text(encoding="utf-8"))
        assert saved["summary"] == report["summary"]

    def test_run_analytics_without_export(self, tmp_path, inputs):
        report = run_analytics(InMemoryRepository(*inputs), output_dir=None)
        assert report["summary"]["totalScores"] == 5
        assert list(tmp_path.iterdir()) == []

    def test_export_report_handles_numpy(self, tmp_path):
        import numpy as np

        path = export_report({"a": np.int64(3), "b": np.float64(0.5), "c": np.bool_(True)}, tmp_path)
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": 3, "b": 0.5, "c": True}

    def test_cli_main(self, tmp_path, inputs):
        scores, studies, reviewers = inputs
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        for name, rows in (("scores", scores), ("studies", studies), ("reviewers", reviewers)):
            (data_dir / f"{name}.json").write_text(json.dumps(rows), encoding="utf-8")
        out_dir = tmp_path / "out"

        report = main(["--data-dir", str(data_dir), "--output-dir", str(out_dir), "--basis", "total"])
        assert (out_dir / "irr_report.json").exists()
        assert report["irr"]["cohensKappaPairs"][0]["basis"] == "total"
