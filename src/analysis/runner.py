"""
Analytics runner: fetch → normalize → compute → export.

Fetches the three input collections from a repository (concurrently), builds
the IRR report and writes it as JSON to the output directory.

Usage (from project root):
    python -m src.analysis.runner --data-dir data/
    python -m src.analysis.runner --data-dir data/ --version V2 --basis total

Or programmatically:
    from src.analysis.runner import run_analytics
    report = run_analytics(InMemoryRepository(scores, studies, reviewers))
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

import numpy as np
import pandas as pd

from src.repository import FileRepository, ScoreRepository, fetch_inputs
from src.scoring.rubric import RubricRegistry

from .config import (
    COMPARISON_BASES,
    DATA_DIR,
    DEFAULT_COMPARISON_BASIS,
    REPORT_FILENAME,
    RESULTS_DIR,
)
from .report import build_irr_report


# ---------------------------------------------------------------------------
# JSON export
# ---------------------------------------------------------------------------

def _json_default(obj):
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, pd.Timestamp):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def export_report(report: dict, output_dir: Path = RESULTS_DIR) -> Path:
    """Write ``report`` to ``output_dir / REPORT_FILENAME`` and return the path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    out_path = output_dir / REPORT_FILENAME
    with out_path.open("w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2, default=_json_default)
    return out_path


# ---------------------------------------------------------------------------
# Console summary
# ---------------------------------------------------------------------------

def _print_summary(report: dict) -> None:
    summary = report["summary"]
    irr = report["irr"]

    print(f"  Version filter:        {summary['versionFilter']}")
    print(f"  Scores analysed:       {summary['totalScores']}")
    print(f"  Articles:              {summary['totalArticles']} "
          f"({summary['articlesWithMultipleReviewers']} with ≥2 reviewers)")
    print(f"  Reviewers:             {summary['totalReviewers']}")
    print(f"  Mean total score:      {summary['meanTotalScore']}")
    overall = summary["overallAgreement"]
    print(f"  Overall agreement:     {'N/A' if overall is None else f'{overall}%'}")

    icc = irr["icc"]
    print(f"  ICC:                   {icc['value']} ({icc['interpretation']}, n={icc['n']})")
    if icc.get("incompleteExcluded"):
        print(f"                         ({icc['incompleteExcluded']} incomplete scores left out)")
    mean_kappa = irr["fleissKappaMean"]
    print(f"  Mean Fleiss' kappa:    {mean_kappa['value']} ({mean_kappa['interpretation']})")
    print(f"  Reviewer pairs:        {len(irr['cohensKappaPairs'])}")

    dropped = {k: v for k, v in report["diagnostics"].items() if v}
    if dropped:
        print("  Dropped / adjusted:    "
              + ", ".join(f"{k}={v}" for k, v in sorted(dropped.items())))


# ---------------------------------------------------------------------------
# Master runner
# ---------------------------------------------------------------------------

def run_analytics(
    repository: ScoreRepository,
    registry: RubricRegistry | None = None,
    rubric_version: str | None = None,
    basis: str = DEFAULT_COMPARISON_BASIS,
    output_dir: Path | None = RESULTS_DIR,
    timeout: float | None = None,
) -> dict:
    """
    Fetch inputs, build the IRR report and (optionally) export it.

    Args:
        repository: Source of score, study and reviewer rows.
        registry: Rubric provider; built from the rubric tables when omitted.
        rubric_version: Optional version filter (``"V1"`` / ``"V2"``).
        basis: Cohen's kappa comparison basis.
        output_dir: Directory for ``irr_report.json``; ``None`` skips export.
        timeout: Deadline in seconds for the repository fetch.

    Returns:
        The report dict.
    """
    sep = "=" * 70
    print(f"\n{sep}")
    print("INTER-RATER RELIABILITY ANALYTICS")
    print(f"{sep}\n")

    registry = registry or RubricRegistry.from_tables()
    inputs = fetch_inputs(repository, timeout=timeout)
    print(f"Fetched {len(inputs.scores)} scores, {len(inputs.studies)} studies, "
          f"{len(inputs.reviewers)} reviewers")

    report = build_irr_report(
        inputs.scores,
        inputs.studies,
        inputs.reviewers,
        registry,
        rubric_version=rubric_version,
        basis=basis,
    )
    _print_summary(report)

    if output_dir is not None:
        out_path = export_report(report, output_dir)
        print(f"\nExported report to {out_path}")

    print(f"\n{sep}")
    print("ANALYTICS COMPLETE")
    print(sep)
    return report


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compute inter-rater reliability analytics from exported scores."
    )
    parser.add_argument("--data-dir", type=Path, default=DATA_DIR,
                        help="Directory holding scores/studies/reviewers (.json or .csv)")
    parser.add_argument("--version", dest="rubric_version", default=None,
                        help="Only analyse scores of this rubric version (e.g. V2)")
    parser.add_argument("--basis", choices=COMPARISON_BASES, default=DEFAULT_COMPARISON_BASIS,
                        help="Cohen's kappa comparison basis")
    parser.add_argument("--output-dir", type=Path, default=RESULTS_DIR,
                        help="Directory for irr_report.json")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Deadline in seconds for loading the inputs")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> dict:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    return run_analytics(
        FileRepository(args.data_dir),
        rubric_version=args.rubric_version,
        basis=args.basis,
        output_dir=args.output_dir,
        timeout=args.timeout,
    )


if __name__ == "__main__":
    main()
