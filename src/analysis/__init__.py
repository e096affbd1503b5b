"""
Analysis package — agreement statistics, summaries and the report payload.

Public API surface:

    Pairwise agreement (Cohen's kappa):
        cohens_kappa, calculate_pair_agreement, calculate_cohens_kappa_pairs

    Multi-rater agreement (Fleiss' kappa):
        fleiss_kappa_from_counts, calculate_fleiss_kappas, mean_fleiss_kappa

    Continuous reliability (ICC):
        icc_oneway, calculate_icc

    Distributions & summaries:
        build_distributions, build_reviewer_stats, build_article_summaries,
        build_quality_tiers, build_question_stats, build_score_histogram,
        mean_total_score, merge_study_intakes, calculate_overall_agreement

    Report:
        assemble_report, build_irr_report

    Runner:
        run_analytics, export_report
"""

from .fleiss import calculate_fleiss_kappas, fleiss_kappa_from_counts, mean_fleiss_kappa
from .icc import calculate_icc, icc_oneway
from .pairwise import (
    PairwiseAgreement,
    calculate_cohens_kappa_pairs,
    calculate_pair_agreement,
    cohens_kappa,
)
from .report import assemble_report, build_irr_report
from .results import AgreementResult, interpret_agreement
from .runner import export_report, run_analytics
from .summaries import (
    build_article_summaries,
    build_distributions,
    build_quality_tiers,
    build_question_stats,
    build_reviewer_stats,
    build_score_histogram,
    calculate_overall_agreement,
    mean_total_score,
    merge_study_intakes,
)

__all__ = [
    # Results
    "AgreementResult",
    "interpret_agreement",
    # Cohen
    "cohens_kappa",
    "calculate_pair_agreement",
    "calculate_cohens_kappa_pairs",
    "PairwiseAgreement",
    # Fleiss
    "fleiss_kappa_from_counts",
    "calculate_fleiss_kappas",
    "mean_fleiss_kappa",
    # ICC
    "icc_oneway",
    "calculate_icc",
    # Summaries
    "build_distributions",
    "build_reviewer_stats",
    "build_article_summaries",
    "build_quality_tiers",
    "build_question_stats",
    "build_score_histogram",
    "mean_total_score",
    "merge_study_intakes",
    "calculate_overall_agreement",
    # Report
    "assemble_report",
    "build_irr_report",
    # Runner
    "run_analytics",
    "export_report",
]
