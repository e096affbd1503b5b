"""
Report assembly: wires normalizer → index → calculators into one payload.

    {
      summary:       { totalArticles, totalScores, totalReviewers,
                       articlesWithMultipleReviewers, overallAgreement,
                       versionFilter, versionCounts, qualityTiers,
                       meanTotalScore, scoreHistogram },
      irr:           { cohensKappaPairs, fleissKappas, fleissKappaMean, icc },
      articles:      [ per-article summary ... ],
      reviewers:     [ per-reviewer stats ... ],
      distributions: { questionId: { token: count } },
      questionStats: { questionId: { label, counts, percentages, mean, answered } },
      diagnostics:   { reason: count },
    }

The payload contains only JSON-native values. Statistics that could not be
computed appear with ``defined: false`` and a reason; nothing here raises on
bad data.
"""

from __future__ import annotations

from src.scoring.config import INVALID_ANSWER_POLICY
from src.scoring.index import ArticleIndex
from src.scoring.normalizer import NormalizationResult, normalize_scores
from src.scoring.records import Reviewer, Study
from src.scoring.rubric import RubricRegistry

from .config import (
    DEFAULT_COMPARISON_BASIS,
    FLEISS_LOW_CONFIDENCE_BELOW,
    FLEISS_MIN_ARTICLES,
    ICC_MIN_ARTICLES,
    TIER_BANDS,
)
from .fleiss import calculate_fleiss_kappas, mean_fleiss_kappa
from .icc import calculate_icc
from .pairwise import calculate_cohens_kappa_pairs
from .summaries import (
    build_article_summaries,
    build_distributions,
    build_quality_tiers,
    build_question_stats,
    build_reviewer_stats,
    build_score_histogram,
    calculate_overall_agreement,
    mean_total_score,
    parse_reviewers,
    parse_studies,
)

ALL_VERSIONS_LABEL = "All"


def assemble_report(
    normalized: NormalizationResult,
    studies: list[Study],
    reviewers: dict[str, Reviewer],
    registry: RubricRegistry,
    basis: str = DEFAULT_COMPARISON_BASIS,
    fleiss_min_articles: int = FLEISS_MIN_ARTICLES,
    fleiss_low_confidence_below: int = FLEISS_LOW_CONFIDENCE_BELOW,
    icc_min_articles: int = ICC_MIN_ARTICLES,
    tier_bands: list[tuple[str, int]] = TIER_BANDS,
) -> dict:
    """
    Build the analytics payload from already-normalized scores.

    Args:
        normalized: Output of :func:`src.scoring.normalizer.normalize_scores`.
        studies: Parsed study records.
        reviewers: {alias: Reviewer} display metadata.
        registry: Rubric provider (question labels and option tokens).
        basis: Cohen's kappa comparison basis.
        fleiss_min_articles: Minimum qualifying articles per Fleiss kappa.
        fleiss_low_confidence_below: Fleiss kappas over fewer articles are flagged.
        icc_min_articles: Minimum multi-rater articles for the ICC.
        tier_bands: Quality tier bands for totals and article means.

    Returns:
        JSON-ready report dict.
    """
    scores = normalized.scores
    versions = [normalized.version_filter] if normalized.version_filter in registry.versions else None
    index = ArticleIndex.build(scores, registry.question_ids(versions))
    max_total = max(registry.get(version).max_total for version in (versions or registry.versions))

    pairs = calculate_cohens_kappa_pairs(index, basis=basis)
    fleiss = calculate_fleiss_kappas(
        index,
        registry,
        min_articles=fleiss_min_articles,
        low_confidence_below=fleiss_low_confidence_below,
    )
    icc = calculate_icc(index, min_articles=icc_min_articles)

    articles = build_article_summaries(studies, index, bands=tier_bands)
    reviewer_stats = build_reviewer_stats(
        scores, reviewers, index.question_ids, registry, bands=tier_bands,
    )

    return {
        "summary": {
            "totalArticles": len(articles),
            "totalScores": len(scores),
            "totalReviewers": len(reviewer_stats),
            "articlesWithMultipleReviewers": len(index.multi_rater_articles()),
            "overallAgreement": calculate_overall_agreement(index),
            "versionFilter": normalized.version_filter or ALL_VERSIONS_LABEL,
            "versionCounts": dict(normalized.version_counts),
            "qualityTiers": build_quality_tiers(scores, bands=tier_bands),
            "meanTotalScore": mean_total_score(scores),
            "scoreHistogram": build_score_histogram(scores, max_total=max_total),
        },
        "irr": {
            "cohensKappaPairs": [pair.to_dict() for pair in pairs],
            "fleissKappas": {qid: result.to_dict() for qid, result in fleiss.items()},
            "fleissKappaMean": mean_fleiss_kappa(fleiss).to_dict(),
            "icc": icc.to_dict(),
        },
        "articles": articles,
        "reviewers": reviewer_stats,
        "distributions": build_distributions(scores, index.question_ids, registry),
        "questionStats": build_question_stats(scores, index.question_ids, registry),
        "diagnostics": dict(normalized.diagnostics),
    }


def build_irr_report(
    raw_scores: list[dict],
    raw_studies: list[dict],
    raw_reviewers: list[dict],
    registry: RubricRegistry,
    rubric_version: str | None = None,
    basis: str = DEFAULT_COMPARISON_BASIS,
    invalid_answer_policy: str = INVALID_ANSWER_POLICY,
) -> dict:
    """
    Normalize raw repository rows and assemble the analytics payload.

    Args:
        raw_scores: Score rows from the repository.
        raw_studies: Study rows from the repository.
        raw_reviewers: Reviewer rows from the repository.
        registry: Rubric provider.
        rubric_version: Optional version filter; ``None`` analyses all versions.
        basis: Cohen's kappa comparison basis.
        invalid_answer_policy: ``"drop_record"`` or ``"treat_as_missing"``.

    Returns:
        JSON-ready report dict (see module docstring).
    """
    normalized = normalize_scores(
        raw_scores,
        registry,
        rubric_version=rubric_version,
        invalid_answer_policy=invalid_answer_policy,
    )
    return assemble_report(
        normalized,
        parse_studies(raw_studies),
        parse_reviewers(raw_reviewers),
        registry,
        basis=basis,
    )
