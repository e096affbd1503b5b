"""
Multi-rater agreement: Fleiss' kappa per rubric question.

Computed over multi-rater articles only. For question q, article i
contributes the category counts n_ic of the raters who ANSWERED q there
(missing/invalid slots are not a category) and qualifies if n_i ≥ 2.

    P_i  = Σ_c n_ic (n_ic − 1) / (n_i (n_i − 1))
    P̄    = (1/N) Σ_i P_i
    p_c  = Σ_i n_ic / Σ_i n_i
    P̄e   = Σ_c p_c²
    κ    = (P̄ − P̄e) / (1 − P̄e)

Undefined when fewer than two articles qualify or when P̄e = 1. Kappas from
few articles are reported with ``low_confidence`` set rather than hidden.
"""

from __future__ import annotations

import numpy as np

from src.scoring.index import ArticleIndex
from src.scoring.rubric import RubricRegistry

from .config import (
    FLEISS_LOW_CONFIDENCE_BELOW,
    FLEISS_MIN_ARTICLES,
    PERCENT_DECIMALS,
)
from .results import (
    DEGENERATE_VARIANCE,
    INSUFFICIENT_SAMPLE,
    AgreementResult,
)


def fleiss_kappa_from_counts(
    counts: np.ndarray,
    statistic: str = "fleiss_kappa",
    min_subjects: int = FLEISS_MIN_ARTICLES,
    low_confidence_below: int = FLEISS_LOW_CONFIDENCE_BELOW,
) -> AgreementResult:
    """
    Fleiss' kappa from a subjects × categories count matrix.

    Rows may have different totals (a different number of raters per
    subject); rows with fewer than two ratings are ignored.

    Args:
        counts: Array of shape (subjects, categories) of rating counts.
        statistic: Name recorded on the result.
        min_subjects: Minimum qualifying subjects for a defined kappa
            (never below 2).
        low_confidence_below: Defined kappas over fewer subjects are flagged.

    Returns:
        AgreementResult with ``n`` = qualifying subjects and details
        ``pBar``, ``pe``, ``percentAgreement``.
    """
    counts = np.asarray(counts, dtype=float)
    if counts.ndim != 2:
        raise ValueError(f"counts must be 2-D, got shape {counts.shape}")

    n_i = counts.sum(axis=1)
    counts = counts[n_i >= 2]
    n_i = n_i[n_i >= 2]
    n_subjects = int(len(n_i))

    if n_subjects < max(2, min_subjects):
        return AgreementResult.undefined(statistic, n_subjects, INSUFFICIENT_SAMPLE)

    agreeing_pairs = (counts * (counts - 1)).sum(axis=1)
    possible_pairs = n_i * (n_i - 1)
    p_i = agreeing_pairs / possible_pairs
    p_bar = float(p_i.mean())

    p_c = counts.sum(axis=0) / n_i.sum()
    pe = float((p_c**2).sum())

    details = {
        "pBar": p_bar,
        "pe": pe,
        # Share of agreeing rater pairs, pooled over articles.
        "percentAgreement": round(
            float(agreeing_pairs.sum() / possible_pairs.sum()) * 100, PERCENT_DECIMALS
        ),
    }

    if np.isclose(pe, 1.0):
        return AgreementResult.undefined(statistic, n_subjects, DEGENERATE_VARIANCE, **details)

    kappa = (p_bar - pe) / (1 - pe)
    return AgreementResult(
        statistic=statistic,
        value=float(kappa),
        n=n_subjects,
        low_confidence=n_subjects < low_confidence_below,
        details=details,
    )


def question_count_matrix(
    index: ArticleIndex,
    question_id: str,
    categories: list[str],
) -> np.ndarray:
    """Articles × categories answer counts for one question (multi-rater articles only)."""
    position = {token: j for j, token in enumerate(categories)}
    rows = []
    for article in index.multi_rater_articles():
        row = np.zeros(len(categories))
        for token in article.tokens(question_id):
            if token in position:
                row[position[token]] += 1
        rows.append(row)
    if not rows:
        return np.zeros((0, len(categories)))
    return np.vstack(rows)


def _categories(index: ArticleIndex, question_id: str, registry: RubricRegistry | None) -> list[str]:
    tokens = registry.question_tokens(question_id) if registry else []
    for article in index.multi_rater_articles():
        for token in article.tokens(question_id):
            if token not in tokens:
                tokens.append(token)
    return tokens


def calculate_fleiss_kappas(
    index: ArticleIndex,
    registry: RubricRegistry | None = None,
    min_articles: int = FLEISS_MIN_ARTICLES,
    low_confidence_below: int = FLEISS_LOW_CONFIDENCE_BELOW,
) -> dict[str, AgreementResult]:
    """
    Fleiss' kappa for every question slot of the index.

    Args:
        index: Article index built from normalized scores.
        registry: Rubric provider; supplies each question's full category
            set and label. Observed tokens are used when omitted.
        min_articles: Minimum qualifying articles for a defined kappa.
        low_confidence_below: Kappas over fewer articles are flagged.

    Returns:
        Dict {question_id: AgreementResult}; ``n`` is the number of
        qualifying articles and details carry ``k`` (category count),
        ``label`` and ``percentAgreement``.
    """
    results: dict[str, AgreementResult] = {}
    for qid in index.question_ids:
        categories = _categories(index, qid, registry)
        counts = question_count_matrix(index, qid, categories)
        result = fleiss_kappa_from_counts(
            counts,
            min_subjects=min_articles,
            low_confidence_below=low_confidence_below,
        )
        label = registry.question_label(qid) if registry else qid
        results[qid] = AgreementResult(
            statistic=result.statistic,
            value=result.value,
            n=result.n,
            reason=result.reason,
            low_confidence=result.low_confidence,
            details={**result.details, "k": len(categories), "label": label},
        )
    return results


def mean_fleiss_kappa(kappas: dict[str, AgreementResult]) -> AgreementResult:
    """Unweighted mean of the defined per-question kappas; ``n`` = questions averaged."""
    values = [r.value for r in kappas.values() if r.is_defined]
    if not values:
        return AgreementResult.undefined("fleiss_kappa_mean", 0, INSUFFICIENT_SAMPLE)
    return AgreementResult(
        statistic="fleiss_kappa_mean",
        value=float(np.mean(values)),
        n=len(values),
        low_confidence=any(r.low_confidence for r in kappas.values() if r.is_defined),
    )
