"""
Continuous reliability: intraclass correlation over total scores.

One-way random-effects ANOVA, ICC(1), on the total scores of multi-rater
articles, counting only scores that answered every slot. The design is
ragged (articles carry different numbers of raters), so the per-article
rater count enters through its harmonic mean k̄:

    MSB = Σ_i n_i (x̄_i − x̄)² / (N − 1)
    MSE = Σ_i Σ_j (x_ij − x̄_i)² / (Σ_i n_i − N)
    ICC = (MSB − MSE) / (MSB + (k̄ − 1) · MSE)

x̄ is the grand mean over every score. The reported value is clamped to
[−1, 1]; the unclamped estimate is kept under ``rawValue``. The F test of
between-article variance (F = MSB / MSE on N − 1, Σn_i − N degrees of
freedom) is reported alongside.
"""

from __future__ import annotations

import logging
from dataclasses import replace

import numpy as np
from scipy import stats

from src.scoring.index import ArticleIndex

from .config import ICC_MIN_ARTICLES, ICC_MODEL
from .results import (
    DEGENERATE_VARIANCE,
    INSUFFICIENT_SAMPLE,
    AgreementResult,
)

logger = logging.getLogger(__name__)


def icc_oneway(
    groups: list[list[float]],
    min_groups: int = ICC_MIN_ARTICLES,
    statistic: str = "icc",
) -> AgreementResult:
    """
    ICC(1) for a ragged list of per-subject rating groups.

    Args:
        groups: One list of ratings per subject; groups with fewer than two
            ratings are ignored.
        min_groups: Minimum qualifying subjects (never below 2).
        statistic: Name recorded on the result.

    Returns:
        AgreementResult with ``n`` = qualifying subjects and details
        ``rawValue``, ``msBetween``, ``msWithin``, ``meanRaters``,
        ``fStatistic``, ``pValue``, ``model``.
    """
    groups = [np.asarray(g, dtype=float) for g in groups if len(g) >= 2]
    n_groups = len(groups)
    if n_groups < max(2, min_groups):
        return AgreementResult.undefined(statistic, n_groups, INSUFFICIENT_SAMPLE, model=ICC_MODEL)

    sizes = np.array([len(g) for g in groups], dtype=float)
    means = np.array([g.mean() for g in groups])
    grand_mean = np.concatenate(groups).mean()

    df_between = n_groups - 1
    df_within = sizes.sum() - n_groups
    ms_between = float((sizes * (means - grand_mean) ** 2).sum() / df_between)
    ms_within = float(sum(((g - g.mean()) ** 2).sum() for g in groups) / df_within)
    k_bar = float(stats.hmean(sizes))

    details = {
        "msBetween": ms_between,
        "msWithin": ms_within,
        "meanRaters": k_bar,
        "model": ICC_MODEL,
    }

    denominator = ms_between + (k_bar - 1) * ms_within
    if np.isclose(denominator, 0.0):
        # Every total identical: no variance to apportion.
        return AgreementResult.undefined(statistic, n_groups, DEGENERATE_VARIANCE, **details)

    raw = (ms_between - ms_within) / denominator

    if ms_within > 0:
        f_stat = ms_between / ms_within
        details["fStatistic"] = float(f_stat)
        details["pValue"] = float(stats.f.sf(f_stat, df_between, df_within))
    else:
        details["fStatistic"] = None
        details["pValue"] = None

    return AgreementResult(
        statistic=statistic,
        value=float(np.clip(raw, -1.0, 1.0)),
        n=n_groups,
        details={"rawValue": float(raw), **details},
    )


def calculate_icc(
    index: ArticleIndex,
    min_articles: int = ICC_MIN_ARTICLES,
) -> AgreementResult:
    """
    ICC(1) over the total scores of the index's multi-rater articles.

    Only complete scores (every slot of their rubric answered) contribute a
    total; a partial total would read skipped slots as zero. The number of
    incomplete scores left out is reported as ``incompleteExcluded``.

    Args:
        index: Article index built from normalized scores.
        min_articles: Minimum multi-rater articles for a defined ICC.

    Returns:
        AgreementResult; undefined with ``insufficient_sample`` below
        ``min_articles`` and with ``degenerate_variance`` when every total
        is identical.
    """
    articles = index.multi_rater_articles()
    groups = [article.complete_totals for article in articles]
    excluded = sum(len(article.scores) - len(group) for article, group in zip(articles, groups))
    if excluded:
        logger.info("ICC: left out %d incomplete scores", excluded)

    result = icc_oneway(groups, min_groups=min_articles)
    return replace(result, details={**result.details, "incompleteExcluded": excluded})
