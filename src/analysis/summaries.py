"""
Distributions and per-article / per-reviewer summaries.

None of these require concurrent raters: single-rater articles count toward
distributions, reviewer stats and article summaries, and only the overall
agreement percentage is restricted to multi-rater articles.

Overall agreement is the literal "percent unanimous" figure: the share of
question slots (over multi-rater articles, counting only slots with two or
more answered raters) on which every answering rater chose the same token.
It is not chance-corrected and is reported next to Fleiss' kappa, not
instead of it.

Article summaries are per paper rather than per intake row: the platform
can hold several study rows for one DOI, and their scores are pooled.
"""

from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd

from src.scoring.index import ArticleIndex
from src.scoring.normalizer import NormalizedScore, deduplicate_latest
from src.scoring.records import Reviewer, Study
from src.scoring.rubric import RubricRegistry, quality_tier

from .config import (
    BIAS_THRESHOLD_PCT,
    CONSENSUS_BANDS,
    CONSENSUS_CEILING,
    PERCENT_DECIMALS,
    QUESTION_MEAN_DECIMALS,
    SCORE_HISTOGRAM_BIN_WIDTH,
    TIER_BANDS,
)

logger = logging.getLogger(__name__)


def _round1(value: float | None) -> float | None:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return round(float(value), 1)


def _tier_of_mean(mean: float | None, bands: list[tuple[str, int]]) -> str | None:
    # Means are rounded half-up to a whole point before banding.
    if mean is None:
        return None
    return quality_tier(math.floor(mean + 0.5), bands)


# ---------------------------------------------------------------------------
# Input parsing (studies / reviewers)
# ---------------------------------------------------------------------------

def parse_studies(raw_studies: list[dict]) -> list[Study]:
    """Parse study rows, skipping (and logging) rows without an id."""
    studies: list[Study] = []
    seen: set[str] = set()
    for position, row in enumerate(raw_studies):
        try:
            study = Study.from_dict(row)
        except ValueError as exc:
            logger.warning("Skipping study row #%d: %s", position, exc)
            continue
        if study.id in seen:
            continue
        seen.add(study.id)
        studies.append(study)
    return studies


def parse_reviewers(raw_reviewers: list[dict]) -> dict[str, Reviewer]:
    """Parse reviewer rows into {alias: Reviewer}; the first row per alias wins."""
    reviewers: dict[str, Reviewer] = {}
    for position, row in enumerate(raw_reviewers):
        try:
            reviewer = Reviewer.from_dict(row)
        except ValueError as exc:
            logger.warning("Skipping reviewer row #%d: %s", position, exc)
            continue
        reviewers.setdefault(reviewer.alias, reviewer)
    return reviewers


# ---------------------------------------------------------------------------
# Per-question distributions
# ---------------------------------------------------------------------------

def _question_tokens(
    scores: list[NormalizedScore],
    question_id: str,
    registry: RubricRegistry | None,
) -> list[str]:
    tokens = registry.question_tokens(question_id) if registry else []
    for score in scores:
        token = score.token(question_id)
        if token is not None and token not in tokens:
            tokens.append(token)
    return tokens


def build_distributions(
    scores: list[NormalizedScore],
    question_ids: list[str],
    registry: RubricRegistry | None = None,
) -> dict[str, dict[str, int]]:
    """
    Count answer tokens per question across all normalized scores.

    Every option token of the question appears, with zero counts included;
    Missing and Invalid slots are not counted.

    Returns:
        Dict {question_id: {token: count}}.
    """
    distributions: dict[str, dict[str, int]] = {}
    for qid in question_ids:
        counts = {token: 0 for token in _question_tokens(scores, qid, registry)}
        for score in scores:
            token = score.token(qid)
            if token is not None:
                counts[token] += 1
        distributions[qid] = counts
    return distributions


def build_quality_tiers(
    scores: list[NormalizedScore],
    bands: list[tuple[str, int]] = TIER_BANDS,
) -> dict:
    """Number of scores per quality tier of their total, plus percentages."""
    counts = {label: 0 for label, _ in bands}
    for score in scores:
        counts[quality_tier(score.total_score, bands)] += 1
    total = len(scores)
    return {
        "counts": counts,
        "percentages": {
            label: round(n / total * 100, PERCENT_DECIMALS) if total else 0.0
            for label, n in counts.items()
        },
        "total": total,
    }


def build_question_stats(
    scores: list[NormalizedScore],
    question_ids: list[str],
    registry: RubricRegistry | None = None,
) -> dict[str, dict]:
    """
    Per-question breakdown: token counts and percentages, mean points.

    Percentages and the mean are over the answered slots only; a question
    nobody answered has a None mean and zero percentages.

    Returns:
        Dict {question_id: {label, counts, percentages, mean, answered}}.
    """
    distributions = build_distributions(scores, question_ids, registry)
    stats: dict[str, dict] = {}
    for qid in question_ids:
        counts = distributions[qid]
        points = [s.score(qid) for s in scores if s.score(qid) is not None]
        answered = len(points)
        stats[qid] = {
            "label": registry.question_label(qid) if registry else qid,
            "counts": counts,
            "percentages": {
                token: round(n / answered * 100, PERCENT_DECIMALS) if answered else 0.0
                for token, n in counts.items()
            },
            "mean": round(float(np.mean(points)), QUESTION_MEAN_DECIMALS) if points else None,
            "answered": answered,
        }
    return stats


def build_score_histogram(
    scores: list[NormalizedScore],
    max_total: int | None = None,
    bin_width: int = SCORE_HISTOGRAM_BIN_WIDTH,
) -> list[dict]:
    """
    Count total scores in fixed-width bins from 0 up to ``max_total``.

    ``max_total`` defaults to the largest maximum total among the scores'
    rubrics. Bounds are inclusive; the last bin is narrower when the width
    does not divide the range (0-22 in bins of 2 ends with a bin for 22).

    Returns:
        List of {range, min, max, count}, lowest bin first.
    """
    if max_total is None:
        max_total = max((s.rubric.max_total for s in scores), default=0)
    edges = [*range(0, max_total + 1, bin_width), max_total + 1]
    counts, _ = np.histogram([s.total_score for s in scores], bins=edges)

    bins = []
    for low, high, count in zip(edges[:-1], edges[1:], counts):
        top = high - 1
        bins.append({
            "range": f"{low}-{top}" if top > low else str(low),
            "min": low,
            "max": top,
            "count": int(count),
        })
    return bins


def mean_total_score(scores: list[NormalizedScore]) -> float | None:
    """Mean total over all scores, one decimal; None without scores."""
    if not scores:
        return None
    return _round1(float(np.mean([s.total_score for s in scores])))


# ---------------------------------------------------------------------------
# Overall agreement
# ---------------------------------------------------------------------------

def calculate_overall_agreement(index: ArticleIndex) -> float | None:
    """
    Percentage of question slots on which every answering rater agreed.

    Only multi-rater articles and slots with at least two answered raters
    count. Returns None when no slot qualifies.
    """
    slots = 0
    unanimous = 0
    for article in index.multi_rater_articles():
        for qid in index.question_ids:
            tokens = article.tokens(qid)
            if len(tokens) < 2:
                continue
            slots += 1
            if len(set(tokens)) == 1:
                unanimous += 1
    if slots == 0:
        return None
    return round(unanimous / slots * 100, PERCENT_DECIMALS)


# ---------------------------------------------------------------------------
# Per-reviewer stats
# ---------------------------------------------------------------------------

def bias_label(bias_pct: float, threshold: float = BIAS_THRESHOLD_PCT) -> str:
    if bias_pct > threshold:
        return f"Tends {round(bias_pct)}% higher"
    if bias_pct < -threshold:
        return f"Tends {round(abs(bias_pct))}% lower"
    return "Consistent"


def _scores_frame(scores: list[NormalizedScore]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "alias": [s.rater_alias for s in scores],
            "total": [s.total_score for s in scores],
            "time_to_complete": [
                s.record.time_to_complete if s.record.time_to_complete is not None else np.nan
                for s in scores
            ],
            "timestamp": pd.to_datetime([s.timestamp for s in scores], utc=True),
        },
        columns=["alias", "total", "time_to_complete", "timestamp"],
    )


def build_reviewer_stats(
    scores: list[NormalizedScore],
    reviewers: dict[str, Reviewer],
    question_ids: list[str],
    registry: RubricRegistry | None = None,
    bias_threshold: float = BIAS_THRESHOLD_PCT,
    bands: list[tuple[str, int]] = TIER_BANDS,
) -> list[dict]:
    """
    Aggregate stats for every reviewer with at least one normalized score.

    Bias compares the reviewer's mean total with the global mean total; a
    difference beyond ``bias_threshold`` percent is labelled.

    Args:
        scores: Normalized scores (after filtering and de-duplication).
        reviewers: {alias: Reviewer} display metadata; aliases without an
            entry are shown under their alias.
        question_ids: Question slots for the answer patterns.
        registry: Supplies each question's option tokens for the patterns.
        bias_threshold: Percent difference treated as a tendency.
        bands: Quality tier bands for ``avgTier``.

    Returns:
        List of per-reviewer dicts, sorted by score count (desc) then alias.
    """
    if not scores:
        return []

    df = _scores_frame(scores)
    global_mean = float(df["total"].mean())

    grouped = df.groupby("alias").agg(
        score_count=("total", "size"),
        mean_total=("total", "mean"),
        avg_time=("time_to_complete", "mean"),
        last_scored=("timestamp", "max"),
    )

    by_alias: dict[str, list[NormalizedScore]] = {}
    for score in scores:
        by_alias.setdefault(score.rater_alias, []).append(score)

    stats: list[dict] = []
    for alias, row in grouped.iterrows():
        mean_total = float(row["mean_total"])
        bias_pct = (mean_total - global_mean) / global_mean * 100 if global_mean > 0 else 0.0
        reviewer = reviewers.get(alias)
        last_scored = row["last_scored"]

        stats.append({
            "alias": alias,
            "name": reviewer.display_name if reviewer else alias,
            "scoreCount": int(row["score_count"]),
            "meanTotalScore": _round1(mean_total),
            "avgTier": _tier_of_mean(mean_total, bands),
            "avgTime": _round1(row["avg_time"]),
            "lastScoredAt": None if pd.isna(last_scored) else last_scored.isoformat(),
            "biasPct": _round1(bias_pct),
            "biasLabel": bias_label(bias_pct, bias_threshold),
            "patterns": build_distributions(by_alias[alias], question_ids, registry),
        })

    stats.sort(key=lambda r: (-r["scoreCount"], r["alias"]))
    return stats


# ---------------------------------------------------------------------------
# Per-article summaries
# ---------------------------------------------------------------------------

def consensus_status(totals: list[int]) -> str:
    """Label an article by the spread (max − min) of its reviewers' totals."""
    if not totals:
        return "Pending"
    if len(totals) == 1:
        return "Single Reviewer"
    spread = max(totals) - min(totals)
    for ceiling, label in CONSENSUS_BANDS:
        if spread <= ceiling:
            return label
    return CONSENSUS_CEILING


def merge_study_intakes(studies: list[Study]) -> list[tuple[Study, list[str]]]:
    """
    Group study intake rows that describe the same paper (same DOI).

    The row shown for a group is the first one not submitted by a reviewer,
    or the first row when every intake came from a reviewer.

    Returns:
        List of (representative study, [study ids in the group]) in
        first-seen order.
    """
    groups: dict[str, list[Study]] = {}
    for study in studies:
        groups.setdefault(study.merge_key, []).append(study)

    merged = []
    for group in groups.values():
        representative = next((s for s in group if not s.submitted_by), group[0])
        merged.append((representative, [s.id for s in group]))

    collapsed = len(studies) - len(merged)
    if collapsed:
        logger.info("Merged %d duplicate study intake rows by DOI", collapsed)
    return merged


def _article_summary(
    study: Study,
    study_ids: list[str],
    index: ArticleIndex,
    bands: list[tuple[str, int]],
) -> dict:
    pooled = [
        score
        for study_id in study_ids
        if study_id in index.articles
        for score in index.articles[study_id].scores
    ]
    # A reviewer who scored two intakes of one paper counts once, latest wins.
    scores, _ = deduplicate_latest(pooled, key=lambda s: s.rater_alias)
    scores.sort(key=lambda s: s.rater_alias)
    totals = [s.total_score for s in scores]
    mean = float(np.mean(totals)) if totals else None

    return {
        "id": study.id,
        "studyIds": study_ids,
        "citation": study.citation,
        "doi": study.doi,
        "year": study.year,
        "journal": study.journal,
        "reviewerCount": len(scores),
        "reviewerScores": [
            {
                "raterAlias": s.rater_alias,
                "total": s.total_score,
                "answers": {qid: s.token(qid) for qid in index.question_ids},
                "timeToComplete": s.record.time_to_complete,
            }
            for s in scores
        ],
        "meanTotalScore": _round1(mean),
        "spread": max(totals) - min(totals) if totals else None,
        "std": _round1(float(np.std(totals))) if totals else None,
        "qualityTier": _tier_of_mean(mean, bands),
        "consensusStatus": consensus_status(totals),
    }


def build_article_summaries(
    studies: list[Study],
    index: ArticleIndex,
    bands: list[tuple[str, int]] = TIER_BANDS,
) -> list[dict]:
    """
    One summary per paper, in the order reviewers should look at them.

    Intake rows sharing a DOI are merged into one summary whose scores pool
    every merged study id (``studyIds``). Scored studies missing from
    ``studies`` still get a summary (with only their id). Spread is
    max − min of the totals; ``std`` is the population standard deviation.

    Returns:
        List sorted by reviewer count (desc), then year (desc, unknown last).
    """
    known = {study.id for study in studies}
    orphans = [Study(id=study_id) for study_id in index.articles if study_id not in known]
    if orphans:
        logger.warning(
            "%d scored studies are missing from the study list: %s",
            len(orphans), ", ".join(s.id for s in orphans),
        )

    summaries = [
        _article_summary(study, study_ids, index, bands)
        for study, study_ids in merge_study_intakes([*studies, *orphans])
    ]
    summaries.sort(key=lambda a: (-a["reviewerCount"], -(a["year"] or 0)))
    return summaries
