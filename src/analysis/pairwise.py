"""
Pairwise agreement: Cohen's kappa for every pair of reviewers.

For each unordered pair of rater aliases, the comparison set is the studies
both raters scored. Pairs with no shared study produce no result at all
(omitted, not zero). Within the shared studies the comparison basis is:

  per_question — one item per (study, question slot) where BOTH raters
                 answered; categories are answer tokens. Missing or invalid
                 slots are skipped, never counted as disagreement.
  total        — one item per shared study where BOTH scores answered every
                 slot; categories are exact total scores. Shared studies
                 with an incomplete score are counted as incompleteExcluded.

    Po = identical items / items
    Pe = Σ_c p1(c) · p2(c)
    κ  = (Po − Pe) / (1 − Pe)        undefined when Pe = 1

Alongside κ each pair reports raw percent agreement and PABAK (2·Po − 1,
Byrt et al. 1993), which stays interpretable when prevalence is skewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from itertools import combinations
from typing import Sequence

import numpy as np
from sklearn.metrics import confusion_matrix

from src.scoring.index import ArticleIndex

from .config import COMPARISON_BASES, DEFAULT_COMPARISON_BASIS, PERCENT_DECIMALS
from .results import (
    DEGENERATE_VARIANCE,
    NO_COMPARABLE_ITEMS,
    AgreementResult,
)


# ---------------------------------------------------------------------------
# Two-sequence primitive
# ---------------------------------------------------------------------------

def cohens_kappa(
    ratings_a: Sequence,
    ratings_b: Sequence,
    statistic: str = "cohens_kappa",
) -> AgreementResult:
    """
    Cohen's kappa between two aligned rating sequences.

    Args:
        ratings_a: First rater's category per item.
        ratings_b: Second rater's category per item (same order and length).
        statistic: Name recorded on the result.

    Returns:
        AgreementResult with ``n`` = items compared and details
        ``po``, ``pe``, ``pabak``, ``percentAgreement``.

    Raises:
        ValueError: Sequences differ in length.
    """
    if len(ratings_a) != len(ratings_b):
        raise ValueError(
            f"Rating sequences differ in length: {len(ratings_a)} vs {len(ratings_b)}"
        )

    n = len(ratings_a)
    if n == 0:
        return AgreementResult.undefined(statistic, 0, NO_COMPARABLE_ITEMS)

    categories = sorted(set(ratings_a) | set(ratings_b), key=str)
    if len(categories) == 1:
        # Both raters used one identical category, so Pe = 1.
        return AgreementResult.undefined(
            statistic, n, DEGENERATE_VARIANCE,
            po=1.0, pe=1.0, pabak=1.0, percentAgreement=100.0,
        )

    table = confusion_matrix(list(ratings_a), list(ratings_b), labels=categories).astype(float)

    po = float(np.trace(table) / n)
    pe = float(table.sum(axis=1) @ table.sum(axis=0) / n**2)
    details = {
        "po": po,
        "pe": pe,
        "pabak": 2 * po - 1,
        "percentAgreement": round(po * 100, PERCENT_DECIMALS),
    }

    kappa = (po - pe) / (1 - pe)
    return AgreementResult(statistic=statistic, value=float(kappa), n=n, details=details)


# ---------------------------------------------------------------------------
# Pair-level result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PairwiseAgreement:
    rater_a: str
    rater_b: str
    shared_studies: int
    basis: str
    kappa: AgreementResult
    per_question: dict[str, AgreementResult] = field(default_factory=dict)

    def to_dict(self) -> dict:
        details = self.kappa.details
        return {
            "raterA": self.rater_a,
            "raterB": self.rater_b,
            "n": self.shared_studies,
            "basis": self.basis,
            "comparisons": self.kappa.n,
            "kappa": self.kappa.to_dict()["value"],
            "defined": self.kappa.is_defined,
            "reason": self.kappa.reason,
            "interpretation": self.kappa.interpretation,
            "percentAgreement": details.get("percentAgreement"),
            "pabak": round(details["pabak"], 3) if "pabak" in details else None,
            "incompleteExcluded": details.get("incompleteExcluded"),
            "perQuestion": {
                qid: result.to_dict()["value"] for qid, result in self.per_question.items()
            },
        }


# ---------------------------------------------------------------------------
# Item builders
# ---------------------------------------------------------------------------

def _question_items(
    index: ArticleIndex,
    studies: list[str],
    rater_a: str,
    rater_b: str,
    question_id: str,
) -> tuple[list[str], list[str]]:
    a_items: list[str] = []
    b_items: list[str] = []
    for study_id in studies:
        token_a = index.score_for(study_id, rater_a).token(question_id)
        token_b = index.score_for(study_id, rater_b).token(question_id)
        if token_a is None or token_b is None:
            continue
        a_items.append(token_a)
        b_items.append(token_b)
    return a_items, b_items


def _total_items(
    index: ArticleIndex,
    studies: list[str],
    rater_a: str,
    rater_b: str,
) -> tuple[list[int], list[int], int]:
    a_items: list[int] = []
    b_items: list[int] = []
    for study_id in studies:
        score_a = index.score_for(study_id, rater_a)
        score_b = index.score_for(study_id, rater_b)
        if not (score_a.is_complete and score_b.is_complete):
            continue
        a_items.append(score_a.total_score)
        b_items.append(score_b.total_score)
    return a_items, b_items, len(studies) - len(a_items)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def calculate_pair_agreement(
    index: ArticleIndex,
    rater_a: str,
    rater_b: str,
    basis: str = DEFAULT_COMPARISON_BASIS,
) -> PairwiseAgreement | None:
    """
    Cohen's kappa for one reviewer pair; None when they share no study.

    Raises:
        ValueError: Unknown comparison ``basis``.
    """
    if basis not in COMPARISON_BASES:
        raise ValueError(f"Unknown comparison basis {basis!r}; expected one of {COMPARISON_BASES}")

    studies = index.shared_studies(rater_a, rater_b)
    if not studies:
        return None

    per_question: dict[str, AgreementResult] = {}
    pooled_a: list[str] = []
    pooled_b: list[str] = []
    for qid in index.question_ids:
        a_items, b_items = _question_items(index, studies, rater_a, rater_b, qid)
        per_question[qid] = cohens_kappa(a_items, b_items)
        pooled_a.extend(a_items)
        pooled_b.extend(b_items)

    if basis == "per_question":
        kappa = cohens_kappa(pooled_a, pooled_b)
    else:
        a_items, b_items, excluded = _total_items(index, studies, rater_a, rater_b)
        kappa = cohens_kappa(a_items, b_items)
        kappa = replace(kappa, details={**kappa.details, "incompleteExcluded": excluded})

    return PairwiseAgreement(
        rater_a=rater_a,
        rater_b=rater_b,
        shared_studies=len(studies),
        basis=basis,
        kappa=kappa,
        per_question=per_question,
    )


def calculate_cohens_kappa_pairs(
    index: ArticleIndex,
    basis: str = DEFAULT_COMPARISON_BASIS,
) -> list[PairwiseAgreement]:
    """
    Cohen's kappa for every reviewer pair with at least one shared study.

    Pairs are enumerated over sorted rater aliases so the output order is
    deterministic.

    Args:
        index: Article index built from normalized scores.
        basis: ``"per_question"`` (default) or ``"total"``.

    Returns:
        List of PairwiseAgreement, one per pair that shares a study.
    """
    pairs: list[PairwiseAgreement] = []
    for rater_a, rater_b in combinations(index.raters(), 2):
        pair = calculate_pair_agreement(index, rater_a, rater_b, basis=basis)
        if pair is not None:
            pairs.append(pair)
    return pairs
