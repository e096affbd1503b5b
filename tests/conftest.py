"""
Shared pytest fixtures and row builders for the analytics tests.

Score rows are built as the repository would hand them over: plain dicts with
camelCase keys and answers nested under ``answers``. Answer values default to
integer points (2 = high, 1 = moderate, 0 = low) so expected totals can be
read straight off the test.
"""

from __future__ import annotations

import pytest

from src.scoring.index import ArticleIndex
from src.scoring.normalizer import normalize_scores
from src.scoring.rubric import RubricRegistry

QUESTION_IDS = [f"q{i}" for i in range(1, 12)]


# ---------------------------------------------------------------------------
# Rubric provider
# ---------------------------------------------------------------------------

@pytest.fixture
def registry() -> RubricRegistry:
    """Registry built from the shipped V1 / V2 rubric tables."""
    return RubricRegistry.from_tables()


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

def make_score(
    study_id: str = "S1",
    rater: str = "alice",
    answers: dict | int | None = 2,
    version: str = "V2",
    notes: str = "",
    timestamp: str | None = "2024-01-01T00:00:00Z",
    score_id: str | None = None,
    time_to_complete: float | None = None,
) -> dict:
    """
    Build one repository score row.

    ``answers`` may be an int (every question gets that value), a dict of
    per-question values (questions not listed are left blank), or None
    (all blank).
    """
    if isinstance(answers, int):
        answers = {qid: answers for qid in QUESTION_IDS}
    return {
        "id": score_id or f"{study_id}-{rater}",
        "studyId": study_id,
        "raterAlias": rater,
        "rubricVersion": version,
        "answers": dict(answers or {}),
        "notes": notes,
        "timestamp": timestamp,
        "timeToComplete": time_to_complete,
    }


def make_study(study_id: str, year: int | None = 2020, **extra) -> dict:
    return {
        "id": study_id,
        "citation": extra.get("citation", f"Citation for {study_id}"),
        "doi": extra.get("doi", f"10.1000/{study_id.lower()}"),
        "year": year,
        "journal": extra.get("journal", "Journal of Trials"),
    }


def make_reviewer(alias: str, first: str = "", last: str = "") -> dict:
    return {"alias": alias, "firstName": first, "lastName": last}


def single_question_scores(ratings: dict[str, dict[str, object]], question: str = "q1") -> list[dict]:
    """
    Rows answering only ``question``: ``{study_id: {rater: value}}``.

    All other slots are left blank so they never qualify for agreement.
    """
    rows = []
    for study_id, by_rater in ratings.items():
        for rater, value in by_rater.items():
            rows.append(make_score(study_id, rater, answers={question: value}))
    return rows


def build_index(rows: list[dict], registry: RubricRegistry, **kwargs) -> ArticleIndex:
    """Normalize ``rows`` and index them over the registry's question ids."""
    result = normalize_scores(rows, registry, **kwargs)
    return ArticleIndex.build(result.scores, registry.question_ids())
