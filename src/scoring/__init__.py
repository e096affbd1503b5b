"""
src/scoring — Rubric model, score normalization, and the article index.

Module layout
-------------
config.py      — Exclusion markers, select-value patterns, policies
answers.py     — Answered / Missing / Invalid per-slot answer states
rubric.py      — Rubric, RubricQuestion, RubricOption, RubricRegistry
records.py     — ScoreRecord, Study, Reviewer parsed from repository rows
normalizer.py  — Filtering, answer resolution, de-duplication, diagnostics
index.py       — ArticleIndex grouping normalized scores by study

Public interface
----------------
Build the rubric provider:
    registry = RubricRegistry.from_tables()

Normalize raw repository rows and index them:
    result = normalize_scores(raw_scores, registry, rubric_version="V2")
    index = ArticleIndex.build(result.scores)
"""

from .answers import MISSING, Answer, Answered, Invalid, Missing
from .index import ArticleIndex, ArticleScoreSet
from .normalizer import (
    NormalizationResult,
    NormalizedScore,
    count_versions,
    deduplicate_latest,
    normalize_scores,
    total_score,
)
from .records import Reviewer, ScoreRecord, Study
from .rubric import (
    Rubric,
    RubricOption,
    RubricQuestion,
    RubricRegistry,
    quality_tier,
)

__all__ = [
    # Answer states
    "Answer",
    "Answered",
    "Missing",
    "Invalid",
    "MISSING",
    # Rubric model
    "Rubric",
    "RubricOption",
    "RubricQuestion",
    "RubricRegistry",
    "quality_tier",
    # Records
    "ScoreRecord",
    "Study",
    "Reviewer",
    # Normalization
    "normalize_scores",
    "NormalizationResult",
    "NormalizedScore",
    "count_versions",
    "deduplicate_latest",
    "total_score",
    # Index
    "ArticleIndex",
    "ArticleScoreSet",
]
