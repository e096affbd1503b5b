"""
Score normalization: filtering, answer resolution, and de-duplication.

Decision rules, applied in order to each raw repository row:

  1. Unparseable row                          → dropped  (malformed_record)
  2. Notes carry a test/calibration marker    → dropped  (excluded_marker)
  3. Version filter given and not matched     → dropped  (version_filtered)
  4. No study id / no rater alias             → dropped  (missing_study / missing_rater)
  5. Rubric version not registered            → dropped  (unknown_rubric_version)
  6. Any answer Invalid under the rubric      → dropped  (invalid_answer), or
                                                kept with the slot excluded
                                                (invalid_answer_slot)
  7. Older duplicate of (study, rater)        → dropped  (duplicate_superseded)

No rule aborts the run: every drop is counted in the diagnostics so that one
corrupt row cannot blank out the whole report.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Hashable

import pandas as pd

from .answers import Answer, Answered, Invalid, answered_scores
from .config import (
    DIAGNOSTIC_KEYS,
    EXCLUSION_MARKERS,
    INVALID_ANSWER_POLICIES,
    INVALID_ANSWER_POLICY,
    UNKNOWN_VERSION_LABEL,
)
from .records import ScoreRecord
from .rubric import Rubric, RubricRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Output types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NormalizedScore:
    """A score record whose answers have been resolved against its rubric."""

    record: ScoreRecord
    rubric: Rubric
    answers: dict[str, Answer]
    total_score: int

    @property
    def study_id(self) -> str:
        return self.record.study_id

    @property
    def rater_alias(self) -> str:
        return self.record.rater_alias

    @property
    def timestamp(self) -> pd.Timestamp | None:
        return self.record.timestamp

    def answer(self, question_id: str) -> Answer | None:
        return self.answers.get(question_id)

    def token(self, question_id: str) -> str | None:
        answer = self.answers.get(question_id)
        return answer.token if isinstance(answer, Answered) else None

    def score(self, question_id: str) -> int | None:
        answer = self.answers.get(question_id)
        return answer.score if isinstance(answer, Answered) else None

    @property
    def answered_count(self) -> int:
        return sum(1 for a in self.answers.values() if isinstance(a, Answered))

    @property
    def is_complete(self) -> bool:
        """True when every question of the score's rubric was answered."""
        return self.answered_count == len(self.rubric.question_ids)


@dataclass
class NormalizationResult:
    scores: list[NormalizedScore]
    diagnostics: dict[str, int] = field(default_factory=dict)
    version_counts: dict[str, int] = field(default_factory=dict)
    version_filter: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def total_score(answers: dict[str, Answer]) -> int:
    """Sum of the answered slots only; Missing and Invalid contribute nothing."""
    return sum(answered_scores(answers).values())


def count_versions(raw_scores: list[dict]) -> dict[str, int]:
    """
    Count raw rows by declared rubric version, before any filtering.

    Blank or absent versions are reported under ``"Unknown"``.
    """
    counts: Counter = Counter()
    for row in raw_scores:
        version = ""
        if isinstance(row, dict):
            version = str(row.get("rubricVersion") or row.get("rubric_version") or "").strip()
        counts[version or UNKNOWN_VERSION_LABEL] += 1
    return dict(counts)


def _recency_key(item: tuple[int, NormalizedScore]) -> tuple:
    position, score = item
    ts = score.timestamp
    # Undated records sort before any dated one; input order breaks ties.
    return (ts is not None, ts.value if ts is not None else 0, position)


def _study_rater(score: NormalizedScore) -> tuple[str, str]:
    return (score.study_id, score.rater_alias)


def deduplicate_latest(
    scores: list[NormalizedScore],
    key: Callable[[NormalizedScore], Hashable] = _study_rater,
) -> tuple[list[NormalizedScore], int]:
    """
    Keep the most recent score per ``key`` (default: per (study, rater)).

    Returns:
        Tuple of (kept scores in first-seen order, number superseded).
    """
    latest: dict[Hashable, tuple[int, NormalizedScore]] = {}
    for position, score in enumerate(scores):
        group = key(score)
        candidate = (position, score)
        if group not in latest or _recency_key(candidate) > _recency_key(latest[group]):
            latest[group] = candidate

    kept_positions = sorted(position for position, _ in latest.values())
    kept = [scores[position] for position in kept_positions]
    return kept, len(scores) - len(kept)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize_scores(
    raw_scores: list[dict],
    registry: RubricRegistry,
    rubric_version: str | None = None,
    invalid_answer_policy: str = INVALID_ANSWER_POLICY,
    exclusion_markers: list[str] = EXCLUSION_MARKERS,
) -> NormalizationResult:
    """
    Filter raw score rows and resolve their answers to numeric points.

    Args:
        raw_scores: Score rows as returned by the repository.
        registry: Rubric provider used to resolve each row's version.
        rubric_version: Optional version filter (e.g. ``"V2"``).
        invalid_answer_policy: ``"drop_record"`` or ``"treat_as_missing"``.
        exclusion_markers: Notes markers identifying test/calibration rows.

    Returns:
        NormalizationResult with the cleaned scores, per-reason drop counts,
        and the pre-filter version breakdown.

    Raises:
        ValueError: Unknown ``invalid_answer_policy``.
    """
    if invalid_answer_policy not in INVALID_ANSWER_POLICIES:
        raise ValueError(
            f"Unknown invalid_answer_policy {invalid_answer_policy!r}; "
            f"expected one of {sorted(INVALID_ANSWER_POLICIES)}"
        )

    diagnostics: Counter = Counter({key: 0 for key in DIAGNOSTIC_KEYS})
    question_ids = registry.question_ids()
    resolved: list[NormalizedScore] = []

    for position, row in enumerate(raw_scores):
        try:
            record = ScoreRecord.from_dict(row, question_ids)
        except ValueError as exc:
            diagnostics["malformed_record"] += 1
            logger.warning("Dropping malformed score row #%d: %s", position, exc)
            continue

        if record.has_marker(exclusion_markers):
            diagnostics["excluded_marker"] += 1
            continue

        if rubric_version and record.rubric_version != rubric_version:
            diagnostics["version_filtered"] += 1
            continue

        if not record.study_id:
            diagnostics["missing_study"] += 1
            logger.warning("Dropping score %r: no study id", record.id)
            continue

        if not record.rater_alias:
            diagnostics["missing_rater"] += 1
            logger.warning("Dropping score %r: no rater alias", record.id)
            continue

        try:
            rubric = registry.get(record.rubric_version)
        except KeyError:
            diagnostics["unknown_rubric_version"] += 1
            logger.warning(
                "Dropping score %r: unknown rubric version %r",
                record.id, record.rubric_version,
            )
            continue

        answers = rubric.resolve_all(record.raw_answers)
        invalid = [qid for qid, a in answers.items() if isinstance(a, Invalid)]
        if invalid:
            if invalid_answer_policy == "drop_record":
                diagnostics["invalid_answer"] += 1
                logger.warning(
                    "Dropping score %r: unresolvable answers for %s under %s",
                    record.id, ", ".join(invalid), rubric.version,
                )
                continue
            diagnostics["invalid_answer_slot"] += len(invalid)

        resolved.append(NormalizedScore(
            record=record,
            rubric=rubric,
            answers=answers,
            total_score=total_score(answers),
        ))

    scores, superseded = deduplicate_latest(resolved)
    diagnostics["duplicate_superseded"] += superseded
    if superseded:
        logger.warning("Superseded %d duplicate (study, rater) scores", superseded)

    logger.debug(
        "Normalized %d of %d score rows (version filter: %s)",
        len(scores), len(raw_scores), rubric_version or "All",
    )

    return NormalizationResult(
        scores=scores,
        diagnostics=dict(diagnostics),
        version_counts=count_versions(raw_scores),
        version_filter=rubric_version,
    )
