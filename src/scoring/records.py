"""
Input records consumed from the score repository.

Repository rows arrive as plain dicts (JSON documents or CSV rows). The
``from_dict`` constructors accept the platform's camelCase field names as
well as snake_case, and raise ``ValueError`` for rows that cannot be
interpreted at all; the normalizer counts those rather than aborting.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pandas as pd


def _first(row: dict, *keys: str, default=None):
    """Return the first non-blank value among ``keys``."""
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        if isinstance(value, float) and value != value:  # NaN from CSV
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return default


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def parse_timestamp(value) -> pd.Timestamp | None:
    """Parse an ISO-8601 string (or datetime) to a UTC Timestamp; None if unparseable."""
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return ts


# ---------------------------------------------------------------------------
# Score records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScoreRecord:
    id: str
    study_id: str
    rater_alias: str
    rubric_version: str
    raw_answers: dict[str, object] = field(default_factory=dict)
    notes: str = ""
    timestamp: pd.Timestamp | None = None
    time_to_complete: float | None = None

    @classmethod
    def from_dict(cls, row: dict, question_ids: list[str]) -> ScoreRecord:
        """
        Build a ScoreRecord from a repository row.

        Answers are read from a nested ``answers`` mapping when present,
        otherwise from top-level keys named after ``question_ids``. The study
        id may be given directly (``studyId`` / ``study_id``) or as the first
        entry of a ``studyRelation`` list.

        Raises:
            ValueError: ``row`` is not a mapping, or answers is not a mapping.
        """
        if not isinstance(row, dict):
            raise ValueError(f"Score row must be a mapping, got {type(row).__name__}")

        study_id = _first(row, "studyId", "study_id")
        if study_id is None:
            relation = row.get("studyRelation") or row.get("study_relation")
            if isinstance(relation, (list, tuple)) and relation:
                study_id = relation[0]

        nested = row.get("answers")
        if nested is not None and not isinstance(nested, dict):
            raise ValueError("Score row 'answers' must be a mapping")
        source = nested if nested is not None else row
        raw_answers = {qid: source.get(qid) for qid in question_ids}

        time_to_complete = _first(row, "timeToComplete", "time_to_complete")
        if time_to_complete is not None:
            try:
                time_to_complete = float(time_to_complete)
            except (TypeError, ValueError):
                time_to_complete = None

        return cls(
            id=_text(_first(row, "id", "scoreId", "score_id", default="")),
            study_id=_text(study_id),
            rater_alias=_text(_first(row, "raterAlias", "rater_alias")),
            rubric_version=_text(_first(row, "rubricVersion", "rubric_version")),
            raw_answers=raw_answers,
            notes=_text(row.get("notes")),
            timestamp=parse_timestamp(_first(row, "timestamp", "createdTime")),
            time_to_complete=time_to_complete,
        )

    def has_marker(self, markers: list[str]) -> bool:
        notes = self.notes.upper()
        return any(marker.upper() in notes for marker in markers)


# ---------------------------------------------------------------------------
# Studies and reviewers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Study:
    id: str
    citation: str = ""
    doi: str = ""
    year: int | None = None
    journal: str = ""
    submitted_by: str = ""

    @classmethod
    def from_dict(cls, row: dict) -> Study:
        if not isinstance(row, dict):
            raise ValueError(f"Study row must be a mapping, got {type(row).__name__}")
        study_id = _text(_first(row, "id", "studyId", "study_id"))
        if not study_id:
            raise ValueError("Study row has no id")
        year = _first(row, "year")
        try:
            year = int(year) if year is not None else None
        except (TypeError, ValueError):
            year = None
        return cls(
            id=study_id,
            citation=_text(row.get("citation")),
            doi=_text(row.get("doi")),
            year=year,
            journal=_text(row.get("journal")),
            submitted_by=_text(_first(row, "submittedByAlias", "submitted_by_alias", "submittedBy")),
        )

    @property
    def merge_key(self) -> str:
        """Intake rows for the same paper share a DOI; rows without one stand alone."""
        return self.doi.lower() or self.id


@dataclass(frozen=True)
class Reviewer:
    alias: str
    first_name: str = ""
    last_name: str = ""

    @classmethod
    def from_dict(cls, row: dict) -> Reviewer:
        if not isinstance(row, dict):
            raise ValueError(f"Reviewer row must be a mapping, got {type(row).__name__}")
        alias = _text(_first(row, "alias", "raterAlias"))
        if not alias:
            raise ValueError("Reviewer row has no alias")
        return cls(
            alias=alias,
            first_name=_text(_first(row, "firstName", "first_name")),
            last_name=_text(_first(row, "lastName", "last_name")),
        )

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.alias
