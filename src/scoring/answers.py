"""
Per-slot answer states.

Every question slot of a normalized score is exactly one of:

    Answered(token, score)  — resolved against the record's rubric version
    Missing()               — the rater left the slot blank
    Invalid(raw)            — a value was given but the rubric does not know it

Only ``Answered`` carries a number. Aggregates filter on ``is_answered``
rather than testing for a sentinel value, so a blank slot can never be
mistaken for a score of zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Answered:
    token: str
    score: int

    is_answered = True


@dataclass(frozen=True)
class Missing:
    is_answered = False


@dataclass(frozen=True)
class Invalid:
    raw: object

    is_answered = False


Answer = Union[Answered, Missing, Invalid]

MISSING = Missing()


def answered_scores(answers: dict[str, Answer]) -> dict[str, int]:
    """Return {question_id: score} for the answered slots only."""
    return {
        qid: answer.score
        for qid, answer in answers.items()
        if isinstance(answer, Answered)
    }
