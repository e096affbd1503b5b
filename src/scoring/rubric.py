"""
Rubric model: versioned question / option / score lookup.

The registry is an explicit instance built from the tables in
config/rubric_tables.py and passed into the engine; there is no
module-level rubric cache. Each rubric resolves raw categorical answers
into the tagged answer states of :mod:`src.scoring.answers` once, so the
calculators never re-parse select values.
"""

from __future__ import annotations

from dataclasses import dataclass

from .answers import MISSING, Answer, Answered, Invalid
from .config import (
    DEFAULT_RUBRIC_VERSION,
    QUALITY_TIER_BANDS,
    RUBRIC_TABLES,
    SELECT_VALUE_PATTERN,
    VERSION_MARKER_PATTERN,
)


# ---------------------------------------------------------------------------
# Rubric structure
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RubricOption:
    token: str
    score: int
    tier: str
    label: str


@dataclass(frozen=True)
class RubricQuestion:
    id: str
    label: str
    options: tuple[RubricOption, ...]
    description: str = ""

    @property
    def tokens(self) -> list[str]:
        return [option.token for option in self.options]

    @property
    def max_score(self) -> int:
        return max(option.score for option in self.options)

    def option_for_score(self, score: int) -> RubricOption | None:
        for option in self.options:
            if option.score == score:
                return option
        return None


class Rubric:
    """
    One rubric version: ordered questions and answer resolution.

    Args:
        version: Version label, e.g. ``"V2"``.
        questions: Questions in display order.
        tier_bands: ``[(tier_label, min_total), ...]`` ordered highest first.
    """

    def __init__(
        self,
        version: str,
        questions: list[RubricQuestion],
        tier_bands: list[tuple[str, int]] = QUALITY_TIER_BANDS,
    ) -> None:
        if not questions:
            raise ValueError(f"Rubric {version} has no questions.")
        self.version = version
        self.questions = tuple(questions)
        self.tier_bands = list(tier_bands)
        self._by_id = {q.id: q for q in self.questions}
        if len(self._by_id) != len(self.questions):
            raise ValueError(f"Rubric {version} has duplicate question ids.")

    def __repr__(self) -> str:
        return f"Rubric({self.version!r}, {len(self.questions)} questions)"

    @property
    def question_ids(self) -> list[str]:
        return [q.id for q in self.questions]

    @property
    def max_total(self) -> int:
        return sum(q.max_score for q in self.questions)

    def question(self, question_id: str) -> RubricQuestion:
        return self._by_id[question_id]

    # ── Answer resolution ──────────────────────────────────────────────────

    def resolve(self, question_id: str, raw: object) -> Answer:
        """
        Resolve one raw answer for a question slot.

        Accepted spellings, in order: blank → Missing; an integer option
        score (or its digit string); an option token, tier or label (case-insensitive); a
        document-store select value ``"<score> — <Tier>[ [Vn]]: ..."``
        whose score and tier agree. A select value marked for another
        rubric version is Invalid rather than silently re-scored.

        Raises:
            KeyError: ``question_id`` is not part of this rubric.
        """
        question = self._by_id[question_id]

        if raw is None:
            return MISSING

        if isinstance(raw, bool):
            return Invalid(raw)

        if isinstance(raw, int):
            option = question.option_for_score(raw)
            return Answered(option.token, option.score) if option else Invalid(raw)

        if isinstance(raw, float):
            if raw != raw:  # NaN from CSV reads
                return MISSING
            if raw.is_integer():
                return self.resolve(question_id, int(raw))
            return Invalid(raw)

        if not isinstance(raw, str):
            return Invalid(raw)

        text = raw.strip()
        if not text:
            return MISSING

        if text.isdigit():  # CSV cells arrive as text
            return self.resolve(question_id, int(text))

        folded = text.casefold()
        for option in question.options:
            if folded in (
                option.token.casefold(),
                option.tier.casefold(),
                option.label.casefold(),
            ):
                return Answered(option.token, option.score)

        for marker in VERSION_MARKER_PATTERN.findall(text):
            if marker != self.version:
                return Invalid(raw)

        match = SELECT_VALUE_PATTERN.match(text)
        if match:
            option = question.option_for_score(int(match.group("score")))
            if option and option.tier.casefold() == match.group("tier").casefold():
                return Answered(option.token, option.score)

        return Invalid(raw)

    def resolve_all(self, raw_answers: dict[str, object]) -> dict[str, Answer]:
        """Resolve every question slot; slots absent from ``raw_answers`` are Missing."""
        return {
            qid: self.resolve(qid, raw_answers.get(qid))
            for qid in self.question_ids
        }

    # ── Quality tiers ──────────────────────────────────────────────────────

    def quality_tier(self, total: float) -> str:
        return quality_tier(total, self.tier_bands)


def quality_tier(total: float, bands: list[tuple[str, int]] = QUALITY_TIER_BANDS) -> str:
    """Return the first band label whose minimum ``total`` meets; lowest band otherwise."""
    for label, minimum in bands:
        if total >= minimum:
            return label
    return bands[-1][0]


# ---------------------------------------------------------------------------
# Registry (the rubric provider)
# ---------------------------------------------------------------------------

class RubricRegistry:
    """
    Version → Rubric lookup.

    Construct one per process (or per test) and pass it to
    :func:`src.scoring.normalizer.normalize_scores`.
    """

    def __init__(
        self,
        rubrics: list[Rubric],
        default_version: str = DEFAULT_RUBRIC_VERSION,
    ) -> None:
        self._rubrics = {rubric.version: rubric for rubric in rubrics}
        if default_version not in self._rubrics:
            raise ValueError(
                f"Default rubric version {default_version!r} is not registered "
                f"(have {sorted(self._rubrics)})."
            )
        self.default_version = default_version

    @classmethod
    def from_tables(
        cls,
        tables: dict[str, list[dict]] = RUBRIC_TABLES,
        default_version: str = DEFAULT_RUBRIC_VERSION,
        tier_bands: list[tuple[str, int]] = QUALITY_TIER_BANDS,
    ) -> RubricRegistry:
        """Build a registry from ``{version: [question_dict, ...]}`` tables."""
        rubrics = []
        for version, questions in tables.items():
            rubrics.append(Rubric(
                version,
                [
                    RubricQuestion(
                        id=q["id"],
                        label=q.get("label", q["id"]),
                        description=q.get("description", ""),
                        options=tuple(
                            RubricOption(
                                token=o["token"],
                                score=int(o["score"]),
                                tier=o.get("tier", o["token"].title()),
                                label=o.get("label", o["token"]),
                            )
                            for o in q["options"]
                        ),
                    )
                    for q in questions
                ],
                tier_bands=tier_bands,
            ))
        return cls(rubrics, default_version=default_version)

    @property
    def versions(self) -> list[str]:
        return list(self._rubrics)

    def get(self, version: str | None) -> Rubric:
        """
        Return the rubric for ``version``; blank resolves to the default.

        Raises:
            KeyError: Unknown rubric version.
        """
        if not version:
            version = self.default_version
        try:
            return self._rubrics[version]
        except KeyError:
            raise KeyError(f"Unknown rubric version: {version!r}") from None

    def question_ids(self, versions: list[str] | None = None) -> list[str]:
        """Ordered union of question ids across ``versions`` (default: all)."""
        ordered: list[str] = []
        for version in versions or self.versions:
            for qid in self.get(version).question_ids:
                if qid not in ordered:
                    ordered.append(qid)
        return ordered

    def question_tokens(self, question_id: str, versions: list[str] | None = None) -> list[str]:
        """Ordered union of answer tokens for one question across ``versions``."""
        tokens: list[str] = []
        for version in versions or self.versions:
            rubric = self.get(version)
            if question_id not in rubric.question_ids:
                continue
            for token in rubric.question(question_id).tokens:
                if token not in tokens:
                    tokens.append(token)
        return tokens

    def question_label(self, question_id: str) -> str:
        for version in reversed(self.versions):
            rubric = self.get(version)
            if question_id in rubric.question_ids:
                return rubric.question(question_id).label
        return question_id
