"""
Article index: normalized scores grouped by the study they target.

The index is the ragged matrix every calculator reads from:

    study_id → [(rater, per-question answers, total score), ...]

Only sets with two or more distinct raters ("multi-rater articles") take part
in inter-rater statistics; single-rater articles still feed the per-reviewer
and distribution summaries.
"""

from __future__ import annotations

from dataclasses import dataclass

from .normalizer import NormalizedScore, deduplicate_latest


@dataclass(frozen=True)
class ArticleScoreSet:
    study_id: str
    scores: tuple[NormalizedScore, ...]

    @property
    def rater_aliases(self) -> list[str]:
        return [score.rater_alias for score in self.scores]

    @property
    def rater_count(self) -> int:
        return len(set(self.rater_aliases))

    @property
    def is_multi_rater(self) -> bool:
        return self.rater_count >= 2

    @property
    def totals(self) -> list[int]:
        return [score.total_score for score in self.scores]

    @property
    def complete_totals(self) -> list[int]:
        """Totals of the scores that answered every slot of their rubric."""
        return [score.total_score for score in self.scores if score.is_complete]

    def score_for(self, rater_alias: str) -> NormalizedScore | None:
        for score in self.scores:
            if score.rater_alias == rater_alias:
                return score
        return None

    def tokens(self, question_id: str) -> list[str]:
        """Answer tokens for ``question_id`` from raters who answered it."""
        return [
            token for token in (s.token(question_id) for s in self.scores)
            if token is not None
        ]


class ArticleIndex:
    """
    Immutable grouping of normalized scores by study.

    Build with :meth:`build`; the calculators in ``src.analysis`` only read
    from it.
    """

    def __init__(
        self,
        articles: dict[str, ArticleScoreSet],
        question_ids: list[str],
    ) -> None:
        self.articles = articles
        self.question_ids = list(question_ids)

    @classmethod
    def build(
        cls,
        scores: list[NormalizedScore],
        question_ids: list[str] | None = None,
    ) -> ArticleIndex:
        """
        Group ``scores`` by study id.

        Duplicate (study, rater) scores that slipped past normalization are
        collapsed to the most recent one.

        Args:
            scores: Output of :func:`src.scoring.normalizer.normalize_scores`.
            question_ids: Question slots to analyse; defaults to the ordered
                union of the scores' rubric questions.
        """
        unique, _ = deduplicate_latest(list(scores))

        if question_ids is None:
            question_ids = []
            for score in unique:
                for qid in score.rubric.question_ids:
                    if qid not in question_ids:
                        question_ids.append(qid)

        grouped: dict[str, list[NormalizedScore]] = {}
        for score in unique:
            grouped.setdefault(score.study_id, []).append(score)

        articles = {
            study_id: ArticleScoreSet(
                study_id=study_id,
                scores=tuple(sorted(group, key=lambda s: s.rater_alias)),
            )
            for study_id, group in grouped.items()
        }
        return cls(articles, question_ids)

    def __len__(self) -> int:
        return len(self.articles)

    def __iter__(self):
        return iter(self.articles.values())

    @property
    def scores(self) -> list[NormalizedScore]:
        return [score for article in self.articles.values() for score in article.scores]

    def multi_rater_articles(self) -> list[ArticleScoreSet]:
        return [article for article in self.articles.values() if article.is_multi_rater]

    def raters(self) -> list[str]:
        return sorted({score.rater_alias for score in self.scores})

    def studies_for(self, rater_alias: str) -> set[str]:
        return {
            study_id for study_id, article in self.articles.items()
            if article.score_for(rater_alias) is not None
        }

    def shared_studies(self, rater_a: str, rater_b: str) -> list[str]:
        """Study ids scored by both raters, in index order."""
        shared = self.studies_for(rater_a) & self.studies_for(rater_b)
        return [study_id for study_id in self.articles if study_id in shared]

    def score_for(self, study_id: str, rater_alias: str) -> NormalizedScore | None:
        article = self.articles.get(study_id)
        return article.score_for(rater_alias) if article else None
