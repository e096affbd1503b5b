"""
Unit tests for src/scoring/index.py.

Covers grouping by study, multi-rater selection, rater lookup, shared
studies, and defensive collapse of duplicate (study, rater) scores.
"""

from __future__ import annotations

from src.scoring.index import ArticleIndex
from src.scoring.normalizer import normalize_scores

from .conftest import build_index, make_score


class TestArticleIndex:

    def test_groups_by_study(self, registry):
        rows = [
            make_score("S1", "bob"),
            make_score("S1", "alice"),
            make_score("S2", "alice"),
        ]
        index = build_index(rows, registry)
        assert len(index) == 2
        assert index.articles["S1"].rater_aliases == ["alice", "bob"]
        assert index.articles["S2"].rater_count == 1

    def test_multi_rater_articles(self, registry):
        rows = [
            make_score("S1", "alice"), make_score("S1", "bob"),
            make_score("S2", "alice"),
            make_score("S3", "bob"), make_score("S3", "carol"),
        ]
        index = build_index(rows, registry)
        assert sorted(a.study_id for a in index.multi_rater_articles()) == ["S1", "S3"]

    def test_raters_sorted(self, registry):
        rows = [make_score("S1", "carol"), make_score("S2", "alice"), make_score("S1", "bob")]
        assert build_index(rows, registry).raters() == ["alice", "bob", "carol"]

    def test_shared_studies(self, registry):
        rows = [
            make_score("S1", "alice"), make_score("S1", "bob"),
            make_score("S2", "alice"), make_score("S2", "bob"),
            make_score("S3", "alice"), make_score("S4", "carol"),
        ]
        index = build_index(rows, registry)
        assert index.shared_studies("alice", "bob") == ["S1", "S2"]
        assert index.shared_studies("alice", "carol") == []

    def test_score_for(self, registry):
        index = build_index([make_score("S1", "alice", answers=1)], registry)
        assert index.score_for("S1", "alice").total_score == 11
        assert index.score_for("S1", "bob") is None
        assert index.score_for("S9", "alice") is None

    def test_tokens_skip_unanswered(self, registry):
        rows = [
            make_score("S1", "alice", answers={"q1": 2}),
            make_score("S1", "bob", answers={"q2": 0}),
        ]
        article = build_index(rows, registry).articles["S1"]
        assert article.tokens("q1") == ["high"]
        assert article.tokens("q3") == []

    def test_complete_totals_skip_partial_scores(self, registry):
        rows = [
            make_score("S1", "alice", answers=1),
            make_score("S1", "bob", answers={"q1": 2, "q2": 2}),
        ]
        article = build_index(rows, registry).articles["S1"]
        assert article.totals == [11, 4]
        assert article.complete_totals == [11]

    def test_question_ids_default_to_rubric_union(self, registry):
        result = normalize_scores([make_score()], registry)
        index = ArticleIndex.build(result.scores)
        assert index.question_ids == [f"q{i}" for i in range(1, 12)]

    def test_duplicates_collapsed_defensively(self, registry):
        old = normalize_scores(
            [make_score("S1", "alice", answers=0, timestamp="2024-01-01T00:00:00Z")], registry
        ).scores
        new = normalize_scores(
            [make_score("S1", "alice", answers=2, timestamp="2024-06-01T00:00:00Z")], registry
        ).scores
        index = ArticleIndex.build(new + old)
        assert index.articles["S1"].totals == [22]
        assert not index.articles["S1"].is_multi_rater
