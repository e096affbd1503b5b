"""
Unit tests for src/scoring/normalizer.py and src/scoring/records.py.

Covers:
- Record parsing: camelCase / snake_case keys, studyRelation, top-level
  answers, malformed rows.
- Filtering: exclusion markers, version filter, missing study / rater,
  unknown rubric version.
- Invalid answer policies.
- De-duplication (latest timestamp wins, input order breaks ties).
- Version counts before filtering; total score = sum of answered slots.
"""

from __future__ import annotations

import pytest

from src.scoring.answers import Answered, Invalid, Missing
from src.scoring.normalizer import count_versions, normalize_scores
from src.scoring.records import Reviewer, ScoreRecord, Study, parse_timestamp

from .conftest import QUESTION_IDS, make_score


# ---------------------------------------------------------------------------
# Class: record parsing
# ---------------------------------------------------------------------------

class TestScoreRecordFromDict:

    def test_camel_case_row(self):
        record = ScoreRecord.from_dict(make_score("S1", "alice", answers={"q1": 2}), QUESTION_IDS)
        assert record.study_id == "S1"
        assert record.rater_alias == "alice"
        assert record.rubric_version == "V2"
        assert record.raw_answers["q1"] == 2
        assert record.raw_answers["q2"] is None

    def test_study_relation_and_top_level_answers(self):
        row = {
            "id": "r1",
            "studyRelation": ["S9", "S10"],
            "rater_alias": "bob",
            "rubric_version": "V1",
            "q1": "2 - High: clear",
            "timeToComplete": "12.5",
        }
        record = ScoreRecord.from_dict(row, QUESTION_IDS)
        assert record.study_id == "S9"
        assert record.rater_alias == "bob"
        assert record.raw_answers["q1"] == "2 - High: clear"
        assert record.time_to_complete == pytest.approx(12.5)

    def test_non_mapping_row_rejected(self):
        with pytest.raises(ValueError):
            ScoreRecord.from_dict(["not", "a", "dict"], QUESTION_IDS)

    def test_non_mapping_answers_rejected(self):
        with pytest.raises(ValueError):
            ScoreRecord.from_dict({"studyId": "S1", "answers": "q1=2"}, QUESTION_IDS)

    def test_marker_detection_case_insensitive(self):
        record = ScoreRecord.from_dict(make_score(notes="pilot [calibration] run"), QUESTION_IDS)
        assert record.has_marker(["[TEST]", "[CALIBRATION]"])

    def test_unparseable_timestamp_is_none(self):
        assert parse_timestamp("not a date") is None
        assert parse_timestamp("2024-03-01T10:00:00Z").year == 2024


class TestStudyAndReviewer:

    def test_study_requires_id(self):
        with pytest.raises(ValueError):
            Study.from_dict({"citation": "orphan"})

    def test_study_year_coerced(self):
        assert Study.from_dict({"id": "S1", "year": "2019"}).year == 2019
        assert Study.from_dict({"id": "S1", "year": "n/a"}).year is None

    def test_reviewer_display_name_falls_back_to_alias(self):
        assert Reviewer.from_dict({"alias": "r1", "firstName": "Ada", "lastName": "Byron"}).display_name == "Ada Byron"
        assert Reviewer.from_dict({"alias": "r2"}).display_name == "r2"


# ---------------------------------------------------------------------------
# Class: filtering and diagnostics
# ---------------------------------------------------------------------------

class TestNormalizeFiltering:

    def test_clean_rows_all_kept(self, registry):
        rows = [make_score("S1", "alice"), make_score("S1", "bob")]
        result = normalize_scores(rows, registry)
        assert len(result.scores) == 2
        assert all(v == 0 for v in result.diagnostics.values())

    def test_exclusion_markers(self, registry):
        rows = [
            make_score("S1", "alice", notes="[TEST] smoke"),
            make_score("S1", "bob", notes="[CALIBRATION]"),
            make_score("S1", "carol"),
        ]
        result = normalize_scores(rows, registry)
        assert [s.rater_alias for s in result.scores] == ["carol"]
        assert result.diagnostics["excluded_marker"] == 2

    def test_version_filter(self, registry):
        rows = [
            make_score("S1", "alice", version="V1"),
            make_score("S1", "bob", version="V2"),
            make_score("S1", "carol", version=""),
        ]
        result = normalize_scores(rows, registry, rubric_version="V2")
        assert [s.rater_alias for s in result.scores] == ["bob"]
        assert result.diagnostics["version_filtered"] == 2
        assert result.version_filter == "V2"

    def test_blank_version_scored_against_default(self, registry):
        result = normalize_scores([make_score(version="")], registry)
        assert result.scores[0].rubric.version == "V2"

    def test_missing_study_and_rater_dropped(self, registry):
        rows = [make_score(study_id=""), make_score(rater="")]
        result = normalize_scores(rows, registry)
        assert result.scores == []
        assert result.diagnostics["missing_study"] == 1
        assert result.diagnostics["missing_rater"] == 1

    def test_unknown_rubric_version_dropped(self, registry):
        result = normalize_scores([make_score(version="V9")], registry)
        assert result.scores == []
        assert result.diagnostics["unknown_rubric_version"] == 1

    def test_malformed_row_counted_not_fatal(self, registry):
        rows = ["garbage", {"studyId": "S1", "answers": 7}, make_score()]
        result = normalize_scores(rows, registry)
        assert len(result.scores) == 1
        assert result.diagnostics["malformed_record"] == 2

    def test_version_counts_include_every_raw_row(self, registry):
        rows = [
            make_score("S1", "a", version="V1"),
            make_score("S1", "b", version="V2", notes="[TEST]"),
            make_score("S1", "c", version=""),
        ]
        result = normalize_scores(rows, registry, rubric_version="V1")
        assert result.version_counts == {"V1": 1, "V2": 1, "Unknown": 1}
        assert count_versions(rows) == result.version_counts


# ---------------------------------------------------------------------------
# Class: invalid answers
# ---------------------------------------------------------------------------

class TestInvalidAnswers:

    def test_drop_record_policy(self, registry):
        rows = [make_score(answers={"q1": 2, "q2": "excellent"})]
        result = normalize_scores(rows, registry)
        assert result.scores == []
        assert result.diagnostics["invalid_answer"] == 1

    def test_treat_as_missing_policy(self, registry):
        rows = [make_score(answers={"q1": 2, "q2": "excellent"})]
        result = normalize_scores(rows, registry, invalid_answer_policy="treat_as_missing")
        score = result.scores[0]
        assert isinstance(score.answer("q2"), Invalid)
        assert score.total_score == 2
        assert score.token("q2") is None
        assert result.diagnostics["invalid_answer_slot"] == 1

    def test_cross_version_answer_is_invalid(self, registry):
        rows = [make_score(version="V1", answers={"q1": "2 — High [V2]: PICO"})]
        result = normalize_scores(rows, registry)
        assert result.diagnostics["invalid_answer"] == 1

    def test_unknown_policy_rejected(self, registry):
        with pytest.raises(ValueError):
            normalize_scores([], registry, invalid_answer_policy="ignore")


# ---------------------------------------------------------------------------
# Class: totals and answer states
# ---------------------------------------------------------------------------

class TestTotals:

    def test_total_equals_sum_of_answered(self, registry):
        answers = {"q1": 2, "q2": 1, "q3": 0, "q4": "high", "q5": None}
        score = normalize_scores([make_score(answers=answers)], registry).scores[0]
        assert score.total_score == 2 + 1 + 0 + 2
        assert score.total_score == sum(
            a.score for a in score.answers.values() if isinstance(a, Answered)
        )
        assert isinstance(score.answer("q5"), Missing)
        assert score.answered_count == 4

    def test_all_blank_total_is_zero_with_no_answers(self, registry):
        score = normalize_scores([make_score(answers=None)], registry).scores[0]
        assert score.total_score == 0
        assert score.answered_count == 0
        assert not score.is_complete

    def test_complete_only_when_every_slot_answered(self, registry):
        full, partial = normalize_scores([
            make_score("S1", answers=0),
            make_score("S2", answers={f"q{i}": 2 for i in range(1, 11)}),
        ], registry).scores
        assert full.is_complete
        assert not partial.is_complete

    def test_invalid_slot_makes_score_incomplete(self, registry):
        answers = {**{f"q{i}": 1 for i in range(1, 11)}, "q11": "brilliant"}
        result = normalize_scores(
            [make_score(answers=answers)], registry, invalid_answer_policy="treat_as_missing",
        )
        assert not result.scores[0].is_complete


# ---------------------------------------------------------------------------
# Class: de-duplication
# ---------------------------------------------------------------------------

class TestDeduplication:

    def test_latest_timestamp_wins(self, registry):
        rows = [
            make_score("S1", "alice", answers=2, timestamp="2024-05-01T00:00:00Z", score_id="new"),
            make_score("S1", "alice", answers=0, timestamp="2024-01-01T00:00:00Z", score_id="old"),
        ]
        result = normalize_scores(rows, registry)
        assert [s.record.id for s in result.scores] == ["new"]
        assert result.diagnostics["duplicate_superseded"] == 1

    def test_input_order_breaks_ties(self, registry):
        rows = [
            make_score("S1", "alice", score_id="first"),
            make_score("S1", "alice", score_id="second"),
        ]
        result = normalize_scores(rows, registry)
        assert [s.record.id for s in result.scores] == ["second"]

    def test_undated_loses_to_dated(self, registry):
        rows = [
            make_score("S1", "alice", timestamp="2023-01-01T00:00:00Z", score_id="dated"),
            make_score("S1", "alice", timestamp=None, score_id="undated"),
        ]
        result = normalize_scores(rows, registry)
        assert [s.record.id for s in result.scores] == ["dated"]

    def test_different_raters_not_merged(self, registry):
        rows = [make_score("S1", "alice"), make_score("S1", "bob"), make_score("S2", "alice")]
        assert len(normalize_scores(rows, registry).scores) == 3
