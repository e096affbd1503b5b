"""
Unit tests for src/repository.

Covers the in-memory and file-backed repositories (JSON and CSV, including
blank CSV cells and comma-separated study relations), missing inputs, and
the concurrent fetch with and without a deadline.
"""

from __future__ import annotations

import json
import threading

import pandas as pd
import pytest

from src.repository import FileRepository, InMemoryRepository, fetch_inputs
from src.scoring.normalizer import normalize_scores

from .conftest import make_reviewer, make_score, make_study


def _write_json(path, rows):
    path.write_text(json.dumps(rows), encoding="utf-8")


class TestInMemoryRepository:

    def test_returns_copies(self):
        repo = InMemoryRepository(scores=[make_score()])
        fetched = repo.fetch_scores()
        fetched.append({})
        assert len(repo.fetch_scores()) == 1


class TestFileRepository:

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FileRepository(tmp_path / "nope")

    def test_missing_collection(self, tmp_path):
        repo = FileRepository(tmp_path)
        with pytest.raises(FileNotFoundError):
            repo.fetch_scores()

    def test_json_list_and_results_wrapper(self, tmp_path):
        _write_json(tmp_path / "scores.json", [make_score()])
        _write_json(tmp_path / "studies.json", {"results": [make_study("S1")]})
        repo = FileRepository(tmp_path)
        assert repo.fetch_scores()[0]["raterAlias"] == "alice"
        assert repo.fetch_studies()[0]["id"] == "S1"

    def test_json_must_be_list(self, tmp_path):
        _write_json(tmp_path / "reviewers.json", {"alias": "alice"})
        with pytest.raises(ValueError):
            FileRepository(tmp_path).fetch_reviewers()

    def test_csv_blank_cells_become_none(self, tmp_path, registry):
        pd.DataFrame([
            {"id": "r1", "studyRelation": "S1, S7", "raterAlias": "alice", "rubricVersion": "V2",
             "q1": "2", "q2": "", "notes": "", "timestamp": "2024-01-02T00:00:00Z"},
            {"id": "r2", "studyRelation": "S1", "raterAlias": "bob", "rubricVersion": "V2",
             "q1": "High", "q2": "0", "notes": "", "timestamp": ""},
        ]).to_csv(tmp_path / "scores.csv", index=False)

        rows = FileRepository(tmp_path).fetch_scores()
        assert rows[0]["studyRelation"] == ["S1", "S7"]
        assert rows[0]["q2"] is None
        assert rows[1]["timestamp"] is None

        scores = normalize_scores(rows, registry).scores
        assert [s.total_score for s in scores] == [2, 2]
        assert all(s.study_id == "S1" for s in scores)

    def test_json_preferred_over_csv(self, tmp_path):
        _write_json(tmp_path / "studies.json", [make_study("from-json")])
        pd.DataFrame([{"id": "from-csv"}]).to_csv(tmp_path / "studies.csv", index=False)
        assert FileRepository(tmp_path).fetch_studies()[0]["id"] == "from-json"


class TestFetchInputs:

    def test_fetches_all_three(self):
        repo = InMemoryRepository(
            scores=[make_score()], studies=[make_study("S1")], reviewers=[make_reviewer("alice")],
        )
        inputs = fetch_inputs(repo)
        assert len(inputs.scores) == len(inputs.studies) == len(inputs.reviewers) == 1

    def test_repository_error_propagates(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            fetch_inputs(FileRepository(tmp_path))

    def test_timeout(self):
        release = threading.Event()

        class SlowRepository(InMemoryRepository):
            def fetch_studies(self):
                release.wait(5)
                return []

        try:
            with pytest.raises(TimeoutError):
                fetch_inputs(SlowRepository(), timeout=0.05)
        finally:
            release.set()
