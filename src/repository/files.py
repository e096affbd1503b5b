"""
File-backed repository: one file per collection in a data directory.

    <data_dir>/scores.json     or  scores.csv
    <data_dir>/studies.json    or  studies.csv
    <data_dir>/reviewers.json  or  reviewers.csv

JSON files hold a list of objects (or ``{"results": [...]}``, the shape the
platform's document store exports). CSV files are read with pandas; empty
cells become ``None`` and a ``studyRelation`` column may hold a
comma-separated list of ids.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)

COLLECTIONS = ("scores", "studies", "reviewers")
SUPPORTED_SUFFIXES = (".json", ".csv")


def _read_json(path: Path) -> list[dict]:
    with path.open(encoding="utf-8") as fh:
        payload = json.load(fh)
    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        payload = payload["results"]
    if not isinstance(payload, list):
        raise ValueError(f"{path.name}: expected a list of records, got {type(payload).__name__}")
    return payload


def _read_csv(path: Path) -> list[dict]:
    df = pd.read_csv(path, dtype=str)
    rows = df.astype(object).where(df.notna(), None).to_dict(orient="records")
    for row in rows:
        relation = row.get("studyRelation")
        if isinstance(relation, str):
            row["studyRelation"] = [part.strip() for part in relation.split(",") if part.strip()]
    return rows


class FileRepository:
    """
    Repository reading the three collections from ``data_dir``.

    Raises:
        FileNotFoundError: ``data_dir`` does not exist, or a collection has
            neither a ``.json`` nor a ``.csv`` file.
    """

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)
        if not self.data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {self.data_dir}")

    def _path_for(self, collection: str) -> Path:
        for suffix in SUPPORTED_SUFFIXES:
            path = self.data_dir / f"{collection}{suffix}"
            if path.exists():
                return path
        raise FileNotFoundError(
            f"No {collection}.json or {collection}.csv in {self.data_dir}"
        )

    def _load(self, collection: str) -> list[dict]:
        path = self._path_for(collection)
        rows = _read_json(path) if path.suffix == ".json" else _read_csv(path)
        logger.info("Loaded %s: %d rows from %s", collection, len(rows), path.name)
        return rows

    def fetch_scores(self) -> list[dict]:
        return self._load("scores")

    def fetch_studies(self) -> list[dict]:
        return self._load("studies")

    def fetch_reviewers(self) -> list[dict]:
        return self._load("reviewers")
