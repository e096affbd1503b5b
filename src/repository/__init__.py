"""
src/repository — Score repository contract and implementations.

Module layout
-------------
base.py   — ScoreRepository protocol, InMemoryRepository, concurrent fetch_inputs
files.py  — FileRepository over a directory of JSON / CSV exports

Public interface
----------------
    repository = FileRepository("data/")
    inputs = fetch_inputs(repository, timeout=30)
"""

from .base import (
    AnalyticsInputs,
    InMemoryRepository,
    ScoreRepository,
    fetch_inputs,
)
from .files import FileRepository

__all__ = [
    "ScoreRepository",
    "InMemoryRepository",
    "FileRepository",
    "AnalyticsInputs",
    "fetch_inputs",
]
