"""
Score repository contract and concurrent input fetch.

A repository yields three materialized collections of plain dicts: score
rows, study rows and reviewer rows. How they are stored or transported is
the repository's business; the analytics engine only sees the lists.

The three collections are independent, so ``fetch_inputs`` requests them in
parallel. Any deadline applies to this fetch step only. Once the inputs are
in memory the computation is synchronous and bounded.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)

FETCH_MAX_WORKERS = 3


class ScoreRepository(Protocol):
    def fetch_scores(self) -> list[dict]: ...

    def fetch_studies(self) -> list[dict]: ...

    def fetch_reviewers(self) -> list[dict]: ...


@dataclass
class InMemoryRepository:
    """Repository over lists already held in memory (tests, notebooks)."""

    scores: list[dict] = field(default_factory=list)
    studies: list[dict] = field(default_factory=list)
    reviewers: list[dict] = field(default_factory=list)

    def fetch_scores(self) -> list[dict]:
        return list(self.scores)

    def fetch_studies(self) -> list[dict]:
        return list(self.studies)

    def fetch_reviewers(self) -> list[dict]:
        return list(self.reviewers)


@dataclass(frozen=True)
class AnalyticsInputs:
    scores: list[dict]
    studies: list[dict]
    reviewers: list[dict]


def fetch_inputs(
    repository: ScoreRepository,
    max_workers: int = FETCH_MAX_WORKERS,
    timeout: float | None = None,
) -> AnalyticsInputs:
    """
    Fetch scores, studies and reviewers concurrently.

    Args:
        repository: Any object implementing :class:`ScoreRepository`.
        max_workers: Thread pool size.
        timeout: Seconds to wait for all three collections; ``None`` waits
            indefinitely.

    Returns:
        AnalyticsInputs with the three collections.

    Raises:
        TimeoutError: The fetch did not finish within ``timeout``.
        Exception: Whatever the repository raised (e.g. FileNotFoundError).
    """
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = {
            "scores": executor.submit(repository.fetch_scores),
            "studies": executor.submit(repository.fetch_studies),
            "reviewers": executor.submit(repository.fetch_reviewers),
        }
        _, pending = concurrent.futures.wait(futures.values(), timeout=timeout)
        if pending:
            raise TimeoutError(f"Repository fetch did not finish within {timeout}s")
        results = {name: future.result() for name, future in futures.items()}
    finally:
        # A timed-out fetch is abandoned, not joined.
        executor.shutdown(wait=False, cancel_futures=True)

    logger.info(
        "Fetched %d scores, %d studies, %d reviewers",
        len(results["scores"]), len(results["studies"]), len(results["reviewers"]),
    )
    return AnalyticsInputs(**results)
