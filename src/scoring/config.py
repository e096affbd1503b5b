"""
Scoring-layer configuration: exclusion markers, answer parsing patterns,
and normalization parameters.

All constants used by the rubric model and the score normalizer are
centralized here so that configuration is separated from logic.
"""

import re

from config.rubric_tables import (
    DEFAULT_RUBRIC_VERSION,
    QUALITY_TIER_BANDS,
    RUBRIC_TABLES,
)

# ---------------------------------------------------------------------------
# Rubric tables (re-exported from the authoritative config package)
# ---------------------------------------------------------------------------

__all__ = [
    "DEFAULT_RUBRIC_VERSION",
    "QUALITY_TIER_BANDS",
    "RUBRIC_TABLES",
]

# ---------------------------------------------------------------------------
# Record exclusion
# ---------------------------------------------------------------------------

# A score whose notes contain any of these markers (case-insensitive) is
# test or calibration data and never enters the analytics.
EXCLUSION_MARKERS: list[str] = ["[TEST]", "[CALIBRATION]"]

# Label used in version breakdowns for records with a blank version.
UNKNOWN_VERSION_LABEL = "Unknown"

# ---------------------------------------------------------------------------
# Invalid answer handling
# ---------------------------------------------------------------------------
#
#   "drop_record"     : a record with any unresolvable answer is dropped
#                        from every aggregate and counted in diagnostics
#   "treat_as_missing": the record is kept; the invalid slot is excluded
#                        from aggregates exactly like a missing answer

INVALID_ANSWER_POLICIES: frozenset[str] = frozenset({"drop_record", "treat_as_missing"})
INVALID_ANSWER_POLICY = "drop_record"

# ---------------------------------------------------------------------------
# Select-value parsing
# ---------------------------------------------------------------------------

# Document-store select values look like
#   "2 - High: Method of randomization identified; ..."           (V1)
#   "1 — Moderate [V2]: Basic randomization method stated ..."    (V2)
SELECT_VALUE_PATTERN = re.compile(
    r"^\s*(?P<score>\d)\s*[-–—]\s*(?P<tier>[A-Za-z]+)(?:\s*\[(?P<version>V\d+)\])?"
)

# Any "[Vn]" marker anywhere in a raw value.
VERSION_MARKER_PATTERN = re.compile(r"\[(V\d+)\]")

# ---------------------------------------------------------------------------
# Diagnostics keys (counted by the normalizer)
# ---------------------------------------------------------------------------

DIAGNOSTIC_KEYS: list[str] = [
    "malformed_record",
    "excluded_marker",
    "version_filtered",
    "missing_study",
    "missing_rater",
    "unknown_rubric_version",
    "invalid_answer",
    "invalid_answer_slot",
    "duplicate_superseded",
]
