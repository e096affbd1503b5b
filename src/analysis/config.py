"""
Analysis-layer configuration: agreement thresholds, interpretation bands,
summary bands, and output paths.

Centralizes constants shared by the Cohen, Fleiss and ICC calculators and
the summary builder.
"""

from pathlib import Path

from config.rubric_tables import QUALITY_TIER_BANDS

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[2]

DATA_DIR    = PROJECT_ROOT / "data"
RESULTS_DIR = PROJECT_ROOT / "results"

REPORT_FILENAME = "irr_report.json"

# ---------------------------------------------------------------------------
# Cohen's kappa (pairwise)
# ---------------------------------------------------------------------------

# "per_question": items are (shared study, question slot) answer tokens
# "total"       : items are shared studies compared on exact total score
COMPARISON_BASES: tuple[str, ...] = ("per_question", "total")
DEFAULT_COMPARISON_BASIS = "per_question"

# ---------------------------------------------------------------------------
# Fleiss' kappa (multi-rater, per question)
# ---------------------------------------------------------------------------

# A question's kappa needs at least this many articles with ≥2 answers.
FLEISS_MIN_ARTICLES: int = 2

# Kappas over fewer qualifying articles are reported but flagged.
FLEISS_LOW_CONFIDENCE_BELOW: int = 5

# ---------------------------------------------------------------------------
# ICC (continuous reliability over total scores)
# ---------------------------------------------------------------------------

ICC_MIN_ARTICLES: int = 2
ICC_MODEL = "ICC(1) one-way random, harmonic-mean k"

# ---------------------------------------------------------------------------
# Interpretation bands (Landis & Koch, shared by kappa and ICC)
# ---------------------------------------------------------------------------
#
# A value strictly above the threshold takes the label; ordered highest first.

INTERPRETATION_BANDS: list[tuple[float, str]] = [
    (0.81, "Almost Perfect"),
    (0.61, "Substantial"),
    (0.41, "Moderate"),
    (0.21, "Fair"),
]
INTERPRETATION_FLOOR = "Slight"
UNDEFINED_INTERPRETATION = "N/A"

# ---------------------------------------------------------------------------
# Article consensus (max − min total score among an article's raters)
# ---------------------------------------------------------------------------

CONSENSUS_BANDS: list[tuple[int, str]] = [
    (3, "Consensus"),
    (6, "Moderate Spread"),
]
CONSENSUS_CEILING = "Conflicted"

# ---------------------------------------------------------------------------
# Reviewer bias (mean total vs. the global mean, in percent)
# ---------------------------------------------------------------------------

BIAS_THRESHOLD_PCT: float = 5.0

# ---------------------------------------------------------------------------
# Quality tiers over total score (authoritative copy in config/)
# ---------------------------------------------------------------------------

TIER_BANDS: list[tuple[str, int]] = QUALITY_TIER_BANDS

# ---------------------------------------------------------------------------
# Score distributions
# ---------------------------------------------------------------------------

# Total-score histogram bins are this many points wide, from 0 up to the
# rubric's maximum total (the last bin is closed).
SCORE_HISTOGRAM_BIN_WIDTH: int = 2

# ---------------------------------------------------------------------------
# Display rounding
# ---------------------------------------------------------------------------

VALUE_DECIMALS: int = 3
PERCENT_DECIMALS: int = 1
QUESTION_MEAN_DECIMALS: int = 2
