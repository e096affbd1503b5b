"""
Rubric tables for the RCT quality scoring instrument.

This is the AUTHORITATIVE source for rubric versions. src/scoring/rubric.py
builds its typed RubricRegistry from these tables — do not maintain
parallel copies.

V1 — original rubric (frozen; matches the production select values).
V2 — data-driven revision from the validation study. Question ids and the
     0/1/2 point scale are unchanged; descriptions and answer criteria were
     rewritten, and every V2 select value carries a "[V2]" marker.

Option scale (both versions):
    token       tier        score
    "high"      High        2
    "moderate"  Moderate    1
    "low"       Low         0
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Version registry
# ---------------------------------------------------------------------------

# New scores are written against V2; blank versions resolve here.
DEFAULT_RUBRIC_VERSION: str = "V2"

# ---------------------------------------------------------------------------
# Shared option scale
# ---------------------------------------------------------------------------
#
# Fields:
#   token:  canonical answer token (stable across versions)
#   tier:   display tier, also accepted as an answer spelling
#   label:  short display label ("2 — High")
#   score:  integer point value

STANDARD_OPTIONS: list[dict] = [
    {"token": "high",     "tier": "High",     "label": "2 — High",     "score": 2},
    {"token": "moderate", "tier": "Moderate", "label": "1 — Moderate", "score": 1},
    {"token": "low",      "tier": "Low",      "label": "0 — Low",      "score": 0},
]

# ---------------------------------------------------------------------------
# Question labels (identical in V1 and V2)
# ---------------------------------------------------------------------------

QUESTION_LABELS: dict[str, str] = {
    "q1":  "Research Question",
    "q2":  "Randomization",
    "q3":  "Blinding",
    "q4":  "Sample Size",
    "q5":  "Baseline Characteristics",
    "q6":  "Participant Flow",
    "q7":  "Intervention Description",
    "q8":  "Outcome Measurement",
    "q9":  "Statistical Analysis",
    "q10": "Bias Assessment",
    "q11": "Applicability",
}

# ---------------------------------------------------------------------------
# V1: original rubric (frozen)
# ---------------------------------------------------------------------------

_V1_DESCRIPTIONS: dict[str, str] = {
    "q1":  "Is the research question clearly formulated with population, "
           "intervention, comparator, and outcomes?",
    "q2":  "Was the method of randomization adequately described and properly "
           "implemented?",
    "q3":  "Was the blinding of participants, providers, and outcome assessors "
           "adequate?",
    "q4":  "Was an a priori power calculation performed and was the sample "
           "size adequate?",
    "q5":  "Were baseline characteristics clearly described and groups "
           "comparable?",
    "q6":  "Was participant flow (attrition, dropouts) adequately described?",
    "q7":  "Were the experimental and control interventions adequately "
           "described?",
    "q8":  "Were validated, reliable outcome measures used with appropriate "
           "timing?",
    "q9":  "Was the statistical analysis plan comprehensive and appropriate?",
    "q10": "Was the risk of bias comprehensively assessed and mitigated?",
    "q11": "Does the study have strong external validity and clear clinical "
           "significance?",
}

# ---------------------------------------------------------------------------
# V2: validation-study revision
# ---------------------------------------------------------------------------

_V2_DESCRIPTIONS: dict[str, str] = {
    "q1":  "Is the research question clearly formulated with population, "
           "intervention, comparator, and outcomes (PICO)?",
    "q2":  "Was the method of randomization adequately described and properly "
           "implemented, including allocation concealment?",
    "q3":  "Was the blinding of participants, providers, and outcome assessors "
           "adequate?",
    "q4":  "Was an a priori power calculation performed and was the sample "
           "size adequate?",
    "q5":  "Were baseline characteristics clearly described with "
           "inclusion/exclusion criteria, tabulated comparison, and group "
           "equivalence?",
    "q6":  "Was participant flow (attrition, dropouts) adequately described "
           "with quantified thresholds?",
    "q7":  "Were the experimental and control interventions adequately "
           "described across five key components?",
    "q8":  "Were validated, reliable outcome measures used with replicable "
           "procedures and justified timing?",
    "q9":  "Was the statistical analysis plan comprehensive with effect sizes, "
           "confidence intervals, and appropriate methods?",
    "q10": "Did the authors assess and discuss specific types of bias using a "
           "structured framework?",
    "q11": "Does the study address external validity across population "
           "representativeness, intervention feasibility, and outcome "
           "relevance?",
}


def _questions(descriptions: dict[str, str]) -> list[dict]:
    return [
        {
            "id": qid,
            "label": QUESTION_LABELS[qid],
            "description": description,
            "options": [dict(option) for option in STANDARD_OPTIONS],
        }
        for qid, description in descriptions.items()
    ]


RUBRIC_TABLES: dict[str, list[dict]] = {
    "V1": _questions(_V1_DESCRIPTIONS),
    "V2": _questions(_V2_DESCRIPTIONS),
}

# ---------------------------------------------------------------------------
# Quality tiers over the 0–22 total score (11 questions × 2 points)
# ---------------------------------------------------------------------------
#
# Ordered highest first; a total falls in the first band whose minimum it
# meets or exceeds.

QUALITY_TIER_BANDS: list[tuple[str, int]] = [
    ("High", 17),
    ("Moderate", 11),
    ("Low", 0),
]
