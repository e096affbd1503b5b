"""
AgreementResult: a named statistic plus the sample it was computed over.

A result is either *defined* (``value`` is a float) or *undefined*
(``value`` is None and ``reason`` says why). Undefined is never folded
into 0 or 1:

    insufficient_sample   — fewer raters/articles than the statistic needs
    degenerate_variance   — chance agreement is 1 (or the ICC denominator is 0)
    no_comparable_items   — the raters share subjects but no answered items
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import (
    INTERPRETATION_BANDS,
    INTERPRETATION_FLOOR,
    UNDEFINED_INTERPRETATION,
    VALUE_DECIMALS,
)

INSUFFICIENT_SAMPLE = "insufficient_sample"
DEGENERATE_VARIANCE = "degenerate_variance"
NO_COMPARABLE_ITEMS = "no_comparable_items"


def interpret_agreement(value: float | None) -> str:
    """Landis & Koch label for a kappa or ICC value."""
    if value is None:
        return UNDEFINED_INTERPRETATION
    for threshold, label in INTERPRETATION_BANDS:
        if value > threshold:
            return label
    return INTERPRETATION_FLOOR


def _round(value, decimals: int = VALUE_DECIMALS):
    if isinstance(value, float):
        return round(value, decimals)
    return value


@dataclass(frozen=True)
class AgreementResult:
    statistic: str
    value: float | None
    n: int
    reason: str | None = None
    low_confidence: bool = False
    details: dict = field(default_factory=dict)

    @classmethod
    def undefined(cls, statistic: str, n: int, reason: str, **details) -> AgreementResult:
        return cls(statistic=statistic, value=None, n=n, reason=reason, details=details)

    @property
    def is_defined(self) -> bool:
        return self.value is not None

    @property
    def interpretation(self) -> str:
        return interpret_agreement(self.value)

    def to_dict(self) -> dict:
        """JSON-ready form; ``value`` is rounded for display, details are merged in."""
        out = {
            "statistic": self.statistic,
            "value": _round(self.value),
            "n": self.n,
            "defined": self.is_defined,
            "reason": self.reason,
            "lowConfidence": self.low_confidence,
            "interpretation": self.interpretation,
        }
        for key, value in self.details.items():
            out[key] = _round(value)
        return out
