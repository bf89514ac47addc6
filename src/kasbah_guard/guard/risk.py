"""Server-side risk scoring for content previews.

The extension runs its own scan before calling ``/decide``; that result is
only a hint. The authority re-scores whatever preview it receives with
:func:`score_text`, which is pure and never raises.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

Verdict = Literal["ALLOW", "REVIEW", "WARN"]

BASELINE_RISK = 10
SENSITIVE_PENALTY = 75
LARGE_MESSAGE_CHARS = 2500
LARGE_MESSAGE_PENALTY = 15
VERY_LARGE_MESSAGE_CHARS = 5000
VERY_LARGE_MESSAGE_PENALTY = 25

WARN_THRESHOLD = 85
REVIEW_THRESHOLD = 50

NO_ISSUES_REASON = "no issues detected"

# Matched against lowercased text, reported in this order.
SENSITIVE_MARKERS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (name, re.compile(pattern))
    for name, pattern in (
        ("password", r"password"),
        ("passwd", r"passwd"),
        ("secret", r"secret"),
        ("api_key", r"api_key"),
        ("apikey", r"apikey"),
        ("api-key", r"api-key"),
        ("access_key", r"access_key"),
        ("token", r"token"),
        ("bearer", r"\bbearer\s"),
        ("private key", r"-----begin (?:[a-z]+ )?private key-----"),
        ("sk-", r"\bsk-[a-z0-9]"),
        ("akia", r"\bakia[0-9a-z]{16}\b"),
        ("ghp_", r"\bgh[pousr]_[a-z0-9]"),
        ("xox", r"\bxox[bprs]-"),
        ("mongodb://", r"mongodb(?:\+srv)?://"),
        ("postgres://", r"postgres(?:ql)?://"),
        ("mysql://", r"mysql://"),
        ("redis://", r"rediss?://"),
    )
)


@dataclass(frozen=True)
class RiskAssessment:
    risk: int
    verdict: Verdict
    reason: str


def verdict_for(risk: int) -> Verdict:
    if risk >= WARN_THRESHOLD:
        return "WARN"
    if risk >= REVIEW_THRESHOLD:
        return "REVIEW"
    return "ALLOW"


def find_sensitive_markers(text: str) -> list[str]:
    """Return the catalogue names that occur in *text*, in catalogue order."""
    lowered = text.lower()
    return [name for name, pattern in SENSITIVE_MARKERS if pattern.search(lowered)]


def score_text(text: str | None) -> RiskAssessment:
    """Score a content preview.

    Sensitive markers add a single fixed penalty however many match. Length
    adds at most one of the two message-size penalties.
    """
    text = text or ""
    risk = BASELINE_RISK
    reasons: list[str] = []

    markers = find_sensitive_markers(text)
    if markers:
        risk += SENSITIVE_PENALTY
        reasons.append(f"sensitive pattern: {', '.join(markers)}")

    length = len(text)
    if length > VERY_LARGE_MESSAGE_CHARS:
        risk += VERY_LARGE_MESSAGE_PENALTY
        reasons.append(f"very large message ({length} chars)")
    elif length > LARGE_MESSAGE_CHARS:
        risk += LARGE_MESSAGE_PENALTY
        reasons.append(f"large message ({length} chars)")

    risk = max(0, min(100, risk))
    reason = "; ".join(reasons) if reasons else NO_ISSUES_REASON
    return RiskAssessment(risk=risk, verdict=verdict_for(risk), reason=reason)
