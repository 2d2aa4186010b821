"""
Triage recommendation extraction.

The triage persona is asked to end up in one of three categories. This
module finds which one a reply settled on so the UI can badge it.
"""

import re
from enum import Enum


class Recommendation(Enum):
    HOME_REMEDY = "HOME REMEDY"
    DOCTOR_VISIT = "DOCTOR VISIT"
    EMERGENCY = "EMERGENCY"


RECOMMENDATION_LABELS: dict[Recommendation, str] = {
    Recommendation.HOME_REMEDY: "🟢 **Home remedy** — can likely be managed at home",
    Recommendation.DOCTOR_VISIT: "🟡 **Doctor visit** — get a professional evaluation",
    Recommendation.EMERGENCY: "🔴 **EMERGENCY** — seek immediate medical attention",
}

# "Recommendation: DOCTOR VISIT", "**Recommendation:** Emergency", ...
_EXPLICIT = re.compile(
    r"recommendation\W{0,6}(home\s+remed(?:y|ies)|doctor\s+visit|emergency)",
    re.IGNORECASE,
)
_ANY = re.compile(r"\b(HOME REMEDY|DOCTOR VISIT|EMERGENCY)\b")


def _normalize(label: str) -> Recommendation:
    label = " ".join(label.upper().split())
    if label.startswith("HOME"):
        return Recommendation.HOME_REMEDY
    if label.startswith("DOCTOR"):
        return Recommendation.DOCTOR_VISIT
    return Recommendation.EMERGENCY


def extract_recommendation(text: str) -> Recommendation | None:
    """
    Find the category a triage reply recommends.

    An explicit "Recommendation: X" line wins. Otherwise the most severe
    upper-case category mentioned is used, so a reply that lists all three
    while recommending an emergency is never read as a home remedy.
    """
    if not text:
        return None

    explicit = _EXPLICIT.search(text)
    if explicit:
        return _normalize(explicit.group(1))

    found = {_normalize(m.group(1)) for m in _ANY.finditer(text)}
    for level in (Recommendation.EMERGENCY, Recommendation.DOCTOR_VISIT, Recommendation.HOME_REMEDY):
        if level in found:
            return level
    return None
