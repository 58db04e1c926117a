from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

# ---------------------------------------------------------------------------
# Evidence tier
# ---------------------------------------------------------------------------

TIER_STRONG = "strong"
TIER_MODERATE = "moderate"
TIER_PRELIMINARY = "preliminary"

EVIDENCE_TIERS = (TIER_STRONG, TIER_MODERATE, TIER_PRELIMINARY)

TIER_LABELS = {
    TIER_STRONG: "Strong",
    TIER_MODERATE: "Moderate",
    TIER_PRELIMINARY: "Preliminary",
}


@dataclass(frozen=True)
class EvidenceClass:
    tier: str
    score: int
    label: str


def _evidence(tier: str, score: int) -> EvidenceClass:
    return EvidenceClass(tier=tier, score=score, label=TIER_LABELS[tier])


# Ordered (pattern, result) pairs; the first pattern found in the
# lower-cased text wins.
EVIDENCE_RULES: List[Tuple[re.Pattern, EvidenceClass]] = [
    (re.compile(r"meta-?analy|systematic"), _evidence(TIER_STRONG, 3)),
    (re.compile(r"strong|high|grade a"), _evidence(TIER_STRONG, 3)),
    (re.compile(r"moderate|grade b"), _evidence(TIER_MODERATE, 2)),
    (re.compile(r"limited|mixed|low|grade c"), _evidence(TIER_PRELIMINARY, 1)),
]

# Empty text sorts below everything else but shows as Preliminary
EVIDENCE_EMPTY = _evidence(TIER_PRELIMINARY, 0)
EVIDENCE_DEFAULT = _evidence(TIER_PRELIMINARY, 1)


def classify_evidence(level_text: Any) -> EvidenceClass:
    """
    Map a free-text level-of-evidence field to a tier and sort score.

      "Multiple meta-analyses" -> strong (3)
      "Grade B evidence"       -> moderate (2)
      "Preliminary/limited"    -> preliminary (1)
      ""                       -> preliminary (0)
    """
    s = "" if level_text is None else str(level_text).strip().lower()
    if not s:
        return EVIDENCE_EMPTY
    for pattern, result in EVIDENCE_RULES:
        if pattern.search(s):
            return result
    return EVIDENCE_DEFAULT


# ---------------------------------------------------------------------------
# Cost band
# ---------------------------------------------------------------------------

COST_LABELS = {
    "": "",
    "$": "Low cost",
    "$$": "Moderate cost",
    "$$$": "High cost",
}


@dataclass(frozen=True)
class CostClass:
    band: str
    label: str


def _cost(band: str) -> CostClass:
    return CostClass(band=band, label=COST_LABELS[band])


# First number in the text. Thousands separators are commas only, so
# "$15 100 caps" reads as 15. A bare leading decimal (".99") is allowed.
_NUMBER_RE = re.compile(r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d*\.?\d+")


def _first_number(text: str) -> Optional[float]:
    m = _NUMBER_RE.search(text)
    if not m:
        return None
    return float(m.group(0).replace(",", ""))


def _band_for_amount(amount: float) -> str:
    if amount < 20:
        return "$"
    if amount <= 50:
        return "$$"
    return "$$$"


def _dollar_run(s: str) -> Optional[str]:
    if "$$$" in s:
        return "$$$"
    if "$$" in s:
        return "$$"
    return None


def _amount_band(s: str) -> Optional[str]:
    amount = _first_number(s)
    if amount is None:
        return None
    return _band_for_amount(amount)


# Tried in order; each returns a band or None
COST_RULES: List[Callable[[str], Optional[str]]] = [
    _dollar_run,
    _amount_band,
]


def classify_cost(cost_text: Any) -> CostClass:
    """
    Map a free-text cost field to $, $$ or $$$.

      "$$"        -> $$
      "$45"       -> $$
      "$15/month" -> $
      ""          -> "" (not shown)
    """
    s = "" if cost_text is None else str(cost_text).strip()
    if not s:
        return _cost("")
    for rule in COST_RULES:
        band = rule(s)
        if band is not None:
            return _cost(band)
    return _cost("$")
