from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from supplement_finder.config import SearchConfig
from supplement_finder.core.classifiers import (
    TIER_MODERATE,
    TIER_PRELIMINARY,
    TIER_STRONG,
    EvidenceClass,
    classify_evidence,
)
from supplement_finder.core.normalizer import flag_label
from supplement_finder.core.pipeline import SORT_EVIDENCE, Query, sort_records
from supplement_finder.core.records import SupplementRecord

# Dataset columns the coach reads besides the configured role columns
DOSAGE_COL = "suggested_dosage"
DIRECT_BENEFITS_COL = "direct_cognitive_benefits"
INDIRECT_BENEFITS_COL = "indirect_cognitive_benefits"
RISKS_COL = "potential_risks"
WHY_TOP_CHOICE_COL = "why_top_choice"
RECOMMENDED_BRAND_COL = "recommended_brand"

GROUP_SUMMARY_SIZE = 5

TRIAL_WINDOWS = {
    TIER_STRONG: "8–12 weeks",
    TIER_MODERATE: "6–8 weeks",
    TIER_PRELIMINARY: "4–6 weeks",
}

# Badge text (lower-cased) -> what to track during a trial
MONITOR_POINTS = {
    "sleep": "Sleep: sleep quality, latency, awakenings",
    "metabolic": "Metabolic: CGM variability, fasting glucose, waist circumference",
    "cardiovascular": "Cardiovascular: BP (home/ABPM), HRV, resting HR",
    "immune": "Immune/Inflammation: symptoms, illness days",
    "anti inflammatory": "Inflammation: hs-CRP (if available), joint pain, morning stiffness",
    "anti-inflammatory": "Inflammation: hs-CRP (if available), joint pain, morning stiffness",
}

DEFAULT_MONITOR_POINT = "Track relevant symptoms and simple cognitive tasks."


@dataclass
class CoachSummary:
    """
    CSV-only coaching summary for one supplement.

    Every field is either copied from the record or derived from it with a
    fixed rule; nothing here comes from a language model. The AI panel is a
    separate, optional layer on top of this.
    """
    title: str
    evidence: EvidenceClass
    level_text: str
    mechanisms: str
    dosage: str
    trial_window: str
    monitor: List[str]
    benefits: List[str]
    risks: str
    coach_tip: str
    recommended_brand: str


@dataclass
class GroupSummaryItem:
    title: str
    tier_label: str
    reason: str


@dataclass
class GroupSummary:
    """Top picks by evidence over the records currently shown."""
    context: str
    items: List[GroupSummaryItem]


def trial_window(tier: str) -> str:
    """Length of a time-boxed trial for an evidence tier."""
    return TRIAL_WINDOWS.get(tier, TRIAL_WINDOWS[TIER_PRELIMINARY])


def monitoring_plan(record: SupplementRecord, config: SearchConfig) -> List[str]:
    """
    Monitoring points for the record's true indication flags, in flag order.

    Falls back to a single generic point when no flag maps to one.
    """
    points: List[str] = []
    for col in config.flag_cols:
        if not record.flag(col):
            continue
        point = MONITOR_POINTS.get(flag_label(col).lower())
        if point and point not in points:
            points.append(point)
    return points or [DEFAULT_MONITOR_POINT]


def build_coach_summary(record: SupplementRecord, config: SearchConfig) -> CoachSummary:
    evidence = classify_evidence(record.evidence_level)
    direct = record.get(DIRECT_BENEFITS_COL).strip()
    indirect = record.get(INDIRECT_BENEFITS_COL).strip()

    return CoachSummary(
        title=record.pretty_key,
        evidence=evidence,
        level_text=record.evidence_level.strip(),
        mechanisms=record.mechanism.strip(),
        dosage=record.get(DOSAGE_COL).strip(),
        trial_window=trial_window(evidence.tier),
        monitor=monitoring_plan(record, config),
        benefits=[b for b in (direct, indirect) if b],
        risks=record.get(RISKS_COL).strip(),
        coach_tip=record.get(WHY_TOP_CHOICE_COL).strip(),
        recommended_brand=record.get(RECOMMENDED_BRAND_COL).strip(),
    )


def _summary_context(query: Query) -> str:
    if query.flags:
        return "selected indication(s)"
    if query.text:
        return "current search"
    return "current view"


def build_group_summary(
    records: Sequence[SupplementRecord],
    query: Query,
    limit: int = GROUP_SUMMARY_SIZE,
) -> GroupSummary:
    """
    Summarize the strongest picks among `records`.

    Records are ordered by evidence score, then name, whatever sort the
    result list itself uses. Each pick carries the brand's "why top choice"
    text, else the direct benefits, else the raw evidence text.
    """
    items: List[GroupSummaryItem] = []
    for r in sort_records(records, SORT_EVIDENCE)[: max(0, limit)]:
        reason = (
            r.get(WHY_TOP_CHOICE_COL).strip()
            or r.get(DIRECT_BENEFITS_COL).strip()
            or r.evidence_level.strip()
        )
        items.append(
            GroupSummaryItem(
                title=r.pretty_key,
                tier_label=classify_evidence(r.evidence_level).label,
                reason=reason,
            )
        )
    return GroupSummary(context=_summary_context(query), items=items)
