from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Sequence

from supplement_finder.config import SearchConfig
from supplement_finder.core.classifiers import CostClass, EvidenceClass, classify_cost, classify_evidence
from supplement_finder.core.normalizer import flag_label, humanize_column
from supplement_finder.core.pipeline import Query
from supplement_finder.core.records import SupplementRecord

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

SUBTITLE_SEPARATOR = " • "
NO_FLAGS_TEXT = "None flagged"


@dataclass(frozen=True)
class DetailRow:
    label: str
    value: str
    is_link: bool = False


@dataclass(frozen=True)
class CardView:
    """Everything a result card shows, derived from one record."""
    title: str
    subtitle: str
    badges: List[str]
    details: List[DetailRow]
    brands: List[DetailRow]
    indications: str
    evidence: EvidenceClass
    cost: CostClass


def detail_row(column: str, value: str) -> DetailRow:
    val = (value or "").strip()
    return DetailRow(label=humanize_column(column), value=val, is_link=bool(_URL_RE.match(val)))


def badges_for(record: SupplementRecord, config: SearchConfig) -> List[str]:
    return [flag_label(col) for col in config.flag_cols if record.flag(col)]


def subtitle_for(record: SupplementRecord) -> str:
    parts: List[str] = []
    if record.name and record.name.lower() != record.pretty_key.lower():
        parts.append(record.name)
    if record.aliases:
        parts.append("Aliases: " + ", ".join(record.aliases))
    return SUBTITLE_SEPARATOR.join(parts)


def indications_text(record: SupplementRecord, config: SearchConfig, badges: Sequence[str]) -> str:
    override = record.get(config.indications_display_col)
    if override:
        return override
    return ", ".join(badges) or NO_FLAGS_TEXT


def build_card(record: SupplementRecord, config: SearchConfig) -> CardView:
    badges = badges_for(record, config)
    return CardView(
        title=record.pretty_key,
        subtitle=subtitle_for(record),
        badges=badges,
        details=[detail_row(col, record.get(col)) for col in config.detail_cols],
        brands=[detail_row(col, record.get(col)) for col in config.brand_cols],
        indications=indications_text(record, config, badges),
        evidence=classify_evidence(record.evidence_level),
        cost=classify_cost(record.cost),
    )


def status_message(results: Sequence[SupplementRecord], query: Query) -> str:
    if query.is_idle:
        return "Type at least 1 letter or choose an indication to begin."
    if not results:
        return "No matches. Adjust your search or indications."
    n = len(results)
    return f"{n} match{'' if n == 1 else 'es'}."
