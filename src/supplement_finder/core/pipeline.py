from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from supplement_finder.config import SearchConfig
from supplement_finder.core.classifiers import EVIDENCE_TIERS, classify_evidence
from supplement_finder.core.matching import matches_query
from supplement_finder.core.records import SupplementRecord

logger = logging.getLogger(__name__)

EVIDENCE_FILTER_ALL = "all"
EVIDENCE_FILTERS = (EVIDENCE_FILTER_ALL,) + EVIDENCE_TIERS

SORT_EVIDENCE = "evidence"
SORT_AZ = "az"
SORT_MODES = (SORT_EVIDENCE, SORT_AZ)


@dataclass(frozen=True)
class Query:
    """
    One search request, rebuilt from the controls on every change.

      text      trimmed, lower-cased search box contents
      flags     selected flag columns (all must be true on a record)
      evidence  'all' | 'strong' | 'moderate' | 'preliminary'
      sort      'evidence' (score desc, then name) | 'az'
    """
    text: str = ""
    flags: Tuple[str, ...] = ()
    evidence: str = EVIDENCE_FILTER_ALL
    sort: str = SORT_EVIDENCE

    @classmethod
    def from_inputs(
        cls,
        text: Optional[str] = "",
        flags: Iterable[str] = (),
        evidence: Optional[str] = EVIDENCE_FILTER_ALL,
        sort: Optional[str] = SORT_EVIDENCE,
    ) -> "Query":
        ev = (evidence or EVIDENCE_FILTER_ALL).strip().lower()
        if ev not in EVIDENCE_FILTERS:
            logger.warning("Unknown evidence filter %r; showing all tiers.", evidence)
            ev = EVIDENCE_FILTER_ALL

        mode = (sort or SORT_EVIDENCE).strip().lower()
        if mode not in SORT_MODES:
            logger.warning("Unknown sort mode %r; sorting by evidence.", sort)
            mode = SORT_EVIDENCE

        return cls(
            text=(text or "").strip().lower(),
            flags=tuple(f for f in flags if f),
            evidence=ev,
            sort=mode,
        )

    @property
    def is_idle(self) -> bool:
        """Nothing typed and no indication chosen: the UI shows a prompt instead of results."""
        return not self.text and not self.flags


def flags_satisfied(record: SupplementRecord, selected: Sequence[str]) -> bool:
    """AND across the selected flag columns; no selection always passes."""
    return all(record.flag(col) for col in selected)


def _collation_key(text: str) -> str:
    """Accent- and case-insensitive form: 'Échinacea' sorts with 'echinacea'."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def _name_key(record: SupplementRecord) -> Tuple[str, str]:
    return (_collation_key(record.pretty_key), record.pretty_key)


def sort_records(records: Iterable[SupplementRecord], mode: str = SORT_EVIDENCE) -> List[SupplementRecord]:
    if mode == SORT_AZ:
        return sorted(records, key=_name_key)
    return sorted(
        records,
        key=lambda r: (-classify_evidence(r.evidence_level).score, _name_key(r)),
    )


def rank_records(
    records: Sequence[SupplementRecord],
    config: SearchConfig,
    query: Query,
) -> List[SupplementRecord]:
    """
    Filter and order records for display.

    Stages, in order:
      1. text match and flag filter
      2. evidence tier filter (unless 'all')
      3. sort

    The returned order is what the cards show. Same inputs give the same list.
    """
    unknown = [f for f in query.flags if f not in config.flag_cols]
    if unknown:
        logger.debug("Filtering on columns outside flag_cols: %s", unknown)

    matched = [
        r for r in records
        if matches_query(r, query.text, query.flags) and flags_satisfied(r, query.flags)
    ]

    if query.evidence in EVIDENCE_TIERS:
        matched = [r for r in matched if classify_evidence(r.evidence_level).tier == query.evidence]

    ordered = sort_records(matched, query.sort)
    logger.debug(
        "Ranked %s of %s records (text=%r, flags=%s, evidence=%s, sort=%s)",
        len(ordered), len(records), query.text, list(query.flags), query.evidence, query.sort,
    )
    return ordered
