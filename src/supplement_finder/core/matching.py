from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from supplement_finder.core.records import SupplementRecord

VITAMIN_LETTERS = frozenset({"b", "c", "d", "e", "k"})

# Single-letter vitamin queries. A record matches the letter only when its
# searchable text names that vitamin, so "b" finds Vitamin B6 but not
# Bilberry. B takes one or two digits, D and K a single digit; C and E
# only match "vitamin c" / "vitamin e".
_VITAMIN_LETTER_RULES: Dict[str, Tuple[Pattern[str], ...]] = {
    "b": (
        re.compile(r"\bvitamin\s*b(\b|[-\s]?\d{1,2}\b)", re.IGNORECASE | re.ASCII),
        re.compile(r"\bb[-\s]?\d{1,2}\b", re.IGNORECASE | re.ASCII),
    ),
    "c": (re.compile(r"\bvitamin\s*c\b", re.IGNORECASE | re.ASCII),),
    "d": (
        re.compile(r"\bvitamin\s*d(\b|[-\s]?\d\b)", re.IGNORECASE | re.ASCII),
        re.compile(r"\bd[-\s]?\d\b", re.IGNORECASE | re.ASCII),
    ),
    "e": (re.compile(r"\bvitamin\s*e\b", re.IGNORECASE | re.ASCII),),
    "k": (
        re.compile(r"\bvitamin\s*k(\b|[-\s]?\d\b)", re.IGNORECASE | re.ASCII),
        re.compile(r"\bk[-\s]?\d\b", re.IGNORECASE | re.ASCII),
    ),
}

_VITAMIN_CODE_QUERY_RE = re.compile(r"^(?:vitamin\s*)?([bdk])[-\s]?(\d{1,2})$", re.IGNORECASE)

COMBINED_SEPARATOR = " | "


def _is_digit(ch: str) -> bool:
    return len(ch) == 1 and "0" <= ch <= "9"


def starts_with_safe(candidate: str, q: str) -> bool:
    """
    Prefix match that keeps numbered items apart.

    When the query ends in a digit, the candidate must not continue with
    another digit: "b1" matches "b1 complex" but not "b12".
    """
    if not candidate or not q:
        return False
    if not candidate.startswith(q):
        return False
    if _is_digit(q[-1]):
        if _is_digit(candidate[len(q):len(q) + 1]):
            return False
    return True


def vitamin_regex_from_query(q: str) -> Optional[Pattern[str]]:
    """
    Regex for a vitamin code query like "B12", "d3", "k 2" or "vitamin b6".

    Returns None when the query is not a vitamin code.
    """
    m = _VITAMIN_CODE_QUERY_RE.match(str(q).strip())
    if not m:
        return None
    letter, num = m.group(1), m.group(2)
    return re.compile(
        rf"\b(?:vitamin\s*)?{letter}[-\s]?{num}\b",
        re.IGNORECASE | re.ASCII,
    )


def is_vitamin_letter_match(text: str, letter: str) -> bool:
    rules = _VITAMIN_LETTER_RULES.get(str(letter).lower())
    if not rules:
        return False
    t = str(text or "").lower()
    return any(rx.search(t) for rx in rules)


def search_fields(record: SupplementRecord) -> List[str]:
    """Lower-cased key, name, pretty key and aliases, in that order."""
    return [
        record.key.lower(),
        record.name.lower(),
        record.pretty_key.lower(),
        *(a.lower() for a in record.aliases),
    ]


def combined_search_text(record: SupplementRecord) -> str:
    return COMBINED_SEPARATOR.join(search_fields(record))


def matches_query(record: SupplementRecord, q: str, active_flags: Sequence[str] = ()) -> bool:
    """
    Text match of one record against a normalized (trimmed, lower-case) query.

    Order of checks:
      - empty query: everything matches
      - single vitamin letter (b, c, d, e, k): vitamin patterns only
      - any other single letter: too broad on its own, so it only passes
        when at least one indication flag is selected
      - otherwise: safe prefix on name, key, pretty key or any alias, then
        the vitamin code regex, then a substring of the mechanism text
    """
    if not q:
        return True

    if len(q) == 1:
        if q in VITAMIN_LETTERS:
            return is_vitamin_letter_match(combined_search_text(record), q)
        return len(active_flags) > 0

    key_l, name_l, pretty_l, *alias_l = search_fields(record)
    if (
        starts_with_safe(name_l, q)
        or starts_with_safe(key_l, q)
        or starts_with_safe(pretty_l, q)
        or any(starts_with_safe(a, q) for a in alias_l)
    ):
        return True

    vit_rx = vitamin_regex_from_query(q)
    if vit_rx is not None and vit_rx.search(combined_search_text(record)):
        return True

    return q in record.mechanism.lower()
