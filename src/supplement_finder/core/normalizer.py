from __future__ import annotations

import re
from typing import Any

# Whole-key vitamin canonicalization. B takes any number of digits,
# D and K a single digit only.
_VITAMIN_KEY_RULES = [
    (re.compile(r"^vitamin\s*b\s*([0-9]+)$", re.IGNORECASE), "Vitamin B{}"),
    (re.compile(r"^vitamin\s*d\s*([0-9])$", re.IGNORECASE), "Vitamin D{}"),
    (re.compile(r"^vitamin\s*k\s*([0-9])$", re.IGNORECASE), "Vitamin K{}"),
]

_COQ10_RE = re.compile(r"\bcoq\s*10\b", re.IGNORECASE)
_VITAMIN_CODE_TOKEN_RE = re.compile(r"^[bdk]\d+$", re.IGNORECASE)
_DIGITS_RE = re.compile(r"^\d+$")
_WHITESPACE_RE = re.compile(r"\s+")


def _normalize_text(x: Any) -> str:
    if x is None:
        return ""
    return str(x)


def _title_word(word: str) -> str:
    if _VITAMIN_CODE_TOKEN_RE.match(word):
        return word.upper()
    if _DIGITS_RE.match(word):
        return word
    if word.lower() == "and":
        return "and"
    return word[:1].upper() + word[1:]


def prettify_key(key: Any) -> str:
    """
    Make a supplement key user friendly.

      vitamin_b12         -> Vitamin B12
      coq10               -> CoQ10
      omega_3_fatty_acids -> Omega 3 Fatty Acids

    Pure and idempotent; empty input gives an empty string.
    """
    s = _WHITESPACE_RE.sub(" ", _normalize_text(key).replace("_", " ")).strip()
    if not s:
        return ""

    for pattern, template in _VITAMIN_KEY_RULES:
        m = pattern.match(s)
        if m:
            s = template.format(m.group(1))
            break

    s = _COQ10_RE.sub("CoQ10", s, count=1)

    return " ".join(_title_word(w) for w in s.split(" "))


def humanize_column(col: str) -> str:
    """level_of_evidence -> Level Of Evidence (label for a detail row)."""
    text = _normalize_text(col).replace("_", " ")
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), text)


def flag_label(flag_col: str) -> str:
    """anti_inflammatory_flag -> Anti inflammatory (badge text)."""
    text = _normalize_text(flag_col).replace("_flag", "", 1).replace("_", " ")
    return text[:1].upper() + text[1:]
