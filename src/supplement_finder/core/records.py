from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

from supplement_finder.config import SearchConfig
from supplement_finder.core.normalizer import prettify_key

TRUTHY_TOKENS = frozenset({"1", "true", "yes", "y", "x", "✓"})

_ALIAS_SPLIT_RE = re.compile(r"[;,]")


def as_bool(value: Any) -> bool:
    """Flag cell -> bool. Only the fixed truthy tokens count; empty/missing is False."""
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_TOKENS


def split_aliases(value: Any) -> List[str]:
    """Split an alias cell on ';' or ','. Order and duplicates are kept."""
    if not value:
        return []
    return [t.strip() for t in _ALIAS_SPLIT_RE.split(str(value)) if t.strip()]


@dataclass(frozen=True)
class SupplementRecord:
    """
    One row of the supplement table.

    The role columns named by SearchConfig are resolved once, at load time,
    into named attributes. Any other column stays reachable through get(),
    which returns "" for columns the row does not have.
    """
    key: str
    name: str
    pretty_key: str
    aliases: Tuple[str, ...]
    evidence_level: str
    cost: str
    mechanism: str
    flags: Mapping[str, bool] = field(compare=False)
    values: Mapping[str, str] = field(repr=False, compare=False)

    def get(self, column: str | None) -> str:
        if not column:
            return ""
        return self.values.get(column, "")

    def flag(self, column: str) -> bool:
        if column in self.flags:
            return self.flags[column]
        return as_bool(self.get(column))

    @property
    def active_flags(self) -> List[str]:
        return [col for col, on in self.flags.items() if on]

    @classmethod
    def from_row(cls, row: Mapping[str, Any], config: SearchConfig) -> "SupplementRecord":
        values: Dict[str, str] = {}
        for col, raw in row.items():
            values[str(col)] = "" if raw is None else str(raw)

        def cell(col: str | None) -> str:
            return values.get(col, "") if col else ""

        key = cell(config.key_col)
        return cls(
            key=key,
            name=cell(config.name_col),
            pretty_key=prettify_key(key),
            aliases=tuple(split_aliases(cell(config.alias_col))),
            evidence_level=cell(config.evidence_col),
            cost=cell(config.cost_col),
            mechanism=cell(config.mechanism_col),
            flags=MappingProxyType({col: as_bool(cell(col)) for col in config.flag_cols}),
            values=MappingProxyType(values),
        )
