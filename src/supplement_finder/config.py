from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

# Root of the project (repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Data directories
DATA_DIR = PROJECT_ROOT / "data"

# The supplement table. May also be an http(s) URL.
MASTER_CSV_PATH = os.getenv("SUPPLEMENT_CSV_PATH", str(DATA_DIR / "master.csv")).strip()

# Optional JSON file overriding the column roles below
SEARCH_CONFIG_PATH = os.getenv("SUPPLEMENT_SEARCH_CONFIG", "").strip()

# ---------------------------------------------------------------------------
# App identity
# ---------------------------------------------------------------------------

APP_NAME = "Brain Health Supplement Finder"
APP_VERSION = "0.1.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

# ---------------------------------------------------------------------------
# Coaching text (optional)
#
# The AI panel is off unless ENABLE_LLM_COACH is set. Without an API key the
# client answers with reason NO_API_KEY and the UI falls back to the CSV-only
# coach summary.
# ---------------------------------------------------------------------------

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_CHAT_COMPLETIONS_URL = os.getenv(
    "OPENAI_CHAT_COMPLETIONS_URL",
    "https://api.openai.com/v1/chat/completions",
).strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
COACH_TIMEOUT_SECONDS = int(os.getenv("COACH_TIMEOUT_SECONDS", "8"))
ENABLE_LLM_COACH = os.getenv("ENABLE_LLM_COACH", "").strip().lower() in {"1", "true", "yes"}


class ConfigError(Exception):
    """Raised when the search configuration file is malformed."""


# ---------------------------------------------------------------------------
# Column roles
#
# Which CSV columns play which part in search, filtering and display.
# Defaults match data/master.csv; a JSON file with camelCase keys
# (keyCol, flagCols, ...) can override any of them.
# ---------------------------------------------------------------------------

DEFAULT_FLAG_COLS: Tuple[str, ...] = (
    "sleep_flag",
    "metabolic_flag",
    "cardiovascular_flag",
    "immune_flag",
    "anti_inflammatory_flag",
)

DEFAULT_DETAIL_COLS: Tuple[str, ...] = (
    "level_of_evidence",
    "mechanisms",
    "direct_cognitive_benefits",
    "indirect_cognitive_benefits",
    "suggested_dosage",
    "potential_risks",
    "source_url",
)

DEFAULT_BRAND_COLS: Tuple[str, ...] = (
    "recommended_brand",
    "why_top_choice",
    "cost",
    "brand_url",
)


@dataclass(frozen=True)
class SearchConfig:
    key_col: str = "supplement_key"
    name_col: str = "supplement_name"
    alias_col: str = "aliases"
    flag_cols: Tuple[str, ...] = DEFAULT_FLAG_COLS
    detail_cols: Tuple[str, ...] = DEFAULT_DETAIL_COLS
    brand_cols: Tuple[str, ...] = DEFAULT_BRAND_COLS
    mechanism_col: str = "mechanisms"
    indications_display_col: Optional[str] = None
    evidence_col: str = "level_of_evidence"
    cost_col: str = "cost"


# camelCase option name -> SearchConfig field
_OPTION_NAMES: Dict[str, str] = {
    "keyCol": "key_col",
    "nameCol": "name_col",
    "aliasCol": "alias_col",
    "flagCols": "flag_cols",
    "detailCols": "detail_cols",
    "brandCols": "brand_cols",
    "mechanismCol": "mechanism_col",
    "indicationsDisplayCol": "indications_display_col",
    "evidenceCol": "evidence_col",
    "costCol": "cost_col",
}

_LIST_FIELDS = {f.name for f in fields(SearchConfig) if f.name.endswith("_cols")}


def search_config_from_mapping(options: Dict[str, Any]) -> SearchConfig:
    """
    Build a SearchConfig from camelCase options (as found in the JSON file).

    Options not given keep their defaults. An empty indicationsDisplayCol
    means "no override column".
    """
    kwargs: Dict[str, Any] = {}
    for option, value in options.items():
        attr = _OPTION_NAMES.get(option)
        if attr is None:
            raise ConfigError(f"Unknown search config option: {option!r}. Expected one of {sorted(_OPTION_NAMES)}")

        if attr in _LIST_FIELDS:
            if isinstance(value, str) or not isinstance(value, (list, tuple)):
                raise ConfigError(f"Option {option!r} must be a list of column names, got {type(value).__name__}")
            kwargs[attr] = tuple(str(v).strip() for v in value if str(v).strip())
        elif attr == "indications_display_col":
            text = "" if value is None else str(value).strip()
            kwargs[attr] = text or None
        else:
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"Option {option!r} must be a non-empty column name")
            kwargs[attr] = value.strip()

    return SearchConfig(**kwargs)


def load_search_config(path: Optional[str] = None) -> SearchConfig:
    """
    Return the column-role configuration.

    Reads the JSON file at `path` (or SUPPLEMENT_SEARCH_CONFIG) when one is
    given; otherwise returns the defaults.
    """
    source = (path or SEARCH_CONFIG_PATH or "").strip()
    if not source:
        return SearchConfig()

    try:
        raw = json.loads(Path(source).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Could not read search config from {source}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Search config must be a JSON object, got {type(raw).__name__}")

    return search_config_from_mapping(raw)
