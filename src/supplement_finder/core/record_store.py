from __future__ import annotations

import csv
import io
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import pandas as pd
import requests
from urllib3.util.retry import Retry

from supplement_finder.config import MASTER_CSV_PATH, SearchConfig
from supplement_finder.core.http_session import get_session
from supplement_finder.core.records import SupplementRecord

logger = logging.getLogger(__name__)


class RecordStoreError(Exception):
    """Raised when the supplement table cannot be read."""


@dataclass
class RecordTable:
    """
    The loaded supplement table.

      columns  header row, in file order
      records  one SupplementRecord per accepted row, in file order
      frame    the same accepted rows as a string DataFrame
      dropped  rows skipped because their field count did not match the header
    """
    columns: List[str]
    records: List[SupplementRecord]
    frame: pd.DataFrame
    dropped: int = 0

    def __len__(self) -> int:
        return len(self.records)


def _csv_retry() -> Retry:
    """Conservative retries for fetching a hosted CSV."""
    return Retry(
        total=3,
        connect=3,
        read=3,
        status=3,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )


def _get_session() -> requests.Session:
    return get_session("csv", _csv_retry)


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def _fetch_text(url: str, timeout_seconds: int) -> str:
    try:
        resp = _get_session().get(url, timeout=timeout_seconds)
    except requests.RequestException as exc:
        raise RecordStoreError(f"HTTP error while fetching {url}: {exc}") from exc

    if resp.status_code != 200:
        preview = (resp.text or "")[:200]
        raise RecordStoreError(f"Fetching {url} returned status={resp.status_code}. Preview: {preview}")

    resp.encoding = resp.encoding or "utf-8"
    return resp.text


def read_source_text(source: Union[str, Path], timeout_seconds: int = 30) -> str:
    """Return the raw CSV text from a local path or an http(s) URL."""
    src = str(source).strip()
    if not src:
        raise RecordStoreError("No CSV source given. Set SUPPLEMENT_CSV_PATH or pass a path.")

    if _is_url(src):
        logger.info("Fetching supplement table from %s", src)
        return _fetch_text(src, timeout_seconds)

    path = Path(src)
    try:
        # utf-8-sig drops a spreadsheet-exported BOM from the first header
        return path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise RecordStoreError(f"Could not read CSV at {path}: {exc}") from exc


def parse_csv(text: str) -> List[List[str]]:
    """
    Split CSV text into rows of fields.

    Quoted fields may hold commas, newlines and doubled quotes. A blank line
    is one empty field, so it only survives a single-column header.
    """
    if not text:
        return []
    return [row or [""] for row in csv.reader(io.StringIO(text, newline=""))]


def build_record_table(rows: List[List[str]], config: SearchConfig) -> RecordTable:
    """
    Turn parsed rows (header first) into a RecordTable.

    Rows whose field count differs from the header are dropped.
    """
    if not rows:
        return RecordTable(columns=[], records=[], frame=pd.DataFrame(), dropped=0)

    header = list(rows[0])
    body = rows[1:]

    accepted = [r for r in body if len(r) == len(header)]
    dropped = len(body) - len(accepted)
    if dropped:
        logger.warning("Dropped %s malformed row(s) (field count != %s).", dropped, len(header))

    missing = [c for c in (config.key_col, config.name_col) if c not in header]
    if missing:
        logger.warning("CSV header lacks role columns %s; they will read as empty.", missing)

    records = [SupplementRecord.from_row(dict(zip(header, r)), config) for r in accepted]
    frame = pd.DataFrame(accepted, columns=header, dtype=str)

    return RecordTable(columns=header, records=records, frame=frame, dropped=dropped)


def load_record_table(
    source: Union[str, Path, None] = None,
    config: Optional[SearchConfig] = None,
    timeout_seconds: int = 30,
) -> RecordTable:
    """
    Load the supplement table from `source` (default: MASTER_CSV_PATH).

    `source` may be a local path or an http(s) URL.
    """
    cfg = config or SearchConfig()
    src = source if source is not None else MASTER_CSV_PATH

    text = read_source_text(src, timeout_seconds=timeout_seconds)
    table = build_record_table(parse_csv(text), cfg)
    logger.info("Loaded %s supplement record(s) with %s column(s) from %s", len(table), len(table.columns), src)
    return table


def timed_load_record_table(
    source: Union[str, Path, None] = None,
    config: Optional[SearchConfig] = None,
    timeout_seconds: int = 30,
) -> Tuple[RecordTable, float]:
    """
    Convenience helper for UI timing logs.
    """
    t0 = time.perf_counter()
    table = load_record_table(source, config=config, timeout_seconds=timeout_seconds)
    return table, (time.perf_counter() - t0)
