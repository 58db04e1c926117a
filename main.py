from __future__ import annotations

import logging
import sys
from pathlib import Path

# Ensure the src/ directory is on sys.path so we can import supplement_finder
ROOT_DIR = Path(__file__).resolve().parent
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from supplement_finder.config import LOG_LEVEL  # type: ignore
from supplement_finder.ui.app import run_app  # type: ignore

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# `streamlit run main.py` executes this file as __main__
if __name__ == "__main__":
    run_app()
