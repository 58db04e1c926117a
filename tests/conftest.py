"""
Shared fixtures for the supplement finder tests.

- config: the default column roles
- make_record: build a SupplementRecord from column=value keyword arguments
"""
from typing import Callable

import pytest

from supplement_finder.config import SearchConfig
from supplement_finder.core.records import SupplementRecord


@pytest.fixture
def config() -> SearchConfig:
    return SearchConfig()


@pytest.fixture
def make_record(config) -> Callable[..., SupplementRecord]:
    """Factory: make_record(supplement_key="magnesium", sleep_flag="yes", ...)."""
    def _make(**values: str) -> SupplementRecord:
        return SupplementRecord.from_row(values, config)

    return _make
