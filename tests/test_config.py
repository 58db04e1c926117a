"""
Tests for the column-role configuration.
"""
import json

import pytest

from supplement_finder.config import (
    ConfigError,
    SearchConfig,
    load_search_config,
    search_config_from_mapping,
)


class TestSearchConfigFromMapping:
    """Tests for search_config_from_mapping()."""

    def test_overrides_and_defaults(self):
        """Test that given options override and the rest keep defaults."""
        cfg = search_config_from_mapping({"keyCol": "id", "flagCols": ["focus_flag", " "]})

        assert cfg.key_col == "id"
        assert cfg.flag_cols == ("focus_flag",)
        assert cfg.name_col == SearchConfig().name_col

    def test_empty_indications_display_col(self):
        """Test that an empty override column means no override."""
        assert search_config_from_mapping({"indicationsDisplayCol": ""}).indications_display_col is None
        assert search_config_from_mapping({"indicationsDisplayCol": "for"}).indications_display_col == "for"

    def test_unknown_option(self):
        """Test that unknown keys are rejected."""
        with pytest.raises(ConfigError, match="Unknown search config option"):
            search_config_from_mapping({"keyColumn": "id"})

    def test_list_option_must_be_list(self):
        """Test that a string where a list is expected is rejected."""
        with pytest.raises(ConfigError):
            search_config_from_mapping({"flagCols": "sleep_flag"})

    def test_column_option_must_be_non_empty(self):
        """Test that blank single-column options are rejected."""
        with pytest.raises(ConfigError):
            search_config_from_mapping({"nameCol": "  "})


class TestLoadSearchConfig:
    """Tests for load_search_config()."""

    def test_reads_json_file(self, tmp_path):
        """Test loading options from a JSON file."""
        path = tmp_path / "search.json"
        path.write_text(json.dumps({"aliasCol": "synonyms", "detailCols": ["dose"]}), encoding="utf-8")

        cfg = load_search_config(str(path))

        assert cfg.alias_col == "synonyms"
        assert cfg.detail_cols == ("dose",)

    def test_invalid_json(self, tmp_path):
        """Test that unparseable JSON raises ConfigError."""
        path = tmp_path / "search.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError, match="Could not read"):
            load_search_config(str(path))

    def test_non_object_json(self, tmp_path):
        """Test that a JSON list is rejected."""
        path = tmp_path / "search.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(ConfigError, match="JSON object"):
            load_search_config(str(path))

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises ConfigError."""
        with pytest.raises(ConfigError):
            load_search_config(str(tmp_path / "missing.json"))
