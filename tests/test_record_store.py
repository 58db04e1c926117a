"""
Tests for loading the supplement table.

Covers:
- CSV parsing (quotes, doubled quotes, embedded newlines, CRLF)
- dropping rows whose field count does not match the header
- missing columns reading as empty strings
- local file and URL sources
"""
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from supplement_finder.core.record_store import (
    RecordStoreError,
    build_record_table,
    load_record_table,
    parse_csv,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]

HEADER = "supplement_key,supplement_name,aliases,sleep_flag,level_of_evidence\n"


class TestParseCsv:
    """Tests for parse_csv()."""

    def test_quoted_fields(self):
        """Test commas, doubled quotes and CRLF line endings."""
        text = 'a,b\r\n"x, y","say ""hi"""\r\n'
        assert parse_csv(text) == [["a", "b"], ["x, y", 'say "hi"']]

    def test_newline_inside_quotes(self):
        """Test that a quoted newline stays inside the field."""
        rows = parse_csv('a,b\n"line one\nline two",2\n')
        assert rows[1] == ["line one\nline two", "2"]

    def test_no_trailing_newline(self):
        """Test that the last row is kept without a final newline."""
        assert parse_csv("a,b\n1,2") == [["a", "b"], ["1", "2"]]

    def test_blank_line_is_one_empty_field(self):
        """Test that a blank line between rows reads as a single empty field."""
        assert parse_csv("a\n\nb\n") == [["a"], [""], ["b"]]

    def test_empty_text(self):
        """Test that empty text gives no rows."""
        assert parse_csv("") == []


class TestBuildRecordTable:
    """Tests for build_record_table()."""

    def test_malformed_rows_are_dropped(self, config):
        """Test that rows with too few or too many fields are skipped."""
        rows = parse_csv(
            HEADER
            + "magnesium,Magnesium,mag,yes,Limited\n"
            + "zinc,Zinc\n"
            + "iron,Iron,,no,Low,extra\n"
            + "\n"
            + "creatine,Creatine,,no,Grade B\n"
        )
        table = build_record_table(rows, config)

        assert [r.key for r in table.records] == ["magnesium", "creatine"]
        assert table.dropped == 3
        assert len(table) == 2

    def test_missing_columns_read_as_empty(self, config):
        """Test that role columns absent from the header become empty strings."""
        table = build_record_table(parse_csv("supplement_key\nzinc\n"), config)
        record = table.records[0]

        assert record.name == ""
        assert record.aliases == ()
        assert record.evidence_level == ""
        assert record.flag("sleep_flag") is False
        assert record.get("not_a_column") == ""

    def test_frame_matches_records(self, config):
        """Test that the DataFrame view holds the accepted rows as strings."""
        table = build_record_table(parse_csv(HEADER + "magnesium,Magnesium,,yes,Limited\nbad\n"), config)

        assert list(table.frame.columns) == table.columns
        assert table.frame.shape == (1, 5)
        assert table.frame.iloc[0]["sleep_flag"] == "yes"

    def test_blank_line_kept_for_single_column(self, config):
        """Test that a blank line is an empty record when the header has one column."""
        table = build_record_table(parse_csv("supplement_key\nzinc\n\niron\n"), config)

        assert [r.key for r in table.records] == ["zinc", "", "iron"]
        assert table.dropped == 0

    def test_header_only(self, config):
        """Test that a header with no rows gives an empty table."""
        table = build_record_table(parse_csv(HEADER), config)
        assert table.records == []
        assert table.dropped == 0

    def test_no_rows(self, config):
        """Test that no input rows gives an empty table."""
        table = build_record_table([], config)
        assert table.records == []
        assert table.columns == []

    def test_aliases_split_and_flags_parsed(self, config):
        """Test alias splitting and flag parsing at load time."""
        table = build_record_table(
            parse_csv(HEADER + 'omega_3,Fish Oil,"EPA; DHA, , EPA",Yes,Moderate\n'),
            config,
        )
        record = table.records[0]

        assert record.aliases == ("EPA", "DHA", "EPA")
        assert record.flags["sleep_flag"] is True
        assert record.pretty_key == "Omega 3"


class TestLoadRecordTable:
    """Tests for load_record_table()."""

    def test_local_file(self, tmp_path, config):
        """Test loading from a local path."""
        path = tmp_path / "master.csv"
        path.write_text(HEADER + "magnesium,Magnesium,,yes,Limited\n", encoding="utf-8")

        table = load_record_table(path, config=config)

        assert [r.pretty_key for r in table.records] == ["Magnesium"]

    def test_bom_is_stripped(self, tmp_path, config):
        """Test that a spreadsheet BOM does not stick to the first header."""
        path = tmp_path / "master.csv"
        path.write_text(HEADER + "zinc,Zinc,,no,Low\n", encoding="utf-8-sig")

        table = load_record_table(path, config=config)

        assert table.columns[0] == "supplement_key"
        assert table.records[0].key == "zinc"

    def test_missing_file_raises(self, tmp_path, config):
        """Test that an unreadable source raises RecordStoreError."""
        with pytest.raises(RecordStoreError):
            load_record_table(tmp_path / "nope.csv", config=config)

    def test_blank_source_raises(self, config):
        """Test that an empty source string raises RecordStoreError."""
        with pytest.raises(RecordStoreError):
            load_record_table("  ", config=config)

    def test_url_source(self, config):
        """Test that http(s) sources are fetched through the session."""
        resp = MagicMock(status_code=200, text=HEADER + "zinc,Zinc,,no,Low\n", encoding="utf-8")
        session = MagicMock()
        session.get.return_value = resp

        with patch("supplement_finder.core.record_store._get_session", return_value=session):
            table = load_record_table("https://example.org/master.csv", config=config, timeout_seconds=5)

        session.get.assert_called_once_with("https://example.org/master.csv", timeout=5)
        assert [r.key for r in table.records] == ["zinc"]

    def test_url_bad_status_raises(self, config):
        """Test that a non-200 response raises RecordStoreError."""
        session = MagicMock()
        session.get.return_value = MagicMock(status_code=404, text="not found")

        with patch("supplement_finder.core.record_store._get_session", return_value=session), \
             pytest.raises(RecordStoreError, match="status=404"):
            load_record_table("https://example.org/master.csv", config=config)

    def test_url_connection_error_raises(self, config):
        """Test that transport errors are wrapped in RecordStoreError."""
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("boom")

        with patch("supplement_finder.core.record_store._get_session", return_value=session), \
             pytest.raises(RecordStoreError, match="HTTP error"):
            load_record_table("http://example.org/master.csv", config=config)

    def test_bundled_dataset_loads_cleanly(self, config):
        """Test that data/master.csv has no malformed rows."""
        table = load_record_table(PROJECT_ROOT / "data" / "master.csv", config=config)

        assert table.dropped == 0
        assert len(table) == 8
        assert "Vitamin B12" in [r.pretty_key for r in table.records]
