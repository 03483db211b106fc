"""Tests for result row access and rendering."""

import pytest

from graphrag_bridge.graph.rows import NO_RESULTS, field, format_row, format_rows


class TestField:
    """Named access first, positional fallback second."""

    def test_mapping_by_name(self):
        """Test reading a keyed row by column name."""
        assert field({"name": "parse", "label": "Function"}, "name", 0) == "parse"

    def test_sequence_by_index(self):
        """Test reading a positional row by offset."""
        assert field(["id-1", "parse", "Function"], "name", 1) == "parse"

    def test_mapping_falls_back_to_offset_keys(self):
        """Test drivers that key columns by their offset."""
        assert field({0: "a"}, "name", 0) == "a"
        assert field({"1": "b"}, "name", 1) == "b"

    def test_none_counts_as_absent(self):
        """Test that a null value falls through to the next lookup."""
        assert field({"name": None, 0: "fallback"}, "name", 0) == "fallback"
        assert field([None], "name", 0, default="x") == "x"

    def test_out_of_range_index_returns_default(self):
        """Test short positional rows."""
        assert field(["only"], "name", 5) is None
        assert field(["only"], "name", 5, default="-") == "-"

    def test_strings_are_not_positional(self):
        """Test that a string row is not indexed character by character."""
        assert field("abc", "name", 0) is None

    def test_attribute_access(self):
        """Test rows exposing columns as attributes."""
        class Row:
            name = "parse"

        assert field(Row(), "name", 0) == "parse"


class TestFormatRow:
    """Test rendering of a single row."""

    def test_mapping_renders_compact_json(self):
        """Test keyed rows render as compact JSON."""
        assert format_row({"a": 1, "b": "x"}) == '{"a":1,"b":"x"}'

    def test_sequence_joins_values(self):
        """Test positional rows join with a comma and null for None."""
        assert format_row(["parse", 3, None]) == "parse, 3, null"

    def test_nested_values_render_as_json(self):
        """Test nested collections inside a positional row."""
        assert format_row(["f", ["a", "b"]]) == 'f, ["a","b"]'

    def test_other_values_use_str(self):
        """Test scalar rows."""
        assert format_row(42) == "42"

    def test_unserializable_row_degrades_without_raising(self):
        """Test that a row whose str() raises still renders."""
        class Broken:
            def __str__(self):
                raise ValueError("nope")

        assert "Broken" in format_row(Broken())


class TestFormatRows:
    """Truncation and the no-results sentinel."""

    @pytest.mark.parametrize(
        "rows",
        [[], None, (), iter([]), (row for row in [])],
        ids=["list", "none", "tuple", "iterator", "generator"],
    )
    def test_empty_returns_sentinel(self, rows):
        """Test every empty input, lazy ones included, gives the sentinel."""
        assert format_rows(rows) == NO_RESULTS

    def test_lazy_rows_are_rendered(self):
        """Test that iterator input is rendered like a list."""
        text = format_rows(iter([["a"], ["b"]]))

        assert text == "Query returned 2 results:\n[1] a\n[2] b"

    def test_header_and_numbering(self):
        """Test header line and 1-based numbering."""
        text = format_rows([{"name": "a"}, ["b", 2]])

        lines = text.split("\n")
        assert lines[0] == "Query returned 2 results:"
        assert lines[1] == '[1] {"name":"a"}'
        assert lines[2] == "[2] b, 2"

    @pytest.mark.parametrize("n", [1, 49, 50, 51, 120, 200])
    def test_display_cap(self, n):
        """Test the default cap of 50 rows and the truncation line."""
        text = format_rows([[i] for i in range(n)])
        numbered = [line for line in text.split("\n") if line.startswith("[")]

        assert len(numbered) == min(n, 50)
        assert text.startswith(f"Query returned {n} results:")
        if n > 50:
            assert text.endswith(f"... ({n - 50} more results truncated)")
        else:
            assert "truncated" not in text

    def test_all_counts_up_to_200(self):
        """Test the cap holds for every result size from 0 to 200."""
        for n in range(0, 201):
            text = format_rows([{"i": i} for i in range(n)])
            numbered = [line for line in text.split("\n") if line.startswith("[")]
            assert len(numbered) == min(n, 50)
            assert ("truncated" in text) == (n > 50)

    def test_custom_cap(self):
        """Test a caller-supplied cap."""
        text = format_rows([[i] for i in range(5)], display_cap=2)

        assert "[3]" not in text
        assert text.endswith("... (3 more results truncated)")

    def test_zero_cap_has_no_blank_line(self):
        """Test that a cap of zero puts the truncation line right after the header."""
        text = format_rows([[1], [2]], display_cap=0)

        assert text == "Query returned 2 results:\n... (2 more results truncated)"
