"""Test MarkdownTableParser node (deterministic parsing)."""

import itertools

from prd_qa.nodes.table_parser import MarkdownTableParser, COLUMN_FIELDS, parse_markdown_table

from conftest import HEADER_ROW, SEPARATOR_ROW, LOGIN_ROW

LOGIN_VALUES = {
    "Test Case ID": "TC-1",
    "Test Type": "Manual",
    "Summary": "Login works",
    "Preconditions": "None",
    "Test Steps": "Open app → Enter creds → Click login",
    "Expected Result": "Redirect to dashboard",
    "Story ID": "US-101",
    "Risk Type": "Low",
}


def build_table(columns, values):
    header = "| " + " | ".join(columns) + " |"
    separator = "|" + "|".join("---" for _ in columns) + "|"
    row = "| " + " | ".join(values[c] for c in columns) + " |"
    return "\n".join([header, separator, row])


class TestMarkdownTableParser:
    """Test the deterministic table parser."""

    def test_parse_login_row(self, login_markdown):
        """Test the canonical single-row table."""
        records = MarkdownTableParser.parse(login_markdown)

        assert len(records) == 1
        record = records[0]
        assert record.id == "TC-1"
        assert record.type == "Manual"
        assert record.summary == "Login works"
        assert record.preconditions == "None"
        assert record.steps == ["Open app", "Enter creds", "Click login"]
        assert record.steps_text == "Open app → Enter creds → Click login"
        assert record.expected_result == "Redirect to dashboard"
        assert record.story_id == "US-101"
        assert record.risk == "Low"

    def test_rows_keep_table_order(self, two_case_markdown):
        records = parse_markdown_table(two_case_markdown)

        assert [r.id for r in records] == ["TC-1", "TC-2"]
        assert records[1].steps == ["Open app", "Enter bad password"]

    def test_column_order_does_not_matter(self):
        """Test that every permutation of a subset of columns parses identically."""
        columns = list(COLUMN_FIELDS)
        expected = MarkdownTableParser.parse(build_table(columns, LOGIN_VALUES))[0]

        # rotate the full header and permute the leading columns
        for shift in range(len(columns)):
            rotated = columns[shift:] + columns[:shift]
            assert MarkdownTableParser.parse(build_table(rotated, LOGIN_VALUES)) == [expected]

        for leading in itertools.permutations(columns[:4]):
            reordered = list(leading) + columns[4:]
            assert MarkdownTableParser.parse(build_table(reordered, LOGIN_VALUES)) == [expected]

    def test_headers_match_case_and_whitespace_insensitively(self):
        markdown = "\n".join([
            "| test case id | TEST TYPE | summary | Preconditions | Test  Steps | expected result | Story Id | risk type |",
            SEPARATOR_ROW,
            LOGIN_ROW,
        ])

        records = MarkdownTableParser.parse(markdown)

        assert len(records) == 1
        assert records[0].story_id == "US-101"

    def test_blank_story_id_defaults(self):
        """Test that an empty Story ID cell becomes N/A without shifting columns."""
        row = "| TC-9 | Manual | Logout | Logged in | Click logout | Login page shown |  | Medium |"
        records = MarkdownTableParser.parse("\n".join([HEADER_ROW, SEPARATOR_ROW, row]))

        assert len(records) == 1
        assert records[0].story_id == "N/A"
        assert records[0].risk == "Medium"

    def test_blank_cells_use_field_placeholders(self):
        row = "| TC-3 | Manual |  |  |  | Shown | US-1 | Low |"
        record = MarkdownTableParser.parse("\n".join([HEADER_ROW, SEPARATOR_ROW, row]))[0]

        assert record.summary == "No summary"
        assert record.preconditions == "None"
        assert record.steps == ["N/A"]

    def test_short_row_fills_missing_cells(self):
        row = "| TC-4 | Manual | Partial row |"
        record = MarkdownTableParser.parse("\n".join([HEADER_ROW, SEPARATOR_ROW, row]))[0]

        assert record.id == "TC-4"
        assert record.expected_result == "N/A"
        assert record.story_id == "N/A"
        assert record.risk == "N/A"

    def test_missing_header_returns_empty(self):
        """Test that a table without the Story ID column yields nothing."""
        columns = [c for c in COLUMN_FIELDS if c != "Story ID"]
        markdown = build_table(columns, LOGIN_VALUES)

        assert MarkdownTableParser.parse(markdown) == []

    def test_no_table_returns_empty(self):
        assert MarkdownTableParser.parse("") == []
        assert MarkdownTableParser.parse("Sorry, I could not produce a table.") == []
        assert MarkdownTableParser.parse(HEADER_ROW + "\n" + SEPARATOR_ROW) == []

    def test_surrounding_prose_and_alignment_separator(self):
        markdown = "\n".join([
            "Here is your test plan:",
            "",
            HEADER_ROW,
            "|:---|:---:|---:|---|---|---|---|---|",
            LOGIN_ROW,
            "",
            "Let me know if you need more cases.",
        ])

        records = MarkdownTableParser.parse(markdown)

        assert [r.id for r in records] == ["TC-1"]

    def test_blank_rows_are_skipped(self):
        markdown = "\n".join([HEADER_ROW, SEPARATOR_ROW, "|  |  |  |  |  |  |  |  |", LOGIN_ROW])

        assert [r.id for r in MarkdownTableParser.parse(markdown)] == ["TC-1"]


class TestSplitRow:
    """Test row splitting."""

    def test_outer_pipes_dropped(self):
        assert MarkdownTableParser.split_row("| a | b |") == ["a", "b"]

    def test_interior_blank_cells_kept(self):
        assert MarkdownTableParser.split_row("| a |  | c |") == ["a", "", "c"]

    def test_escaped_pipe_stays_in_cell(self):
        assert MarkdownTableParser.split_row(r"| a \| b | c |") == ["a | b", "c"]
