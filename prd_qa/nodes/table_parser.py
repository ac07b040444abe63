"""
MarkdownTableParser Node (Deterministic)

Converts the markdown pipe-table produced by test plan generation into
TestCaseRecord objects. Columns are resolved by header name, so column order
does not matter. Missing cells fall back to per-field placeholders; a missing
header aborts parsing entirely.
"""

from __future__ import annotations
import re
from typing import List, Dict, Optional
import logging

from ..models import TestCaseRecord

logger = logging.getLogger(__name__)

_SEPARATOR_ROW_RE = re.compile(r"^\|?[\s:|-]*-[\s:|-]*\|?$")
_UNESCAPED_PIPE_RE = re.compile(r"(?<!\\)\|")

# column header -> (record field, placeholder for blank cells)
COLUMN_FIELDS: Dict[str, tuple] = {
    "Test Case ID": ("id", "N/A"),
    "Test Type": ("type", "N/A"),
    "Summary": ("summary", "No summary"),
    "Preconditions": ("preconditions", "None"),
    "Test Steps": ("steps", "N/A"),
    "Expected Result": ("expected_result", "N/A"),
    "Story ID": ("story_id", "N/A"),
    "Risk Type": ("risk", "N/A"),
}


def _normalize_header(text: str) -> str:
    return " ".join(text.split()).lower()


class MarkdownTableParser:
    """
    Parse a markdown pipe-table of test cases.

    This node is purely deterministic. It never raises on malformed rows; the
    caller decides what an empty result means.
    """

    @staticmethod
    def parse(markdown: str) -> List[TestCaseRecord]:
        """
        Parse the table into records, in row order.

        Args:
            markdown: Markdown text containing one pipe-table

        Returns:
            Parsed records, or an empty list when the header row is missing
            any required column
        """
        lines = MarkdownTableParser._table_lines(markdown or "")
        if not lines:
            logger.error("Markdown table parsing error: no table rows found")
            return []

        header_index = MarkdownTableParser._resolve_headers(lines[0])
        if header_index is None:
            return []

        records = []
        for line in lines[1:]:
            cells = MarkdownTableParser.split_row(line)
            if not any(cells):
                continue
            records.append(MarkdownTableParser._build_record(cells, header_index))

        logger.info(f"Parsed {len(records)} test cases from markdown table")
        return records

    @staticmethod
    def _table_lines(markdown: str) -> List[str]:
        """Lines that start with a pipe, excluding header-separator rows."""
        lines = []
        for raw in markdown.strip().splitlines():
            line = raw.strip()
            if not line.startswith("|"):
                continue
            if _SEPARATOR_ROW_RE.match(line):
                continue
            lines.append(line)
        return lines

    @staticmethod
    def split_row(line: str) -> List[str]:
        """
        Split a table row into trimmed cells.

        Only the empty artifacts produced by the outer pipes are dropped;
        blank interior cells are kept so later columns never shift.
        """
        cells = [cell.strip().replace("\\|", "|") for cell in _UNESCAPED_PIPE_RE.split(line.strip())]
        if cells and cells[0] == "":
            cells = cells[1:]
        if cells and cells[-1] == "":
            cells = cells[:-1]
        return cells

    @staticmethod
    def _resolve_headers(header_line: str) -> Optional[Dict[str, int]]:
        headers = [_normalize_header(h) for h in MarkdownTableParser.split_row(header_line)]

        header_index = {}
        missing = []
        for column in COLUMN_FIELDS:
            key = _normalize_header(column)
            if key in headers:
                header_index[column] = headers.index(key)
            else:
                missing.append(column)

        if missing:
            logger.error(f"Markdown table parsing error: headers not found {missing} in {headers}")
            return None
        return header_index

    @staticmethod
    def _build_record(cells: List[str], header_index: Dict[str, int]) -> TestCaseRecord:
        values = {}
        for column, (field, placeholder) in COLUMN_FIELDS.items():
            index = header_index[column]
            cell = cells[index] if index < len(cells) else ""
            values[field] = cell or placeholder

        steps = TestCaseRecord.split_steps(values["steps"]) or [COLUMN_FIELDS["Test Steps"][1]]
        values["steps"] = steps
        return TestCaseRecord(**values)


def parse_markdown_table(markdown: str) -> List[TestCaseRecord]:
    """Convenience function to parse a test case table."""
    return MarkdownTableParser.parse(markdown)
