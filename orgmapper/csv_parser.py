"""Best-effort CSV parsing for uploaded employee rosters.

The parser is intentionally small.  It understands commas inside
double-quoted spans but does not implement full RFC 4180: there is no
``""`` escape handling and quoted fields cannot span lines.  Data lines
whose field count does not match the header are dropped with a warning so
that a few malformed rows never abort an otherwise usable upload.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .config import UNNAMED_COLUMN_TEMPLATE

logger = logging.getLogger(__name__)

RawRow = Dict[str, str]

_LINE_SPLIT = re.compile(r"\r\n|\n")
# A comma followed by an even number of quotes up to the end of the line is
# outside any quoted span.
_FIELD_SPLIT = re.compile(r',(?=(?:(?:[^"]*"){2})*[^"]*$)')
_OUTER_QUOTES = re.compile(r'^"|"$')


@dataclass(frozen=True)
class ParsedCSV:
    headers: Tuple[str, ...] = ()
    rows: Tuple[RawRow, ...] = ()
    skipped_lines: Tuple[int, ...] = field(default=())

    @property
    def is_empty(self) -> bool:
        return not self.headers


def _clean(value: str) -> str:
    return _OUTER_QUOTES.sub("", value.strip())


def parse_header(line: str) -> List[str]:
    """Split the header line and name empty headers by position."""
    headers = []
    for index, raw in enumerate(line.split(","), start=1):
        name = _clean(raw)
        headers.append(name if name else UNNAMED_COLUMN_TEMPLATE.format(index=index))
    return headers


def split_fields(line: str) -> List[str]:
    """Split a data line on commas that are not inside double quotes."""
    return [_clean(value) for value in _FIELD_SPLIT.split(line)]


def parse_csv(text: str) -> ParsedCSV:
    """Parse raw CSV text into headers and row records.

    Parameters
    ----------
    text : str
        The full file contents.

    Returns
    -------
    ParsedCSV
        Headers in file order, one ``RawRow`` per accepted data line and the
        1-based line numbers of dropped lines.  An empty ``ParsedCSV`` is
        returned when the text has no lines or no headers.
    """
    text = text.strip()
    if not text:
        return ParsedCSV()

    lines = _LINE_SPLIT.split(text)
    headers = parse_header(lines[0])
    if not headers:
        return ParsedCSV()

    rows: List[RawRow] = []
    skipped: List[int] = []
    for line_no, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        values = split_fields(line)
        if len(values) != len(headers):
            logger.warning(
                "Skipping line %d: expected %d fields, got %d (%s)",
                line_no,
                len(headers),
                len(values),
                line,
            )
            skipped.append(line_no)
            continue
        rows.append(dict(zip(headers, values)))

    return ParsedCSV(headers=tuple(headers), rows=tuple(rows), skipped_lines=tuple(skipped))
