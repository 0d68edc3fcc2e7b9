"""Upload handling and export of the filtered roster.

This module is the boundary between files and the pipeline.  It checks
that an uploaded file is a ``.csv``, decodes it, parses it and turns an
unusable result into :class:`ParseError`.  It also serializes the filtered
employees for download.
"""

import logging
from pathlib import Path
from typing import Union

import pandas as pd

from .config import ACCEPTED_SUFFIXES, TARGET_FIELDS
from .csv_parser import ParsedCSV, parse_csv
from .errors import ParseError

logger = logging.getLogger(__name__)


def is_accepted_file(file_name: str) -> bool:
    return file_name.lower().endswith(ACCEPTED_SUFFIXES)


def read_text(path: Union[str, Path]) -> str:
    """Read an uploaded file as text.

    A UTF-8 byte order mark, as written by spreadsheet exports, is dropped.
    """
    try:
        return Path(path).read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError("File is not UTF-8 encoded text.") from exc
    except OSError as exc:
        raise ParseError(f"Could not read uploaded file: {exc}") from exc


def load_csv_text(text: str) -> ParsedCSV:
    """Parse CSV text, raising if it yields no headers or no data rows."""
    parsed = parse_csv(text)
    if parsed.is_empty or not parsed.rows:
        raise ParseError("CSV is empty or invalid.")
    if parsed.skipped_lines:
        logger.info(
            "Parsed %d rows, skipped %d malformed lines",
            len(parsed.rows),
            len(parsed.skipped_lines),
        )
    return parsed


def read_upload(file_name: str, path: Union[str, Path]) -> ParsedCSV:
    """
    Load an uploaded roster.

    Parameters
    ----------
    file_name : str
        The name the user uploaded; only ``.csv`` names are accepted.
    path : str or Path
        Where the upload was stored on disk.

    Returns
    -------
    ParsedCSV
        Headers and rows of the file.
    """
    if not is_accepted_file(file_name):
        raise ParseError(f"Only .csv files are supported (got {file_name!r}).")
    logger.info("Reading uploaded roster %s", file_name)
    return load_csv_text(read_text(path))


def employees_to_csv(employees: pd.DataFrame) -> str:
    """Serialize employees (id plus mapped fields) as CSV text."""
    columns = ["id", *TARGET_FIELDS]
    return employees.reindex(columns=columns).fillna("").to_csv(index=False)
