# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for Clinic Dashboard.

This module turns the raw text of the spreadsheet export into the line/cell
matrix consumed by the block extractor.

Input format
------------
The export is newline-delimited text. Each line is comma-delimited, fields
containing commas are wrapped in double quotes (RFC 4180 style), and blank
lines carry no meaning. It is not a general CSV reader: there is no header
lookup by name, only positional offsets (see ``layout.py``).

Line indexes used by the layouts refer to the list returned by
``split_lines``, i.e. *after* blank lines have been dropped.

Functions
---------
- split_cells:        quote-aware split of one line into trimmed cells,
- split_lines:        trimmed, non-empty lines of a text,
- tokenize:           both steps at once (list of cell lists),
- read_summary_text:  read an export saved on disk.
"""

import os
import re
from pathlib import Path
from typing import Union

# A comma is a delimiter only if an even number of quotes follows it.
_DELIMITER = re.compile(r',(?=(?:(?:[^"]*"){2})*[^"]*$)')


def split_cells(line: str) -> list[str]:
    """
    Split one line of the export into cells.

    The comma is treated as a delimiter only when it is not enclosed in a
    quoted field. All double quotes are then removed from each cell and the
    cell is stripped.

    Malformed quoting never raises: the split degrades to a best-effort
    result (an unbalanced quote simply disables splitting on the commas that
    precede it).

    Examples:
        'Аренда,"1 200,50",-'  → ["Аренда", "1 200,50", "-"]
        ""                     → []
    """
    if not line:
        return []
    return [part.replace('"', "").strip() for part in _DELIMITER.split(line)]


def split_lines(text: str) -> list[str]:
    """Return the stripped, non-empty lines of ``text`` (CRLF tolerated)."""
    if not text:
        return []
    # strip() also removes the "\r" of CRLF endings
    stripped = (line.strip() for line in text.split("\n"))
    return [line for line in stripped if line]


def tokenize(text: str) -> list[list[str]]:
    """Split ``text`` into lines and every line into cells."""
    return [split_cells(line) for line in split_lines(text)]


def read_summary_text(path: Union[str, "os.PathLike[str]"]) -> str:
    """
    Read a spreadsheet export saved on disk.

    The file is decoded as UTF-8; a leading byte-order mark (as written by
    some spreadsheet tools) is dropped.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not point to an existing file.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Summary export not found: {file_path}")
    return file_path.read_text(encoding="utf-8-sig")
