"""
Saved-places CSV parser

Turns an exported list of places into (name, url) rows.

Header (first non-empty line) is matched case-insensitively:
    title / note / name  -> display name, first non-empty wins in that order
    url                  -> map link
Other columns are ignored.

Quoting is deliberately simple: a double quote toggles "inside quotes"
and is dropped, commas split fields only outside quotes. No escaped
quotes, no multi-line fields.
"""

import logging
from typing import Dict, List

logger = logging.getLogger(__name__)

NAME_COLUMNS = ('title', 'note', 'name')
URL_COLUMN = 'url'


def split_csv_line(line: str) -> List[str]:
    """Split one line on commas outside double quotes; trims each field."""
    columns = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            columns.append(''.join(current).strip())
            current = []
        else:
            current.append(char)

    columns.append(''.join(current).strip())
    return columns


def _is_separator_only(line: str) -> bool:
    return set(line) <= {','}


def _cell(columns: List[str], idx: int) -> str:
    if idx is None or idx >= len(columns):
        return ''
    return columns[idx]


def parse_locations_csv(text: str) -> List[Dict[str, str]]:
    """
    Parse CSV text into [{"name": ..., "url": ...}] in input order.
    Rows missing a name or url are dropped silently.
    """
    lines = [line for line in (text or '').splitlines() if line.strip()]
    if not lines:
        return []

    # Excel and Sheets exports often start with a BOM
    header = [h.lower() for h in split_csv_line(lines[0].lstrip('\ufeff').strip())]
    index = {col: header.index(col) for col in NAME_COLUMNS + (URL_COLUMN,) if col in header}

    if URL_COLUMN not in index:
        logger.warning(f"CSV header has no '{URL_COLUMN}' column: {header}")
        return []

    rows = []
    for line in lines[1:]:
        line = line.strip()
        if not line or _is_separator_only(line):
            continue

        columns = split_csv_line(line)

        name = ''
        for col in NAME_COLUMNS:
            name = _cell(columns, index.get(col))
            if name:
                break

        url = _cell(columns, index[URL_COLUMN])

        if name and url:
            rows.append({"name": name, "url": url})

    logger.info(f"Parsed {len(rows)} locations from {len(lines) - 1} CSV rows")
    return rows
