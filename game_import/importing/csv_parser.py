"""
CSV tokenizer for bulk imports.

Handles quoted fields with embedded commas and newlines, doubled-quote
escapes and ``\\n`` / ``\\r\\n`` / bare ``\\r`` line endings. An unterminated
quote runs to the end of the input instead of raising.
"""

import logging
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)


def _split_rows(text: str) -> List[List[str]]:
    rows: List[List[str]] = []
    row: List[str] = []
    current: List[str] = []
    in_quotes = False

    def end_row() -> None:
        nonlocal row
        row.append("".join(current).strip())
        current.clear()
        # Rows where every field is blank are dropped
        if any(value != "" for value in row):
            rows.append(row)
        row = []

    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        next_char = text[i + 1] if i + 1 < length else ""

        if char == '"':
            if not in_quotes:
                in_quotes = True
            elif next_char == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = False
        elif in_quotes:
            current.append(char)
        elif char == ",":
            row.append("".join(current).strip())
            current.clear()
        elif char == "\r":
            if next_char == "\n":
                i += 1
            end_row()
        elif char == "\n":
            end_row()
        else:
            current.append(char)
        i += 1

    if current or row:
        end_row()
    return rows


def parse_csv(text: str) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Parse raw CSV text into lower-cased headers and row dictionaries.

    Args:
        text: Raw CSV content

    Returns:
        Tuple of (headers, rows). Both are empty when there is no data row.
    """
    parsed = _split_rows(text or "")
    if len(parsed) < 2:
        return [], []

    headers = [header.lower().strip() for header in parsed[0]]
    rows = []
    for values in parsed[1:]:
        rows.append({
            header: values[idx] if idx < len(values) else ""
            for idx, header in enumerate(headers)
        })
    logger.debug(f"Parsed {len(rows)} CSV rows with headers {headers}")
    return headers, rows
