"""
Tabular (block-explorer CSV export) importer.

Columns are located by case-insensitive header prefix rather than by
position, so minor header variations still parse. Malformed rows are
dropped, never raised.

Quoting: a double quote toggles "inside quotes" and a comma separates
fields only outside quotes. Escaped quotes ("") are not interpreted;
they simply toggle twice.
"""

import logging
import re
from decimal import Decimal
from typing import Optional

from activity_ingestion.classifier import classify_method
from activity_ingestion.models import Activity
from activity_ingestion.numbers import parse_decimal
from activity_ingestion.timestamps import to_iso


logger = logging.getLogger(__name__)


MIN_COLUMNS = 5

COLUMN_PREFIXES = {
    "tx_hash": "Transaction Hash",
    "timestamp": "DateTime",
    "from": "From",
    "to": "To",
    "value_in": "Value_IN",
    "value_out": "Value_OUT",
    "current_usd": "CurrentValue",
    "method": "Method",
}

_LINE_BREAK = re.compile(r"\r?\n")
_ZERO = Decimal(0)


def split_csv_line(line: str) -> list[str]:
    """Split one CSV line on commas outside double quotes."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def _strip(value: Optional[str]) -> str:
    text = (value or "").strip()
    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    return text.strip()


def locate_columns(header: list[str]) -> dict[str, Optional[int]]:
    """Map logical column names to header indices (None when missing)."""
    lowered = [_strip(h).lower() for h in header]
    columns: dict[str, Optional[int]] = {}
    for key, prefix in COLUMN_PREFIXES.items():
        target = prefix.lower()
        columns[key] = next(
            (i for i, name in enumerate(lowered) if name.startswith(target)),
            None,
        )
    return columns


def _cell(row: list[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return _strip(row[index])


def _number(row: list[str], index: Optional[int]) -> Decimal:
    return parse_decimal(_cell(row, index), default=_ZERO)


def import_tabular(text: str, chain_id: int = 1) -> list[Activity]:
    """
    Parse a block-explorer CSV export into Activities.

    Args:
        text: Full CSV text, first line is the header
        chain_id: Chain the export belongs to

    Returns:
        One Activity per well-formed data row, in file order
    """
    lines = [line for line in _LINE_BREAK.split(text or "") if line]
    if len(lines) <= 1:
        return []

    columns = locate_columns(split_csv_line(lines[0]))
    activities: list[Activity] = []
    skipped = 0

    for line in lines[1:]:
        row = split_csv_line(line)
        if len(row) < MIN_COLUMNS:
            skipped += 1
            continue

        tx_hash = _cell(row, columns["tx_hash"])
        if not tx_hash:
            skipped += 1
            continue

        value_in = _number(row, columns["value_in"])
        value_out = _number(row, columns["value_out"])
        amount = value_in or value_out or None

        amount_usd = None
        if columns["current_usd"] is not None:
            amount_usd = _number(row, columns["current_usd"])

        activities.append(
            Activity(
                id=f"csv:{chain_id}:{tx_hash}",
                chain_id=chain_id,
                timestamp=to_iso(_cell(row, columns["timestamp"])),
                type=classify_method(_cell(row, columns["method"])),
                from_address=_cell(row, columns["from"]).lower(),
                to_address=_cell(row, columns["to"]).lower(),
                token="NATIVE" if amount is not None else None,
                amount=amount,
                amount_usd=amount_usd,
                tx_hash=tx_hash,
            )
        )

    if skipped:
        logger.info(f"Skipped {skipped} malformed CSV rows")
    logger.debug(f"Imported {len(activities)} activities from CSV for chain {chain_id}")
    return activities
