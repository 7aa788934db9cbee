"""
Helpers for turning normalized records into table headers and cells.

The first record defines the columns; later records are read with the same keys.
"""

import json
from typing import Any, Dict, List


def table_headers(records: List[Dict[str, Any]]) -> List[str]:
    if not records:
        return []
    return list(records[0].keys())


def header_title(key: str) -> str:
    """Upper-case the first character only ("assignee" -> "Assignee")."""
    return key[:1].upper() + key[1:]


def cell_text(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def table_rows(records: List[Dict[str, Any]]) -> List[List[str]]:
    headers = table_headers(records)
    return [[cell_text(record.get(h)) for h in headers] for record in records]
