"""
Flatten raw records into single-level rows for the table and the charts.

Two layouts are recognised, decided once from the first record:
- fielded (ticket tracker style): `id`, `key` and a nested `fields` object holding
  the attributes; references such as `{"displayName": ..., "emailAddress": ...}`
  or `{"name": ...}` collapse to one display string.
- flat: anything else; top-level nested objects collapse the same way when they
  carry one of the display keys and are otherwise left alone.
"""

import json
from typing import Any, Dict, List, Optional

# Tried in order; the first non-empty one is shown.
DISPLAY_KEYS = ("displayName", "name", "emailAddress")

MISSING = "-"


def _is_nested(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _display_value(value: Any) -> Optional[Any]:
    """Return the display string of a reference object, or None when it has none."""
    if not isinstance(value, dict):
        return None
    for key in DISPLAY_KEYS:
        if value.get(key):
            return value[key]
    return None


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _is_fielded(record: Any) -> bool:
    return isinstance(record, dict) and isinstance(record.get("fields"), dict)


def _normalize_fielded(record: Any) -> Dict[str, Any]:
    if not isinstance(record, dict):
        record = {}
    row: Dict[str, Any] = {
        "id": "" if record.get("id") is None else record["id"],
        "key": "" if record.get("key") is None else record["key"],
    }

    fields = record.get("fields")
    if not isinstance(fields, dict):
        return row

    for field_key, value in fields.items():
        if _is_nested(value):
            display = _display_value(value)
            row[field_key] = display if display is not None else _compact_json(value)
        else:
            row[field_key] = MISSING if value is None else value
    return row


def _normalize_flat(record: Any) -> Dict[str, Any]:
    # Bare scalars in the array still become one-column rows.
    if not isinstance(record, dict):
        return {"value": record}

    row = dict(record)
    for key, value in row.items():
        display = _display_value(value)
        if display is not None:
            row[key] = display
    return row


def normalize(records: List[Any]) -> List[Dict[str, Any]]:
    """
    Normalize a record sequence, preserving order.

    The layout is chosen from records[0] and applied to every record, so a
    fielded first row turns the whole sequence into id/key/fields rows.
    """
    if not records:
        return []

    if _is_fielded(records[0]):
        return [_normalize_fielded(r) for r in records]
    return [_normalize_flat(r) for r in records]
