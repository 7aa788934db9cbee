"""
Small utilities: CSV export, strict JSON parsing and JSON-safe conversion.

Rationale:
- pandas handles quoting/escaping for the CSV download; column order follows the table.
- Raw API payloads are echoed back to the page, so make sure they always serialize.
"""

import json
import math
from typing import Any, Dict, List

import pandas as pd

from .tables import table_headers


def records_to_csv(records: List[Dict[str, Any]]) -> bytes:
    """
    Render normalized records as CSV bytes, columns in table order.
    Columns that only appear in later records are appended after the table headers.
    """
    if not records:
        return b""
    df = pd.DataFrame.from_records(records)
    headers = table_headers(records)
    extra = [c for c in df.columns if c not in headers]
    df = df[headers + extra]
    df = df.astype(object).where(df.notna(), "-")
    return df.to_csv(index=False).encode("utf-8")


def _reject_constant(name: str):
    raise ValueError(f"Invalid JSON token: {name}")


def _finite_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError(f"Number out of range: {literal}")
    return value


def loads_strict(text):
    """
    json.loads that refuses NaN, Infinity, -Infinity and numbers that overflow to inf.
    None of those survive the trip back out through a JSONResponse.
    """
    return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)


def safe_json(obj):
    """
    Convert anything to JSON-native types.
    Rationale: raw responses are shown verbatim in the page and must serialize.
    """
    def convert(o):
        if isinstance(o, (int, float, str, bool)) or o is None:
            return o
        if isinstance(o, dict):
            return {str(k): convert(v) for k, v in o.items()}
        if isinstance(o, (list, tuple)):
            return [convert(x) for x in o]
        try:
            return json.loads(json.dumps(o))
        except (TypeError, ValueError):
            return str(o)
    return convert(obj)
