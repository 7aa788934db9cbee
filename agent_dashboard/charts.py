"""
Group normalized records into Chart.js datasets.

Design:
- DETERMINISTIC: same records, field, type and count-by always give the same
  labels, values and colors. No LLM, no randomness.
- Output is the Chart.js `data` object ({"labels": [...], "datasets": [...]}),
  so the browser passes it straight to `new Chart(...)`.

Two modes:
1. count_by is None (or "count" when no record has a "count" column): one value
   per label, the size of the group.
2. count_by == <field>: split each group by the secondary field; one series per
   secondary value for bar/line, one slice per non-empty (label, value) pair
   for pie/doughnut.
"""

import json
import logging
import math
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

COUNT = "count"
MISSING = "-"

# Red, yellow, green, cyan, blue, magenta
BASE_HUES = (0, 60, 120, 180, 240, 300)
SATURATION = 70
BASE_LIGHTNESS = 50
LIGHTNESS_STEP = 10
MAX_LIGHTNESS = 80

BAR_BORDER = "rgba(0, 0, 0, 0.1)"


def generate_colors(count: int) -> List[str]:
    """
    Build `count` HSL colors by cycling the base hues, lightening by one step
    after every full turn of the wheel (capped at MAX_LIGHTNESS).
    """
    colors = []
    for i in range(count):
        hue = BASE_HUES[i % len(BASE_HUES)]
        lightness = BASE_LIGHTNESS + (i // len(BASE_HUES)) * LIGHTNESS_STEP
        colors.append(f"hsl({hue}, {SATURATION}%, {min(lightness, MAX_LIGHTNESS)}%)")
    return colors


def label_for(value: Any) -> str:
    """String form of a cell used as a group key; empty values become '-'."""
    if value is None or value == "":
        return MISSING
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def _as_number(label: str):
    if label == MISSING or "_" in label:
        return None
    try:
        number = float(label)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def sort_labels(labels: List[str]) -> List[str]:
    """Numeric ascending when every label is a finite number, ordinal string sort otherwise."""
    numbers = [_as_number(label) for label in labels]
    if all(n is not None for n in numbers):
        return [label for _, label in sorted(zip(numbers, labels), key=lambda pair: pair[0])]
    return sorted(labels)


def _group(records: List[Dict[str, Any]], field: str) -> Dict[str, List[Dict[str, Any]]]:
    """Group records by label, keeping first-seen order of the labels."""
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for record in records:
        key = label_for(record.get(field))
        groups.setdefault(key, []).append(record)
    return groups


def is_count_mode(records: List[Dict[str, Any]], count_by: Optional[str]) -> bool:
    """None always means count mode; "count" does too unless the rows have a column by that name."""
    if count_by is None:
        return True
    return count_by == COUNT and not any(COUNT in record for record in records)


def _count_matching(members: List[Dict[str, Any]], count_by: str, value: str) -> int:
    return sum(1 for item in members if label_for(item.get(count_by)) == value)


def empty_dataset() -> Dict[str, Any]:
    return {"labels": [], "datasets": [{"data": [], "backgroundColor": []}]}


def build_chart_dataset(
    records: List[Dict[str, Any]],
    field: str,
    chart_type: str,
    count_by: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the Chart.js data object for `records` grouped by `field`.

    Args:
        records: normalized (flat) records
        field: record attribute used for labels / x-axis
        chart_type: one of bar, line, pie, doughnut
        count_by: None or "count" for plain counts, otherwise the record attribute
            used as secondary grouping (a real "count" column is grouped by, not counted)

    Returns:
        {"labels": [...], "datasets": [{...}, ...]}

    Raises:
        ValueError: for a chart type outside bar/line/pie/doughnut
    """
    if chart_type not in ("bar", "line", "pie", "doughnut"):
        raise ValueError(f"Unsupported chart type: {chart_type}")

    if not records:
        return empty_dataset()

    groups = _group(records, field)
    labels = sort_labels(list(groups.keys()))
    colors = generate_colors(len(labels))

    # ========== COUNT MODE ==========
    if is_count_mode(records, count_by):
        values = [len(groups[label]) for label in labels]
        if chart_type in ("bar", "line"):
            return {
                "labels": labels,
                "datasets": [{
                    "label": "Count",
                    "data": values,
                    "backgroundColor": colors[0] if chart_type == "line" else colors,
                    "borderColor": colors[0] if chart_type == "line" else BAR_BORDER,
                    "borderWidth": 1,
                }],
            }
        return {
            "labels": labels,
            "datasets": [{
                "data": values,
                "backgroundColor": colors,
                "hoverOffset": 4,
            }],
        }

    # ========== AGGREGATE MODE ==========
    # Secondary values come from all records, not only the current group.
    secondary_values = sorted({label_for(record.get(count_by)) for record in records})
    logger.debug(f"Grouping {len(records)} records by {field!r} x {count_by!r}: "
                 f"{len(labels)} labels, {len(secondary_values)} series")

    if chart_type in ("bar", "line"):
        datasets = []
        for index, value in enumerate(secondary_values):
            color = colors[index % len(colors)]
            data = [_count_matching(groups[label], count_by, value) for label in labels]
            if chart_type == "bar":
                datasets.append({
                    "label": value,
                    "data": data,
                    "backgroundColor": color,
                    "borderWidth": 1,
                })
            else:
                datasets.append({
                    "label": value,
                    "data": data,
                    "backgroundColor": "transparent",
                    "borderColor": color,
                    "pointBackgroundColor": color,
                    "borderWidth": 2,
                })
        return {"labels": labels, "datasets": datasets}

    # pie / doughnut: one slice per (label, secondary value) that has members.
    # Colors follow the position in the label x value grid, not the value itself.
    slice_labels = []
    slice_data = []
    slice_colors = []
    for label_index, label in enumerate(labels):
        for value_index, value in enumerate(secondary_values):
            count = _count_matching(groups[label], count_by, value)
            if count > 0:
                slice_labels.append(f"{label} / {value}")
                slice_data.append(count)
                color_index = (label_index * len(secondary_values) + value_index) % len(colors)
                slice_colors.append(colors[color_index])

    return {
        "labels": slice_labels,
        "datasets": [{
            "data": slice_data,
            "backgroundColor": slice_colors,
            "hoverOffset": 4,
        }],
    }
