"""
Locate the tabular payload inside an arbitrary API response.

Flow:
1. If the response carries a string `result`, classify it as a narrative report
   (markdown) and/or strip a ```json fence and parse the JSON inside.
2. Otherwise treat the response itself as the payload.
3. Find the record array: a known array property first (fixed priority order),
   then the first array property in key order, then the object itself.

Nothing here raises: malformed JSON and unexpected shapes degrade to an empty
record list or a narrative classification.
"""

import logging
from typing import Any, Dict, List, Tuple

from .schemas import ExtractionResult
from .utils import loads_strict

logger = logging.getLogger(__name__)

# Checked in this order regardless of the key order in the payload.
ARRAY_PROPERTIES = ("projects", "opportunities", "items", "data", "results", "records")

NARRATIVE_KEYWORDS = ("summary", "report", "analysis")

FENCE = "```"


def _looks_like_markdown_report(text: str) -> bool:
    """A heading plus a bold bullet list is how the agent formats prose reports."""
    return "###" in text and ("- **" in text or "* **" in text)


def _strip_code_fence(text: str) -> str:
    """Return the body of the first ``` fence up to the last ``` marker, or the text unchanged."""
    if FENCE not in text:
        return text
    start = text.find("\n", text.find(FENCE))
    end = text.rfind(FENCE)
    if start > 0 and end > start:
        return text[start + 1:end]
    return text


def _find_record_array(obj: Dict[str, Any], wrap_empty: bool = True) -> List[Any]:
    """
    Pick the record array out of a decoded JSON object.

    A named property wins over any other array even when it appears later in the
    object. With no array at all the object becomes a single record; an empty
    object only does so when `wrap_empty` is set.
    """
    for prop in ARRAY_PROPERTIES:
        value = obj.get(prop)
        if isinstance(value, list):
            return value

    for value in obj.values():
        if isinstance(value, list):
            return value

    if obj or wrap_empty:
        return [obj]
    return []


def _parse_result_string(text: str) -> Tuple[List[Any], bool]:
    """Parse the (possibly fenced) JSON text; returns (records, parsed_ok)."""
    candidate = _strip_code_fence(text)
    try:
        parsed = loads_strict(candidate)
    except ValueError as e:
        logger.debug(f"Could not parse result as JSON: {e}")
        return [], False

    if isinstance(parsed, list):
        return parsed, True
    if isinstance(parsed, dict):
        return _find_record_array(parsed), True
    # A bare scalar is valid JSON but carries no rows.
    return [], True


def extract(raw: Any) -> ExtractionResult:
    """
    Reduce a raw API response to its record sequence and narrative flag.

    Narrative and tabular output are not exclusive: a markdown report that also
    embeds a fenced JSON block yields both, and the page decides what to show.
    """
    if isinstance(raw, dict) and isinstance(raw.get("result"), str):
        text = raw["result"]
        is_narrative = _looks_like_markdown_report(text)
        narrative_text = text if is_narrative else ""

        records, parsed_ok = _parse_result_string(text)
        if not parsed_ok and not is_narrative:
            if "\n\n" in text and any(word in text for word in NARRATIVE_KEYWORDS):
                logger.info("Result is not JSON; treating it as a narrative report")
                is_narrative = True
                narrative_text = text

        return ExtractionResult(
            records=records,
            is_narrative=is_narrative,
            narrative_text=narrative_text,
        )

    if isinstance(raw, list):
        return ExtractionResult(records=raw)

    if isinstance(raw, dict):
        return ExtractionResult(records=_find_record_array(raw, wrap_empty=False))

    logger.debug(f"Nothing tabular in response of type {type(raw).__name__}")
    return ExtractionResult()
