"""
Core orchestration: raw response -> processed dashboard data.

Flow:
1. Obtain the raw response (demo fixture or external API call)
2. extract() the record array / narrative report from it
3. normalize() the records into flat rows
4. Hand back ProcessedData; charts are built per request from the rows
"""

import logging
from typing import Any, Optional

import httpx

from .api_client import fetch_api_data
from .demo import get_sample_data
from .extractor import extract
from .normalizer import normalize
from .schemas import ConnectionParams, ProcessedData

logger = logging.getLogger(__name__)


def process_api_data(raw: Any) -> ProcessedData:
    """Run extraction and normalization over one raw response."""
    extraction = extract(raw)
    records = normalize(extraction.records)
    logger.info(
        f"Processed response: {len(records)} records, narrative={extraction.is_narrative}"
    )
    return ProcessedData(
        records=records,
        is_narrative=extraction.is_narrative,
        narrative_text=extraction.narrative_text,
    )


async def load_raw_data(
    params: ConnectionParams,
    *,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """Return the demo fixture in demo mode, otherwise call the external API."""
    if params.demo_mode:
        logger.info("Demo mode: using sample data instead of API call")
        return get_sample_data()
    return await fetch_api_data(
        params.api_url,
        params.api_key,
        params.user_input,
        params.async_output,
        timeout=timeout,
        transport=transport,
    )
