"""
Minimal client for the external agent/data API.

Rationale:
- Use httpx for the async POST.
- Keep interface tiny: fetch_api_data(url, key, input, async_output) -> decoded JSON.
- One timeout, no retries / no fallback.
"""

import logging
from typing import Any, Optional

import httpx

from .config import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_INPUT
from .utils import loads_strict

logger = logging.getLogger(__name__)


class ApiFetchError(RuntimeError):
    """The external API could not be reached or did not answer with JSON."""


async def fetch_api_data(
    api_url: str,
    api_key: str,
    user_input: str = "",
    async_output: bool = False,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """
    POST the query to `api_url` and return the decoded JSON body.
    """
    payload = {
        "userInput": user_input or DEFAULT_USER_INPUT,
        "asyncOutput": async_output,
    }
    headers = {
        "X-API-KEY": api_key,
        "Content-Type": "application/json",
    }

    logger.info(f"Requesting {api_url} (asyncOutput={async_output})")
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(api_url, json=payload, headers=headers)
    except httpx.TimeoutException as e:
        raise ApiFetchError(f"API request timed out after {timeout:g}s") from e
    except httpx.HTTPError as e:
        raise ApiFetchError(f"API request failed: {e}") from e

    if response.is_error:
        raise ApiFetchError(f"API request failed with status {response.status_code}")

    try:
        data = loads_strict(response.content)
    except ValueError as e:
        raise ApiFetchError(f"API response is not valid JSON: {e}") from e

    logger.info(f"Received {len(response.content)} bytes from {api_url}")
    return data
