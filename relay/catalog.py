"""
Catalog - Relay Module
Model discovery against the Gemini "list models" endpoint and model selection
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

import httpx

from relay.config import DEFAULT_GEMINI_BASE_URL
from relay.models import GenerationMethod, ModelDescriptor
from relay.retry import DeadlineExceeded, call_with_deadline, retry_with_backoff

logger = logging.getLogger(__name__)


def catalog_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/models"


def _parse_catalog(response: httpx.Response) -> Optional[List[ModelDescriptor]]:
    """Return descriptors for a well-formed catalog body, None otherwise."""
    try:
        data = response.json()
    except ValueError:
        logger.warning("Model catalog returned a non-JSON body")
        return None

    if not isinstance(data, dict):
        logger.warning("Model catalog body is not an object")
        return None

    raw_models = data.get("models")
    if not isinstance(raw_models, list):
        logger.warning("Model catalog body has no 'models' array")
        return None

    models: List[ModelDescriptor] = []
    for entry in raw_models:
        descriptor = ModelDescriptor.from_payload(entry)
        if descriptor is None:
            logger.debug("Skipping malformed catalog entry: %r", entry)
            continue
        models.append(descriptor)
    return models


async def fetch_models(
    client: httpx.AsyncClient,
    api_key: str,
    timeout: float,
    max_retries: int,
    backoff: float,
    base_url: str = DEFAULT_GEMINI_BASE_URL,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[ModelDescriptor]:
    """
    Fetch the upstream model catalog.

    Each attempt is one GET bounded by `timeout`. Non-2xx statuses, malformed
    bodies, timeouts and transport errors all count as failed attempts.

    Returns:
        The catalog in upstream order, or an empty list once retries are
        exhausted. Never raises for network or payload problems.
    """
    url = catalog_url(base_url)

    async def attempt(number: int) -> Optional[List[ModelDescriptor]]:
        try:
            response = await call_with_deadline(
                lambda: client.get(url, params={"key": api_key}),
                timeout,
            )
        except DeadlineExceeded:
            logger.warning("Model catalog request timed out after %ss (attempt %s)", timeout, number)
            return None
        except httpx.HTTPError as exc:
            logger.warning("Model catalog request failed (attempt %s): %s", number, exc)
            return None

        if not response.is_success:
            logger.warning(
                "Failed to fetch models: %s %s (attempt %s)",
                response.status_code,
                response.reason_phrase,
                number,
            )
            return None

        return _parse_catalog(response)

    result = await retry_with_backoff(
        attempt,
        max_retries=max_retries,
        backoff=backoff,
        should_retry=lambda models: models is None,
        sleep=sleep,
        label="model catalog fetch",
    )

    if result.value is None:
        logger.error("Error fetching models: gave up after %s attempts", result.attempts)
        return []

    logger.info("Available models: %s", [model.name for model in result.value])
    return result.value


def select_model(
    models: Sequence[ModelDescriptor],
) -> Optional[Tuple[ModelDescriptor, GenerationMethod]]:
    """
    Pick the first usable model in catalog order and the method to call it with.

    generateContent wins when the model advertises it; otherwise generateText.
    """
    for model in models:
        if not model.usable:
            continue
        if model.supports(GenerationMethod.GENERATE_CONTENT):
            return model, GenerationMethod.GENERATE_CONTENT
        return model, GenerationMethod.GENERATE_TEXT
    return None
