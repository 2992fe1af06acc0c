"""
Dispatcher - Relay Module
Sends a prompt to one Gemini model with per-attempt deadlines and fixed-backoff retry
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict

import httpx

from relay.config import DEFAULT_GEMINI_BASE_URL
from relay.extraction import extract_answer
from relay.models import (
    DispatchOutcome,
    DispatchSuccess,
    DispatchTimeout,
    DispatchTransportError,
    DispatchUpstreamError,
    GenerationMethod,
    ModelDescriptor,
)
from relay.retry import DeadlineExceeded, call_with_deadline, retry_with_backoff

logger = logging.getLogger(__name__)


def generation_url(base_url: str, model: ModelDescriptor, method: GenerationMethod) -> str:
    """Versioned endpoint for `model:method`; catalog names carry a models/ prefix."""
    name = model.name if model.name.startswith("models/") else f"models/{model.name}"
    return f"{base_url.rstrip('/')}/{name}:{method.value}"


def build_request_body(prompt: str) -> Dict[str, Any]:
    return {"contents": [{"parts": [{"text": prompt}]}]}


def _should_retry(outcome: DispatchOutcome) -> bool:
    return not isinstance(outcome, DispatchSuccess)


async def dispatch(
    client: httpx.AsyncClient,
    model: ModelDescriptor,
    method: GenerationMethod,
    prompt: str,
    api_key: str,
    timeout: float,
    max_retries: int,
    backoff: float,
    base_url: str = DEFAULT_GEMINI_BASE_URL,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> DispatchOutcome:
    """
    Call the generation endpoint and extract the answer.

    Every attempt posts the same body to the same model and method. Non-2xx
    responses, timeouts and transport failures are retried after `backoff`
    seconds; the outcome of the last attempt is returned once the budget is
    spent.
    """
    url = generation_url(base_url, model, method)
    body = build_request_body(prompt)

    async def attempt(number: int) -> DispatchOutcome:
        try:
            response = await call_with_deadline(
                lambda: client.post(url, params={"key": api_key}, json=body),
                timeout,
            )
        except (DeadlineExceeded, httpx.TimeoutException):
            logger.warning(
                "Gemini request to %s timed out after %ss (attempt %s)",
                model.name,
                timeout,
                number,
            )
            return DispatchTimeout(attempts=number)
        except httpx.HTTPError as exc:
            message = str(exc) or type(exc).__name__
            logger.warning("Gemini request to %s failed (attempt %s): %s", model.name, number, message)
            return DispatchTransportError(message=message, attempts=number)

        text = response.text
        if not response.is_success:
            logger.error("Gemini API Error (%s): %s", response.status_code, text)
            return DispatchUpstreamError(
                status_code=response.status_code,
                details=text,
                attempts=number,
            )

        return DispatchSuccess(answer=extract_answer(text), attempts=number)

    result = await retry_with_backoff(
        attempt,
        max_retries=max_retries,
        backoff=backoff,
        should_retry=_should_retry,
        sleep=sleep,
        label=f"{model.name}:{method.value}",
    )
    return result.value
