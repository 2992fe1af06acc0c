"""
Analysis Module - Relay Module
Orchestrates catalog fetch, model selection, prompt building and dispatch.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping

import httpx
from pydantic import ValidationError

from relay.catalog import fetch_models, select_model
from relay.config import AppConfig
from relay.dispatcher import dispatch
from relay.errors import (
    NoModelsAvailableError,
    NoSuitableModelError,
    RequestValidationError,
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from relay.models import (
    AnalysisRequest,
    AnalysisResult,
    DispatchSuccess,
    DispatchTimeout,
    DispatchUpstreamError,
)
from relay.prompting import build_prompt

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Missing userData or exerciseData"


def parse_analysis_request(payload: Any) -> AnalysisRequest:
    """Validate an inbound body; raises RequestValidationError before any I/O."""
    if not isinstance(payload, Mapping):
        raise RequestValidationError(MISSING_FIELDS_MESSAGE)
    try:
        return AnalysisRequest.model_validate(dict(payload))
    except ValidationError as exc:
        raise RequestValidationError(MISSING_FIELDS_MESSAGE) from exc


class AnalysisPipeline:
    """
    Stateless per-request pipeline.

    Configuration and the shared HTTP client are fixed at construction; each
    call to `analyze` fetches a fresh catalog and keeps nothing afterwards.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: AppConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not config.GEMINI_API_KEY:
            raise ValueError("API key is required")
        self.client = client
        self.config = config
        self.sleep = sleep

    @property
    def _call_settings(self) -> Dict[str, Any]:
        return {
            "api_key": str(self.config.GEMINI_API_KEY),
            "timeout": self.config.AI_REQUEST_TIMEOUT,
            "max_retries": self.config.AI_MAX_RETRIES,
            "backoff": self.config.AI_RETRY_DELAY,
            "base_url": self.config.GEMINI_BASE_URL,
            "sleep": self.sleep,
        }

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """
        Run one analysis end to end.

        Raises:
            NoModelsAvailableError: catalog empty after retries
            NoSuitableModelError: no model supports a known generation method
            UpstreamError / UpstreamTimeoutError / UpstreamTransportError:
                terminal generation failure
        """
        settings = self._call_settings

        models = await fetch_models(self.client, **settings)
        if not models:
            raise NoModelsAvailableError("No Gemini models available")

        selection = select_model(models)
        if selection is None:
            raise NoSuitableModelError("No suitable Gemini model found")
        model, method = selection
        logger.info("Using model %s via %s", model.name, method.value)

        prompt = build_prompt(request.user_data, request.exercise_data)
        outcome = await dispatch(self.client, model, method, prompt, **settings)

        if isinstance(outcome, DispatchSuccess):
            logger.info("Gemini AI response: %s", outcome.answer)
            return AnalysisResult(
                ai_answer=outcome.answer,
                model_name=model.name,
                method=method,
                attempts=outcome.attempts,
            )
        if isinstance(outcome, DispatchUpstreamError):
            raise UpstreamError(
                "Gemini API returned an error",
                upstream_status=outcome.status_code,
                details=outcome.details,
            )
        if isinstance(outcome, DispatchTimeout):
            raise UpstreamTimeoutError(
                f"Gemini API timed out after {outcome.attempts} attempts"
            )
        raise UpstreamTransportError(f"Failed to reach Gemini API: {outcome.message}")
