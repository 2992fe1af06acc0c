"""
Gemini Analysis Relay - Main Server
App factory with startup-time service initialization.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from relay.analysis import AnalysisPipeline, parse_analysis_request
from relay.config import AppConfig
from relay.errors import RelayError, RequestValidationError, UpstreamError

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    config: AppConfig
    http_client: httpx.AsyncClient
    pipeline: AnalysisPipeline


def _get_services(request: Request) -> AppServices:
    services: Optional[AppServices] = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Application not initialized")
    return services


def _error_response(exc: RelayError) -> JSONResponse:
    content: Dict[str, Any] = {"error": str(exc)}
    if isinstance(exc, UpstreamError):
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


def create_app(
    config_override: Optional[AppConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the relay application.

    `transport` replaces the network layer of the shared upstream client,
    which lets tests serve the Gemini API from an httpx.MockTransport.
    """
    if config_override is not None:
        app_title = config_override.APP_NAME
        app_version = config_override.VERSION
        allowed_origins = config_override.CORS_ALLOWED_ORIGINS
    else:
        app_title = "Gemini Analysis Relay"
        app_version = "0.0.0"
        allowed_origins = AppConfig().CORS_ALLOWED_ORIGINS

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI) -> AsyncIterator[None]:
        config = config_override or AppConfig.load()
        try:
            config.validate_secrets()
        except ValueError as exc:
            logger.critical(str(exc))
            raise RuntimeError(str(exc)) from exc

        # Bounded by AI_REQUEST_TIMEOUT, not httpx's 5s default.
        http_client = httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(config.AI_REQUEST_TIMEOUT),
        )
        app_instance.state.services = AppServices(
            config=config,
            http_client=http_client,
            pipeline=AnalysisPipeline(http_client, config),
        )
        app_instance.title = config.APP_NAME
        app_instance.version = config.VERSION
        logger.info("Starting %s v%s", config.APP_NAME, config.VERSION)
        try:
            yield
        finally:
            app_instance.state.services = None
            await http_client.aclose()

    app = FastAPI(title=app_title, version=app_version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-App-Version"],
    )

    app.state.services = None

    @app.middleware("http")
    async def add_version_header(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response: Response = await call_next(request)
        services: Optional[AppServices] = getattr(request.app.state, "services", None)
        if services is not None:
            response.headers["X-App-Version"] = services.config.VERSION
        return response

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return "Gemini Backend is running!"

    @app.get("/health")
    async def health_check(request: Request) -> dict:
        services: Optional[AppServices] = getattr(request.app.state, "services", None)
        version = services.config.VERSION if services else "uninitialized"
        return {
            "status": "healthy" if services else "starting",
            "version": version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/test-key", response_class=PlainTextResponse)
    async def test_key(request: Request) -> PlainTextResponse:
        services = _get_services(request)
        if not services.config.GEMINI_API_KEY:
            return PlainTextResponse("GEMINI_API_KEY not found in environment", status_code=500)
        return PlainTextResponse(f"GEMINI_API_KEY loaded: {services.config.api_key_preview}")

    @app.post("/analyze")
    async def analyze(request: Request) -> JSONResponse:
        services = _get_services(request)
        try:
            try:
                payload = await request.json()
            except ValueError:
                payload = None
            analysis_request = parse_analysis_request(payload)
            result = await services.pipeline.analyze(analysis_request)
            return JSONResponse(content=result.to_response())
        except RequestValidationError as exc:
            logger.warning("Rejected analysis request: %s", exc)
            return _error_response(exc)
        except RelayError as exc:
            logger.error("Analysis failed: %s", exc)
            return _error_response(exc)
        except Exception:
            logger.exception("Error calling Gemini API")
            return JSONResponse(status_code=500, content={"error": "Failed to analyze data"})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=AppConfig().PORT, reload=False)
