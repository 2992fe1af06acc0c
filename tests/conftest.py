from __future__ import annotations

import importlib
import json
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

BASE_URL = "https://gemini.test/v1"

CONTENT_MODEL = {
    "name": "models/gemini-test",
    "supportedGenerationMethods": ["generateContent", "countTokens"],
}


def gemini_body(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeGemini:
    """Serves the catalog and generation endpoints through httpx.MockTransport."""

    def __init__(self) -> None:
        self.catalog: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json={"models": [CONTENT_MODEL]}
        )
        self.generate: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json=gemini_body('{"analysis":"Add rest days"}')
        )
        self.requests: list[httpx.Request] = []

    @property
    def catalog_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]

    @property
    def generate_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET" and request.url.path.endswith("/models"):
            return self.catalog(request)
        if request.method == "POST":
            return self.generate(request)
        return httpx.Response(404, text="not found")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())

    @staticmethod
    def prompt_of(request: httpx.Request) -> str:
        return json.loads(request.content)["contents"][0]["parts"][0]["text"]


@pytest.fixture
def fake_gemini() -> FakeGemini:
    return FakeGemini()


@pytest.fixture
def config():
    from relay.config import AppConfig

    return AppConfig(
        GEMINI_API_KEY="test-dummy-key",
        GEMINI_BASE_URL=BASE_URL,
        AI_REQUEST_TIMEOUT=5,
        AI_MAX_RETRIES=2,
        AI_RETRY_DELAY=0,
        CORS_ALLOWED_ORIGINS=["*"],
    )


@pytest.fixture
def app(config, fake_gemini: FakeGemini):
    main = importlib.import_module("main")
    return main.create_app(config_override=config, transport=fake_gemini.transport())


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
