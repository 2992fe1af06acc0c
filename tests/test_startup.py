from __future__ import annotations

import importlib

import pytest
from fastapi.testclient import TestClient


def test_startup_reports_healthy_state(client) -> None:
    health = client.get("/health")
    assert health.status_code == 200

    payload = health.json()
    assert payload["status"] == "healthy"
    assert payload["version"] == "1.0.0"


def test_version_header_is_attached(client) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "Gemini Backend is running!"
    assert response.headers["X-App-Version"] == "1.0.0"


def test_key_endpoint_shows_only_prefix(client) -> None:
    response = client.get("/test-key")

    assert response.status_code == 200
    assert response.text == "GEMINI_API_KEY loaded: test-…"
    assert "dummy" not in response.text


def test_cors_preflight_allows_any_origin(client) -> None:
    response = client.options(
        "/analyze",
        headers={
            "Origin": "https://fitness.example",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] in ("*", "https://fitness.example")


def test_cors_origins_come_from_app_config_without_override(monkeypatch) -> None:
    main = importlib.import_module("main")
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://allowed.example")
    app = main.create_app()
    test_client = TestClient(app)

    allowed = test_client.options(
        "/analyze",
        headers={"Origin": "https://allowed.example", "Access-Control-Request-Method": "POST"},
    )
    denied = test_client.options(
        "/analyze",
        headers={"Origin": "https://other.example", "Access-Control-Request-Method": "POST"},
    )

    assert allowed.headers["access-control-allow-origin"] == "https://allowed.example"
    assert denied.status_code == 400


def test_missing_api_key_aborts_startup(config) -> None:
    main = importlib.import_module("main")
    config.GEMINI_API_KEY = None
    app = main.create_app(config_override=config)

    with pytest.raises(RuntimeError, match="GEMINI_API_KEY not found"):
        with TestClient(app):
            pass
