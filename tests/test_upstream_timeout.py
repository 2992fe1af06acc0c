from __future__ import annotations

import importlib
import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
from fastapi.testclient import TestClient

from conftest import gemini_body

SLOW_GENERATION_SECONDS = 6


class SlowGeminiHandler(BaseHTTPRequestHandler):
    def _send_json(self, payload: dict) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:
        self._send_json(
            {"models": [{"name": "models/slow", "supportedGenerationMethods": ["generateContent"]}]}
        )

    def do_POST(self) -> None:
        length = int(self.headers.get("Content-Length", "0"))
        self.rfile.read(length)
        time.sleep(SLOW_GENERATION_SECONDS)
        self._send_json(gemini_body('{"analysis":"ok"}'))

    def log_message(self, format: str, *args) -> None:
        pass


@pytest.fixture
def slow_server_url(monkeypatch):
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)

    server = ThreadingHTTPServer(("127.0.0.1", 0), SlowGeminiHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/v1"
    finally:
        server.shutdown()
        server.server_close()


def test_shared_client_uses_configured_timeout(client, config) -> None:
    http_client = client.app.state.services.http_client

    assert http_client.timeout.read == config.AI_REQUEST_TIMEOUT
    assert http_client.timeout.connect == config.AI_REQUEST_TIMEOUT


def test_generation_slower_than_httpx_default_succeeds(config, slow_server_url) -> None:
    main = importlib.import_module("main")
    config.GEMINI_BASE_URL = slow_server_url
    config.AI_REQUEST_TIMEOUT = 30
    config.AI_MAX_RETRIES = 0
    app = main.create_app(config_override=config)

    with TestClient(app) as test_client:
        response = test_client.post(
            "/analyze",
            json={"userData": {"age": 30}, "exerciseData": {"type": "run"}},
        )

    assert response.status_code == 200
    assert response.json() == {"aiAnswer": "ok"}
