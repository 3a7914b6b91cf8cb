# marking_backend/tests/conftest.py
import os
import json
from typing import Any

# --- Set env before anything imports the app code ---
os.environ["MARKING_API_URL"] = "https://marking.example/"
os.environ["MARKING_API_KEY"] = "test-key"
os.environ["MARKING_REQUIRE_API_KEY"] = "0"
for _name in ("ENGLISHGPT_API_URL", "PUBLIC_MARKING_API_BASE_URL", "ENGLISHGPT_API_KEY", "INTERNAL_API_KEY"):
    os.environ.pop(_name, None)

import httpx
import pytest

from marking_backend.config import MarkingSettings
from marking_backend.services import marking_client


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    monkeypatch.setenv("MARKING_API_URL", "https://marking.example/")
    monkeypatch.setenv("MARKING_API_KEY", "test-key")
    monkeypatch.setenv("MARKING_REQUIRE_API_KEY", "0")


@pytest.fixture()
def settings():
    return MarkingSettings(base_url="https://marking.example/", api_key="test-key", timeout=5)


class FakeResponse:
    def __init__(self, status_code: int = 200, obj: Any = None, text: str | None = None):
        self.status_code = status_code
        self._obj = obj
        self.text = text if text is not None else json.dumps(obj)

    def json(self):
        if self._obj is None:
            return json.loads(self.text)
        return self._obj


class FakeMarkingAPI:
    """Stands in for httpx.AsyncClient; records every POST it receives."""

    def __init__(self):
        self.calls: list[dict] = []
        self.responses: list = []

    def reply(self, status_code: int = 200, obj: Any = None, text: str | None = None):
        self.responses.append(FakeResponse(status_code, obj, text))
        return self

    def fail(self, exc: Exception):
        self.responses.append(exc)
        return self

    # httpx.AsyncClient surface
    def __call__(self, timeout=None):
        self.timeout = timeout
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False

    async def post(self, url, headers=None, json=None):
        self.calls.append({"url": url, "headers": headers, "json": json})
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


@pytest.fixture()
def marking_api(monkeypatch):
    api = FakeMarkingAPI()
    monkeypatch.setattr(
        marking_client,
        "httpx",
        type("HX", (), {"AsyncClient": api, "RequestError": httpx.RequestError}),
    )
    return api
