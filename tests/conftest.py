"""Shared fixtures for calls-gateway tests."""

from __future__ import annotations

import json

import httpx
import pytest

from calls_gateway.callservice import CallService
from calls_gateway.config import load_config
from calls_gateway.types import GatewayConfig

BASE_URL = "https://rtc.example.test/v1/apps/"
APP_ID = "app-123"
APP_SECRET = "s3cret"
SESSIONS_URL = BASE_URL + APP_ID + "/sessions/"


class FakeUpstream:
    """Records upstream requests and replays canned responses (no network)."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: object = {"sessionId": "s1"}
        self.text: str | None = None
        self.exc: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return load_config(
        config_dict={
            "app_id": APP_ID,
            "app_secret": APP_SECRET,
            "call_base_url": BASE_URL,
            "timeouts": {"connect": 1, "upstream": 2, "body_read": 0.2},
        },
        env={},
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def call_service(gateway_config, upstream) -> CallService:
    return CallService(gateway_config.upstream, client=upstream.client())
