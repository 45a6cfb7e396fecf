"""
Shared fixtures and helpers for the polytrans test suite.

Vendor APIs are never contacted: every HTTPClient is built on an
``httpx.MockTransport`` whose handler records the requests it receives.
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from polytrans.config import AppConfig
from polytrans.utils.http_client import HTTPClient


class RecordingHandler:
    """MockTransport handler that records requests and answers from a callable."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self.respond = respond
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def hosts(self) -> List[str]:
        return [request.url.host for request in self.requests]

    def body(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)


def openai_response(content: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"choices": [{"message": {"role": "assistant", "content": content}}]},
    )


def gemini_response(text: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"candidates": [{"content": {"parts": [{"text": text}]}}]},
    )


def error_response(status_code: int, message: str = "error") -> httpx.Response:
    return httpx.Response(status_code, json={"error": {"message": message}})


def make_client(respond: Callable[[httpx.Request], httpx.Response]) -> Tuple[HTTPClient, RecordingHandler]:
    handler = RecordingHandler(respond)
    return HTTPClient(transport=httpx.MockTransport(handler)), handler


def make_config(
    keys: Optional[Dict[str, str]] = None,
    steps: Optional[List[Dict[str, Any]]] = None,
    routing_count: int = 1,
    **overrides: Any,
) -> AppConfig:
    data: Dict[str, Any] = {
        "api-keys": keys or {},
        "routing-count": routing_count,
    }
    if steps is not None:
        data["routing-steps"] = steps
    data.update(overrides)
    return AppConfig(**data)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep POLYTRANS_* variables and stray config files out of the tests."""
    import os

    for name in list(os.environ):
        if name.startswith("POLYTRANS_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
