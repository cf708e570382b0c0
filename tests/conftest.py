from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from wanx_client.client import DashScopeClient


class ScriptedGateway:
    """Gateway double whose lookups replay a script; the last step repeats."""

    def __init__(self, *steps: Any) -> None:
        self.steps = list(steps)
        self.calls: list[str] = []

    async def lookup(self, task_id: str) -> Any:
        self.calls.append(task_id)
        step = self.steps[min(len(self.calls), len(self.steps)) - 1]
        if isinstance(step, Exception):
            raise step
        return step


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def task_body(status: str, task_id: str = "T1", **output: Any) -> dict:
    return {"request_id": "req-1", "output": {"task_id": task_id, "task_status": status, **output}}


class RecordingHandler:
    """httpx.MockTransport handler that records requests and delegates to a routing function."""

    def __init__(self, route: Callable[[httpx.Request], httpx.Response]) -> None:
        self.route = route
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.route(request)

    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]

    def lookups(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_client() -> Callable[..., DashScopeClient]:
    def factory(handler: Callable[[httpx.Request], httpx.Response], api_key: str | None = "sk-test", **kwargs: Any) -> DashScopeClient:
        return DashScopeClient(api_key=api_key, transport=httpx.MockTransport(handler), **kwargs)
    return factory
