"""
Shared fixtures for provisioner tests.

Nothing here talks to a real broker, registry or gateway: Kafka admin and
registry clients are mocks, HTTP answers are real `requests.Response`
objects with canned bodies, and sleeps are recorded instead of slept.
"""

import json
import logging
from concurrent.futures import Future
from typing import Any, Callable, List, Optional

import pytest
import requests

from libs.models.artifacts import Statement


class FakeClock:
    """Monotonic clock that only advances when something sleeps on it."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("tests.provisioner")


@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    def _make(status: int, body: Optional[Any] = None, text: str = "") -> requests.Response:
        resp = requests.Response()
        resp.status_code = status
        resp.encoding = "utf-8"
        if body is not None:
            resp._content = json.dumps(body).encode("utf-8")
        else:
            resp._content = text.encode("utf-8")
        return resp

    return _make


@pytest.fixture
def make_statement() -> Callable[..., Statement]:
    def _make(name: str, content: str = "SELECT 1", order: int = 0) -> Statement:
        return Statement(name=name, content=content, file_path=f"sql/{name}.sql", order=order)

    return _make


def _done_future(exc: Optional[BaseException] = None) -> Future:
    future: Future = Future()
    if exc is None:
        future.set_result(None)
    else:
        future.set_exception(exc)
    return future


@pytest.fixture
def topic_futures() -> Callable[..., Callable]:
    """
    Build a `create_topics` side effect.

    `outcomes` maps topic -> exception (or None for success). Topics not
    listed succeed.
    """

    def _build(outcomes: Optional[dict] = None) -> Callable:
        outcomes = outcomes or {}

        def _create_topics(new_topics, request_timeout=None):
            return {t.topic: _done_future(outcomes.get(t.topic)) for t in new_topics}

        return _create_topics

    return _build
