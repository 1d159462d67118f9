"""
Shared fixtures: a scripted WebDAV server behind httpx.MockTransport and
gateway settings pointing at it.
"""
from collections import defaultdict
from typing import Dict, List, Tuple, Union

import httpx
import pytest

from webdav_gateway.config import Settings, WebDAVConfig

BASE_URL = "https://dav.example.com/crmdata"

Outcome = Union[int, httpx.Response, Exception]


class FakeWebDAVServer:
    """
    Answers WebDAV verbs from scripts.

    A script is a list of outcomes consumed one per request; the last one
    repeats. Outcomes are a status code, a ready httpx.Response, or an
    exception to raise (e.g. httpx.ConnectError). URL-specific scripts win
    over method-wide ones, which win over the defaults.
    """

    DEFAULTS = {"PROPFIND": 207, "OPTIONS": 200, "MKCOL": 201, "PUT": 201, "GET": 200}

    def __init__(self):
        self.calls: List[Tuple[str, str]] = []
        self.bodies: List[bytes] = []
        self._url_scripts: Dict[Tuple[str, str], List[Outcome]] = {}
        self._method_scripts: Dict[str, List[Outcome]] = {}
        self._counters = defaultdict(int)
        self.files: Dict[str, bytes] = {}

    def script(self, method: str, url: str, *outcomes: Outcome) -> None:
        self._url_scripts[(method, url)] = list(outcomes)

    def script_method(self, method: str, *outcomes: Outcome) -> None:
        self._method_scripts[method] = list(outcomes)

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    def urls(self, method: str) -> List[str]:
        return [u for m, u in self.calls if m == method]

    def _next(self, key, script: List[Outcome]) -> Outcome:
        index = min(self._counters[key], len(script) - 1)
        self._counters[key] += 1
        return script[index]

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, url = request.method, str(request.url)
        self.calls.append((method, url))
        if method == "PUT":
            self.bodies.append(request.content)

        if (method, url) in self._url_scripts:
            outcome = self._next((method, url), self._url_scripts[(method, url)])
        elif method in self._method_scripts:
            outcome = self._next(method, self._method_scripts[method])
        else:
            outcome = self.DEFAULTS.get(method, 405)

        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, httpx.Response):
            # Fresh copy so a repeated outcome can be served more than once
            return httpx.Response(outcome.status_code, headers=outcome.headers, content=outcome.content)
        if method == "PUT" and 200 <= outcome < 300:
            self.files[url] = request.content
        if method == "GET" and outcome == 200:
            return httpx.Response(200, content=self.files.get(url, b""))
        return httpx.Response(outcome)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


async def no_sleep(delay: float) -> None:
    return None


@pytest.fixture
def server() -> FakeWebDAVServer:
    return FakeWebDAVServer()


@pytest.fixture
def webdav_config() -> WebDAVConfig:
    return WebDAVConfig(base_url=BASE_URL, username="alice", password="s3cret")


@pytest.fixture
def gateway_settings() -> Settings:
    return Settings(
        _env_file=None,
        WEBDAV_URL=BASE_URL,
        WEBDAV_USERNAME="alice",
        WEBDAV_PASSWORD="s3cret",
        WEBDAV_UPLOAD_RETRY_DELAY=0,
        SLACK_WEBHOOK_URL=None,
    )
