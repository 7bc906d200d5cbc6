"""Shared fixtures for tgit_bridge tests.

HTTP traffic is served by ``httpx.MockTransport``; no network access.
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from tgit_bridge.core.host_rules import HostRules
from tgit_bridge.http.client import TGitHttp

API = "https://git.code.tencent.com/api/v3"


class MockApi:
    """Canned responses keyed by ``(method, full URL)``; records every request.

    Several responses registered for the same key are served in order, the
    last one repeating.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], list[httpx.Response]] = {}
        self.calls: list[httpx.Request] = []

    def add(
        self,
        method: str,
        url: str,
        status: int = 200,
        *,
        json: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> MockApi:
        if content is not None:
            resp = httpx.Response(status, content=content, headers=headers)
        elif json is not None:
            resp = httpx.Response(status, json=json, headers=headers)
        else:
            resp = httpx.Response(status, headers=headers)
        self._routes.setdefault((method, url), []).append(resp)
        return self

    def get(self, url: str, status: int = 200, **kw: Any) -> MockApi:
        return self.add("GET", url, status, **kw)

    def post(self, url: str, status: int = 200, **kw: Any) -> MockApi:
        return self.add("POST", url, status, **kw)

    def put(self, url: str, status: int = 200, **kw: Any) -> MockApi:
        return self.add("PUT", url, status, **kw)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, str(request.url))
        queue = self._routes.get(key)
        if not queue:
            raise AssertionError(f"unexpected request: {key}")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    @property
    def urls(self) -> list[str]:
        return [f"{r.method} {r.url}" for r in self.calls]


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def api() -> MockApi:
    return MockApi()


@pytest.fixture
def host_rules() -> HostRules:
    rules = HostRules()
    rules.add("tgit", "abc123")
    return rules


@pytest.fixture
def http(api: MockApi, host_rules: HostRules) -> TGitHttp:
    client = httpx.AsyncClient(transport=httpx.MockTransport(api.handler))
    return TGitHttp(host_rules, base_url=f"{API}/", client=client)
