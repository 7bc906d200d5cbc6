"""Async TGit API client with cursor-follow pagination and error classification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx
import structlog

from tgit_bridge.core.config import get_settings
from tgit_bridge.core.errors import (
    AuthenticationError,
    ExternalHostError,
    HttpError,
    NotFoundError,
)
from tgit_bridge.core.host_rules import HostRules
from tgit_bridge.core.url import resolve_base_url

log = structlog.get_logger("tgit_bridge.http")

T = TypeVar("T")

HOST_TYPE = "tgit"


@dataclass(frozen=True)
class PageCursor:
    """Page position read from the ``x-page`` family of response headers."""

    current: int
    previous: int | None = None
    next: int | None = None


@dataclass
class HttpResponse(Generic[T]):
    body: T
    headers: httpx.Headers
    status_code: int


def parse_page_cursor(headers: httpx.Headers | dict[str, str]) -> PageCursor | None:
    """Build a :class:`PageCursor` from response headers.

    Returns ``None`` when ``x-page`` is missing or not an integer.
    """
    headers = httpx.Headers(headers)
    current = _parse_header_int(headers.get("x-page"))
    if current is None:
        return None
    return PageCursor(
        current=current,
        previous=_parse_header_int(headers.get("x-prev-page")),
        next=_parse_header_int(headers.get("x-next-page")),
    )


def _parse_header_int(value: str | None) -> int | None:
    """Safely parse an integer header value."""
    if not value:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


class TGitHttp:
    """Thin async wrapper around the TGit REST API (``/api/v3``).

    Authentication comes from *host_rules*: the token registered for the
    request host is sent as ``PRIVATE-TOKEN``. The client never retries;
    it only classifies failures so callers can decide.

    Without explicit arguments the base URL and token come from
    ``TGIT_BRIDGE_ENDPOINT`` / ``TGIT_BRIDGE_TOKEN``.
    """

    def __init__(
        self,
        host_rules: HostRules | None = None,
        *,
        base_url: str | None = None,
        host_type: str = HOST_TYPE,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        settings = get_settings()
        if host_rules is None:
            host_rules = HostRules()
            if settings.token:
                host_rules.add(host_type, settings.token)
        self.host_rules = host_rules
        self.host_type = host_type
        self._base_url = base_url or settings.endpoint
        self._client = client or httpx.AsyncClient(
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> TGitHttp:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_base_url(self, url: str) -> None:
        self._base_url = url

    # ── public ─────────────────────────────────────────────────────────────

    async def get_json(
        self,
        url: str,
        *,
        paginate: bool = False,
        params: dict[str, Any] | None = None,
        base_url: str | None = None,
        token: str | None = None,
    ) -> HttpResponse[Any]:
        return await self.request(
            "GET", url, paginate=paginate, params=params, base_url=base_url, token=token
        )

    async def post_json(
        self,
        url: str,
        *,
        json: Any = None,
        base_url: str | None = None,
        token: str | None = None,
    ) -> HttpResponse[Any]:
        return await self.request("POST", url, json=json, base_url=base_url, token=token)

    async def put_json(
        self,
        url: str,
        *,
        json: Any = None,
        base_url: str | None = None,
        token: str | None = None,
    ) -> HttpResponse[Any]:
        return await self.request("PUT", url, json=json, base_url=base_url, token=token)

    async def get_text(
        self,
        url: str,
        *,
        base_url: str | None = None,
        token: str | None = None,
    ) -> HttpResponse[str]:
        """GET returning the raw response text (no JSON parsing)."""
        return await self.request("GET", url, base_url=base_url, token=token, parse_json=False)

    async def request(
        self,
        method: str,
        url: str,
        *,
        paginate: bool = False,
        params: dict[str, Any] | None = None,
        json: Any = None,
        base_url: str | None = None,
        token: str | None = None,
        parse_json: bool = True,
    ) -> HttpResponse[Any]:
        """Issue one request and, if *paginate*, follow ``x-next-page`` cursors.

        Follow-up pages are fetched sequentially against the same resolved URL
        with ``page=<next>``; list bodies are appended in order to the first
        page's body. Pagination stops at the first page without a next cursor
        or whose body is not a list.
        """
        resolved = httpx.URL(resolve_base_url(base_url or self._base_url, url))
        if params:
            resolved = resolved.copy_merge_params(params)

        result = await self._send(method, resolved, json=json, token=token, parse_json=parse_json)
        if not (paginate and isinstance(result.body, list)):
            return result

        cursor = parse_page_cursor(result.headers)
        seen = {cursor.current} if cursor else set()
        while cursor is not None and cursor.next is not None:
            if cursor.next in seen:
                log.warning("tgit.page_cycle", url=str(resolved), page=cursor.next)
                break
            seen.add(cursor.next)
            page_url = resolved.copy_set_param("page", str(cursor.next))
            page = await self._send(method, page_url, json=json, token=token, parse_json=True)
            if not isinstance(page.body, list):
                break
            result.body.extend(page.body)
            cursor = parse_page_cursor(page.headers)

        return result

    # ── internal ───────────────────────────────────────────────────────────

    async def _send(
        self,
        method: str,
        url: httpx.URL,
        *,
        json: Any,
        token: str | None,
        parse_json: bool,
    ) -> HttpResponse[Any]:
        headers: dict[str, str] = {}
        resolved_token = token or self._lookup_token(str(url))
        if resolved_token:
            headers["PRIVATE-TOKEN"] = resolved_token

        resp = await self._client.request(method, url, headers=headers, json=json)
        if resp.is_error:
            raise self._classify_error(resp, str(url))

        if not parse_json:
            return HttpResponse(body=resp.text, headers=resp.headers, status_code=resp.status_code)

        body: Any = None
        if resp.content:
            try:
                body = resp.json()
            except ValueError as exc:
                log.debug("tgit.parse_error", url=str(url), status=resp.status_code)
                raise ExternalHostError(exc, self.host_type) from exc
        return HttpResponse(body=body, headers=resp.headers, status_code=resp.status_code)

    def _lookup_token(self, url: str) -> str | None:
        rule = self.host_rules.find(self.host_type, url)
        return rule.token if rule else None

    def _classify_error(self, resp: httpx.Response, url: str) -> Exception:
        status = resp.status_code
        body = _error_body(resp)
        if status == 404:
            log.debug("tgit.not_found", url=url)
            return NotFoundError(url, body)

        log.debug("tgit.api_error", url=url, status=status)
        err = HttpError(status, url, body)
        if status == 429 or 500 <= status < 600:
            return ExternalHostError(err, self.host_type)
        if status == 401:
            return AuthenticationError(str(err))
        return err


def _error_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text
