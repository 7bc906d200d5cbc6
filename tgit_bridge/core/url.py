"""URL helpers."""

from __future__ import annotations

import re
from urllib.parse import quote, urljoin

_API_SUFFIX_RE = re.compile(r"/api/v3/?$")


def ensure_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"


def resolve_base_url(base_url: str, url: str) -> str:
    """Resolve *url* against *base_url*; absolute URLs are returned unchanged.

    A leading slash on *url* is treated as relative to the base path.
    """
    if re.match(r"^https?://", url):
        return url
    return urljoin(ensure_trailing_slash(base_url), url.lstrip("/"))


def join_url_parts(*parts: str) -> str:
    """Join URL parts with exactly one slash between each pair."""
    cleaned = [p.strip("/") for p in parts[1:] if p and p.strip("/")]
    head = parts[0].rstrip("/")
    return "/".join([head, *cleaned])


def url_escape(value: str) -> str:
    """Escape a project path as one opaque segment (``a/b`` -> ``a%2Fb``)."""
    return value.replace("/", "%2F") if value else value


def encode_project_path(path: str) -> str:
    """Percent-encode *path* completely, including slashes."""
    return quote(path, safe="")


def get_dep_host(registry_url: str | None, default: str) -> str:
    """Strip a trailing ``/api/v3`` from a registry URL."""
    return _API_SUFFIX_RE.sub("", (registry_url or default).rstrip("/") + "/").rstrip("/")
