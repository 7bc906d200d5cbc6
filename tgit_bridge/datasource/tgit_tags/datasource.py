"""TGit tags data source.

Lists a repository's tags as releases and resolves commit digests. Package
names may point below the repository root (``group/repo/sub/dir``); the
actual repository is found by probing decreasing path prefixes.
"""

from __future__ import annotations

from collections.abc import Sequence

import httpx
import structlog
from pydantic import ValidationError

from tgit_bridge.core.cache import PackageCache
from tgit_bridge.core.config import get_settings
from tgit_bridge.core.errors import NotFoundError, TGitError
from tgit_bridge.core.url import encode_project_path, get_dep_host, join_url_parts
from tgit_bridge.datasource.tgit_tags.models import (
    Release,
    ReleaseResult,
    TGitCommit,
    TGitTag,
)
from tgit_bridge.http.client import TGitHttp

log = structlog.get_logger("tgit_bridge.datasource")

DEFAULT_REGISTRY_URL = "https://git.code.tencent.com"

_API_PREFIX = "api/v3/projects"


def dep_host(registry_url: str | None = None) -> str:
    return get_dep_host(registry_url, DEFAULT_REGISTRY_URL)


def tgit_source_url(package_name: str, registry_url: str | None = None) -> str:
    return join_url_parts(dep_host(registry_url), package_name)


class TGitTagsDatasource:
    """Release and digest lookups against a TGit host."""

    id = "tgit-tags"
    default_registry_urls = [DEFAULT_REGISTRY_URL]

    def __init__(self, http: TGitHttp | None = None, cache: PackageCache | None = None) -> None:
        self.http = http or TGitHttp()
        if cache is None:
            cache = PackageCache(default_ttl=get_settings().cache_ttl)
        self.cache = cache

    # ── releases ───────────────────────────────────────────────────────────

    async def get_releases(
        self, package_name: str, registry_url: str | None = None
    ) -> ReleaseResult:
        """Return every tag of the package's repository as a release.

        Cached per ``{host}:{package_name}``.
        """
        host = dep_host(registry_url)
        return await self.cache.get_or_set(
            f"datasource-{self.id}",
            f"{host}:{package_name}",
            lambda: self._fetch_releases(package_name, registry_url),
        )

    async def _fetch_releases(
        self, package_name: str, registry_url: str | None
    ) -> ReleaseResult:
        host = dep_host(registry_url)
        repo = await self.get_repo(package_name, registry_url)
        url = join_url_parts(
            host, _API_PREFIX, encode_project_path(repo), "repository/tags?per_page=100"
        )
        body = (await self.http.get_json(url, paginate=True)).body or []
        tags = [TGitTag.model_validate(item) for item in body]

        releases = [
            Release(
                version=tag.name,
                git_ref=tag.name,
                release_timestamp=tag.commit.created_at if tag.commit else None,
            )
            for tag in tags
        ]
        log.debug("tgit_tags.releases", repo=repo, count=len(releases))
        return ReleaseResult(source_url=tgit_source_url(repo, registry_url), releases=releases)

    # ── digest ─────────────────────────────────────────────────────────────

    async def get_digest(
        self,
        package_name: str,
        registry_url: str | None = None,
        new_value: str | None = None,
    ) -> str | None:
        """Return the latest commit hash, or the head of branch *new_value*.

        Lookup failures are logged and reported as ``None``; only errors from
        repository path resolution propagate.
        """
        host = dep_host(registry_url)
        key = f"{host}:{package_name}"
        if new_value:
            key = f"{key}@{new_value}"
        return await self.cache.get_or_set(
            f"datasource-{self.id}-commit",
            key,
            lambda: self._fetch_digest(package_name, registry_url, new_value),
        )

    async def _fetch_digest(
        self,
        package_name: str,
        registry_url: str | None,
        new_value: str | None,
    ) -> str | None:
        host = dep_host(registry_url)
        repo = await self.get_repo(package_name, registry_url)
        encoded = encode_project_path(repo)

        digest: str | None = None
        try:
            if new_value:
                url = join_url_parts(host, _API_PREFIX, encoded, "repository/commits", new_value)
                body = (await self.http.get_json(url)).body
                digest = TGitCommit.model_validate(body).id
            else:
                url = join_url_parts(host, _API_PREFIX, encoded, "repository/commits?per_page=1")
                body = (await self.http.get_json(url)).body
                if isinstance(body, list) and body:
                    digest = TGitCommit.model_validate(body[0]).id
        except (TGitError, httpx.HTTPError, ValidationError) as exc:
            log.debug(
                "tgit_tags.digest_failed",
                repo=repo,
                registry_url=registry_url,
                error=str(exc),
            )

        return digest or None

    # ── repository path resolution ─────────────────────────────────────────

    async def get_repo(self, package_name: str, registry_url: str | None = None) -> str:
        """Resolve *package_name* to the repository that actually hosts it.

        Cached per ``{host}:{package_name}``.
        """
        host = dep_host(registry_url)
        return await self.cache.get_or_set(
            f"datasource-{self.id}-repo",
            f"{host}:{package_name}",
            lambda: self.get_source_repo(host, package_name.split("/")),
        )

    async def get_source_repo(self, host: str, package_path_parts: Sequence[str]) -> str:
        """Probe ``projects/<path>`` for the longest existing prefix.

        Paths of two segments or fewer are returned without a request. A 404
        drops the last segment and probes again; any other error propagates.
        """
        parts = list(package_path_parts)
        while len(parts) > 2:
            package_name = "/".join(parts)
            url = join_url_parts(host, _API_PREFIX, encode_project_path(package_name))
            try:
                await self.http.get_json(url)
            except NotFoundError:
                log.debug("tgit_tags.repo_probe_miss", package_name=package_name)
                parts = parts[:-1]
                continue
            return package_name
        return "/".join(parts)
