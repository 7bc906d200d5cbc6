"""Error taxonomy shared by the HTTP client, data source and platform."""

from __future__ import annotations


class TGitError(Exception):
    """Base exception for all TGit integration errors."""


class HttpError(TGitError):
    """Non-2xx response that has no more specific classification."""

    def __init__(self, status_code: int, url: str, body: object = None) -> None:
        self.status_code = status_code
        self.url = url
        self.body = body
        super().__init__(f"Response code {status_code} for {url}")


class NotFoundError(HttpError):
    """Definitive absence of a resource (-> HTTP 404)."""

    def __init__(self, url: str, body: object = None) -> None:
        super().__init__(404, url, body)


class AuthenticationError(TGitError):
    """Invalid or missing credentials. Never retried."""


class ExternalHostError(TGitError):
    """The platform is failing or returned malformed data (5xx, 429, bad JSON).

    Wraps the original error so an outer layer can decide whether to retry.
    """

    def __init__(self, err: Exception, host_type: str = "tgit") -> None:
        self.err = err
        self.host_type = host_type
        self.status_code: int | None = getattr(err, "status_code", None)
        super().__init__(f"external-host-error: {host_type}: {err}")


# Platform-level failure codes surfaced by repository initialisation
# and branch operations.
REPOSITORY_ARCHIVED = "repository-archived"
REPOSITORY_EMPTY = "repository-empty"
REPOSITORY_DISABLED = "repository-disabled"
REPOSITORY_NOT_FOUND = "repository-not-found"
REPOSITORY_ACCESS_FORBIDDEN = "repository-forbidden"
REPOSITORY_CHANGED = "repository-changed"
TEMPORARY_ERROR = "temporary-error"
PLATFORM_AUTHENTICATION_ERROR = "authentication-error"
CONFIG_GIT_URL_UNAVAILABLE = "config-git-url-unavailable"


class PlatformError(TGitError):
    """Raised with one of the platform failure codes above."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(code)
