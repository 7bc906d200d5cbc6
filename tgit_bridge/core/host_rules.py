"""Per-host credential lookup."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse


@dataclass(frozen=True)
class HostRule:
    host_type: str
    token: str
    match_host: str | None = None


class HostRules:
    """Ordered list of credential rules keyed by host type and host name."""

    def __init__(self) -> None:
        self._rules: list[HostRule] = []

    def add(self, host_type: str, token: str, match_host: str | None = None) -> None:
        self._rules.append(HostRule(host_type=host_type, token=token, match_host=match_host))

    def find(self, host_type: str, url: str | None = None) -> HostRule | None:
        """Return the rule for *url*'s host, else the first rule for *host_type*."""
        candidates = [r for r in self._rules if r.host_type == host_type]
        if url:
            hostname = urlparse(url).hostname
            for rule in candidates:
                if rule.match_host and _host_of(rule.match_host) == hostname:
                    return rule
        for rule in candidates:
            if rule.match_host is None:
                return rule
        return None

    def secrets(self) -> list[str]:
        return [r.token for r in self._rules if r.token]

    def clear(self) -> None:
        self._rules.clear()


def _host_of(value: str) -> str | None:
    # match_host may be given as a bare host or as a URL
    if "://" in value:
        return urlparse(value).hostname
    return value
