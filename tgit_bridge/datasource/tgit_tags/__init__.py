"""TGit tags data source: release listing, digests and repo path resolution."""

from tgit_bridge.datasource.tgit_tags.datasource import (
    DEFAULT_REGISTRY_URL,
    TGitTagsDatasource,
    tgit_source_url,
)
from tgit_bridge.datasource.tgit_tags.models import Release, ReleaseResult, TGitCommit, TGitTag

__all__ = [
    "DEFAULT_REGISTRY_URL",
    "Release",
    "ReleaseResult",
    "TGitCommit",
    "TGitTag",
    "TGitTagsDatasource",
    "tgit_source_url",
]
