"""TGit source-control platform provider."""

from tgit_bridge.platform.tgit.models import (
    BranchStatus,
    Issue,
    PlatformResult,
    Pr,
    PrState,
    RepoContext,
    RepoResult,
    StatusEntry,
)
from tgit_bridge.platform.tgit.platform import DRAFT_PREFIX, TGitPlatform
from tgit_bridge.platform.tgit.status import compute_branch_status, find_status_check

__all__ = [
    "DRAFT_PREFIX",
    "BranchStatus",
    "Issue",
    "PlatformResult",
    "Pr",
    "PrState",
    "RepoContext",
    "RepoResult",
    "StatusEntry",
    "TGitPlatform",
    "compute_branch_status",
    "find_status_check",
]
