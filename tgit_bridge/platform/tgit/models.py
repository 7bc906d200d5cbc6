"""TGit platform response schemas and the provider-neutral result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator


class BranchStatus(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class PrState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"
    ALL = "all"
    NOT_OPEN = "!open"


MergeMethod = Literal["merge", "squash", "rebase"]
MergeStrategy = Literal["merge-commit", "squash", "rebase", "auto", "fast-forward"]


# ── API schemas ────────────────────────────────────────────────────────────


class _Schema(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TGitUser(_Schema):
    id: int
    username: str | None = None


class TGitUserStatus(_Schema):
    state: str


class TGitIssue(_Schema):
    id: int
    iid: int | None = None
    title: str
    labels: list[str] | None = None


class TGitIssueDetail(_Schema):
    title: str
    description: str | None = None


class TGitComment(_Schema):
    id: int
    body: str


class TGitMergeRequest(_Schema):
    id: int
    iid: int | None = None
    title: str = ""
    state: str = ""
    source_branch: str = ""
    target_branch: str = ""
    description: str | None = None
    merge_status: str | None = None
    assignee: TGitUser | None = None
    reviewers: list[TGitUser] = []
    labels: list[str] = []
    sha: str | None = None
    created_at: str | None = None


class TGitMergeRequestReview(_Schema):
    id: int | None = None
    iid: int | None = None
    state: str | None = None  # empty | approving | approved | change_required | change_denied
    reviewers: list[TGitUser] = []
    labels: list[str] = []


class RepoResponse(_Schema):
    archived: bool = False
    default_branch: str | None = None
    template_repository: bool = False
    ssh_url_to_repo: str | None = None
    http_url_to_repo: str | None = None
    https_url_to_repo: str | None = None
    forked_from_project: str | None = None
    merge_requests_enabled: bool | None = None
    path_with_namespace: str = ""
    merge_method: MergeMethod | None = None


class StatusEntry(_Schema):
    """One check/pipeline report against a commit."""

    state: str | None = None
    name: str = ""
    allow_failure: bool = False
    target_url: str | None = None
    updated_at: str | None = None

    @field_validator("state", mode="before")
    @classmethod
    def _state_text(cls, v: object) -> str | None:
        return v if v is None or isinstance(v, str) else str(v)

    @field_validator("name", mode="before")
    @classmethod
    def _name_or_empty(cls, v: object) -> object:
        return "" if v is None else v

    @field_validator("allow_failure", mode="before")
    @classmethod
    def _null_is_false(cls, v: object) -> object:
        return False if v is None else v


# ── provider-neutral results ───────────────────────────────────────────────


@dataclass
class Pr:
    number: int
    source_branch: str
    title: str
    state: str
    target_branch: str | None = None
    display_number: str | None = None
    body: str | None = None
    cannot_merge_reason: str | None = None
    has_assignees: bool = False
    has_reviewers: bool = False
    labels: list[str] = field(default_factory=list)
    sha: str | None = None
    created_at: str | None = None
    is_draft: bool = False


@dataclass
class Issue:
    number: int
    title: str
    body: str | None = None


@dataclass
class PlatformResult:
    endpoint: str
    git_author: str | None = None


@dataclass
class RepoResult:
    default_branch: str
    is_fork: bool


@dataclass
class RepoContext:
    """Per-repository state for one initialised repository.

    Passed explicitly into every repository-scoped platform operation so a
    single process can work on several repositories.
    """

    repository: str  # already escaped (a%2Fb)
    default_branch: str = ""
    merge_method: MergeMethod = "merge"
    clone_submodules: bool = False
    ignore_pr_author: bool = False
    pr_list: list[Pr] | None = None
    issue_list: list[TGitIssue] | None = None
