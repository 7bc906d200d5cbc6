"""TGit source-control provider.

Maps the generic repository / merge request / issue operations onto the TGit
``/api/v3`` REST API. Repository-scoped calls take an explicit
:class:`RepoContext` returned by :meth:`TGitPlatform.init_repo`.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Literal

import httpx
import json5
import structlog
from packaging.version import Version
from pydantic import ValidationError

from tgit_bridge.core.errors import (
    CONFIG_GIT_URL_UNAVAILABLE,
    PLATFORM_AUTHENTICATION_ERROR,
    REPOSITORY_ACCESS_FORBIDDEN,
    REPOSITORY_ARCHIVED,
    REPOSITORY_CHANGED,
    REPOSITORY_DISABLED,
    REPOSITORY_EMPTY,
    REPOSITORY_NOT_FOUND,
    TEMPORARY_ERROR,
    AuthenticationError,
    HttpError,
    NotFoundError,
    PlatformError,
    TGitError,
)
from tgit_bridge.core.host_rules import HostRules
from tgit_bridge.core.text import sanitize, smart_truncate
from tgit_bridge.core.url import ensure_trailing_slash, url_escape
from tgit_bridge.git.local import GitCommandError, LocalGit
from tgit_bridge.http.client import HOST_TYPE, TGitHttp
from tgit_bridge.platform.tgit import merge_request
from tgit_bridge.platform.tgit.models import (
    BranchStatus,
    Issue,
    MergeStrategy,
    PlatformResult,
    Pr,
    PrState,
    RepoContext,
    RepoResponse,
    RepoResult,
    StatusEntry,
    TGitComment,
    TGitIssue,
    TGitIssueDetail,
)
from tgit_bridge.platform.tgit.status import (
    BRANCH_STATUS_TO_STATE,
    compute_branch_status,
    find_status_check,
)
from tgit_bridge.platform.tgit.users import get_user_id, is_user_active

log = structlog.get_logger("tgit_bridge.platform")

DRAFT_PREFIX = "[WIP] "
NOT_FORKED_PATTERN = "Forked Project not found"

_AUTOMERGE_ATTEMPTS = 5
_LONG_DESCRIPTION_VERSION = Version("13.4.0")
_STATUS_TRANSITION_ERROR = "Cannot transition status via :enqueue from :pending"
_ISSUES_DISABLED = "Issues are disabled for this repo"


def _mr_wording(text: str) -> str:
    return text.replace("Pull Request", "Merge Request").replace("PR", "MR")


def massage_pr(pr: Pr) -> Pr:
    """Strip the draft prefix from the title and flag the PR as a draft."""
    if pr.title.startswith(DRAFT_PREFIX):
        pr.title = pr.title[len(DRAFT_PREFIX) :]
        pr.is_draft = True
    return pr


def _pr_state(state: str) -> str:
    return PrState.OPEN.value if state == "opened" else state


def _status_entry(item: Any) -> StatusEntry:
    # unreadable reports count as a check with no known state
    try:
        return StatusEntry.model_validate(item)
    except ValidationError:
        log.warning("platform.malformed_status", item=item)
        return StatusEntry()


def _error_message(exc: Exception) -> str:
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        return str(body.get("message") or "")
    return str(exc)


def matches_state(state: str, desired_state: str) -> bool:
    if desired_state == PrState.ALL.value:
        return True
    if desired_state.startswith("!"):
        return state != desired_state[1:]
    return state == desired_state


class TGitPlatform:
    """TGit implementation of the source-control platform operations."""

    def __init__(
        self,
        git: LocalGit,
        http: TGitHttp | None = None,
        host_rules: HostRules | None = None,
        *,
        endpoint: str | None = None,
        version: str = "0.0.0",
        status_delay: float = 1.0,
        automerge_delay: float = 0.5,
    ) -> None:
        self.git = git
        if http is None:
            http = TGitHttp(host_rules, base_url=endpoint)
        self.http = http
        self.host_rules = host_rules if host_rules is not None else http.host_rules
        self.endpoint = endpoint or http.base_url
        self.version = version
        self._status_delay = status_delay
        self._automerge_delay = automerge_delay

    # ── platform / repository ──────────────────────────────────────────────

    async def init_platform(
        self,
        *,
        endpoint: str | None = None,
        token: str | None = None,
        git_author: str | None = None,
    ) -> PlatformResult:
        if not token:
            raise ValueError("Init: You must configure a Tencent Git personal access token")
        if endpoint:
            self.endpoint = ensure_trailing_slash(endpoint)
            self.http.set_base_url(self.endpoint)
        else:
            log.debug("platform.default_endpoint", endpoint=self.endpoint)
        if self.host_rules.find(HOST_TYPE, self.endpoint) is None:
            self.host_rules.add(HOST_TYPE, token)

        result = PlatformResult(endpoint=self.endpoint, git_author=git_author)
        if not git_author:
            try:
                user = (await self.http.get_json("user", token=token)).body
                result.git_author = f"{user['name']} <{user['email']}>"
            except (TGitError, KeyError, TypeError) as exc:
                log.error(
                    "platform.auth_failed",
                    error=str(exc),
                    hint='check that the token includes "api" permissions',
                )
                raise AuthenticationError("Init: Authentication failure") from exc
        return result

    async def get_repos(self) -> list[str]:
        """All non-archived repositories the token can access."""
        log.debug("platform.autodiscover")
        try:
            body = (await self.http.get_json("projects/accessable?per_page=100", paginate=True)).body
        except TGitError as exc:
            log.error("platform.get_repos_failed", error=str(exc))
            raise
        repos = [RepoResponse.model_validate(item) for item in body or []]
        log.debug("platform.discovered", count=len(repos))
        return [r.path_with_namespace for r in repos if not r.archived]

    async def init_repo(
        self,
        repository: str,
        *,
        clone_submodules: bool = False,
        ignore_pr_author: bool = False,
        git_url: Literal["default", "ssh", "endpoint"] | None = None,
    ) -> tuple[RepoContext, RepoResult]:
        ctx = RepoContext(
            repository=url_escape(repository),
            clone_submodules=clone_submodules,
            ignore_pr_author=ignore_pr_author,
        )
        try:
            body = (await self.http.get_json(f"projects/{ctx.repository}")).body
            repo = RepoResponse.model_validate(body)
            if repo.archived:
                log.debug("platform.repo_archived", repository=repository)
                raise PlatformError(REPOSITORY_ARCHIVED)
            if repo.default_branch is None or repo.template_repository:
                raise PlatformError(REPOSITORY_EMPTY)
            if repo.merge_requests_enabled is False:
                log.debug("platform.mrs_disabled", repository=repository)
                raise PlatformError(REPOSITORY_DISABLED)
            if not repo.default_branch:
                log.warning("platform.repo_fetch_failed", repository=repository)
                raise PlatformError(TEMPORARY_ERROR)
            ctx.default_branch = repo.default_branch
            ctx.merge_method = repo.merge_method or "merge"
            log.debug("platform.default_branch", repository=repository, branch=ctx.default_branch)

            url = self._get_repo_url(git_url, repo)
            await self.git.init_repo(url, ctx.default_branch, clone_submodules)
            is_fork = repo.forked_from_project != NOT_FORKED_PATTERN
        except PlatformError:
            raise
        except NotFoundError as exc:
            raise PlatformError(REPOSITORY_NOT_FOUND) from exc
        except HttpError as exc:
            if exc.status_code == 403:
                raise PlatformError(REPOSITORY_ACCESS_FORBIDDEN) from exc
            log.debug("platform.init_repo_error", error=str(exc))
            raise
        except GitCommandError as exc:
            if "HEAD is not a symbolic ref" in exc.stderr:
                raise PlatformError(REPOSITORY_EMPTY) from exc
            raise

        return ctx, RepoResult(default_branch=ctx.default_branch, is_fork=is_fork)

    def _get_repo_url(self, git_url: str | None, repo: RepoResponse) -> str:
        if git_url == "ssh":
            if not repo.ssh_url_to_repo:
                raise PlatformError(CONFIG_GIT_URL_UNAVAILABLE)
            log.debug("platform.clone_url", kind="ssh")
            return repo.ssh_url_to_repo

        repo_url = repo.https_url_to_repo or repo.http_url_to_repo
        if not repo_url:
            raise PlatformError(CONFIG_GIT_URL_UNAVAILABLE)
        log.debug("platform.clone_url", kind="http")
        rule = self.host_rules.find(HOST_TYPE, self.endpoint)
        url = httpx.URL(repo_url)
        if rule:
            url = url.copy_with(username="private", password=rule.token)
        return str(url)

    @staticmethod
    def get_repo_force_rebase(ctx: RepoContext) -> bool:
        return ctx.merge_method != "merge"

    async def get_raw_file(
        self,
        file_name: str,
        ctx: RepoContext | None = None,
        *,
        repo_name: str | None = None,
        branch_or_tag: str | None = None,
    ) -> str:
        if repo_name:
            repo = url_escape(repo_name)
        elif ctx is not None:
            repo = ctx.repository
        else:
            raise ValueError("get_raw_file: either ctx or repo_name is required")
        url = (
            f"projects/{repo}/repository/blobs/{branch_or_tag or 'HEAD'}"
            f"?file_path={url_escape(file_name)}"
        )
        return (await self.http.get_text(url)).body

    async def get_json_file(
        self,
        file_name: str,
        ctx: RepoContext | None = None,
        *,
        repo_name: str | None = None,
        branch_or_tag: str | None = None,
    ) -> Any:
        raw = await self.get_raw_file(
            file_name, ctx, repo_name=repo_name, branch_or_tag=branch_or_tag
        )
        if file_name.endswith(".json5"):
            return json5.loads(raw)
        return json.loads(raw)

    # ── branch status ──────────────────────────────────────────────────────

    async def _get_status(self, ctx: RepoContext, branch_name: str) -> list[StatusEntry] | None:
        sha = await self.git.get_branch_commit(branch_name)
        url = f"projects/{ctx.repository}/commits/{sha}/statuses"
        try:
            body = (await self.http.get_json(url, paginate=True)).body
        except NotFoundError as exc:
            log.debug("platform.status_not_found", branch=branch_name)
            raise PlatformError(REPOSITORY_CHANGED) from exc
        if not isinstance(body, list):
            log.warning("platform.unexpected_statuses", branch=branch_name, body=body)
            return None
        return [_status_entry(item) for item in body]

    async def get_branch_status(self, ctx: RepoContext, branch_name: str) -> BranchStatus:
        """Combined status of all checks on the head commit of *branch_name*."""
        log.debug("platform.get_branch_status", branch=branch_name)
        if not await self.git.branch_exists(branch_name):
            raise PlatformError(REPOSITORY_CHANGED)

        statuses = await self._get_status(ctx, branch_name)
        if statuses is None:
            return BranchStatus.YELLOW
        log.debug("platform.statuses", branch=branch_name, count=len(statuses))
        return compute_branch_status(statuses)

    async def get_branch_status_check(
        self, ctx: RepoContext, branch_name: str, context: str
    ) -> BranchStatus | None:
        statuses = await self._get_status(ctx, branch_name) or []
        return find_status_check(statuses, context)

    async def set_branch_status(
        self,
        ctx: RepoContext,
        branch_name: str,
        context: str,
        description: str,
        state: BranchStatus,
        url: str | None = None,
    ) -> None:
        sha = await self.git.get_branch_commit(branch_name)
        endpoint = f"projects/{ctx.repository}/commit/{sha}/statuses"
        options: dict[str, Any] = {
            "state": BRANCH_STATUS_TO_STATE.get(state, "success"),
            "description": description,
            "context": context,
        }
        if url:
            options["target_url"] = url
        try:
            # pipelines for the sha may not exist yet
            await asyncio.sleep(self._status_delay)
            await self.http.post_json(endpoint, json=options)
            await self._get_status(ctx, branch_name)
        except TGitError as exc:
            if _error_message(exc).startswith(_STATUS_TRANSITION_ERROR):
                log.debug("platform.status_transition_ignored", branch=branch_name)
            else:
                log.warning("platform.set_status_failed", branch=branch_name, error=str(exc))

    # ── merge requests ─────────────────────────────────────────────────────

    async def _fetch_pr_list(self, ctx: RepoContext) -> list[Pr]:
        params = {"per_page": "100"}
        if not ctx.ignore_pr_author:
            params["scope"] = "created_by_me"
        try:
            body = (
                await self.http.get_json(
                    f"projects/{ctx.repository}/merge_requests", params=params, paginate=True
                )
            ).body
        except HttpError as exc:
            log.debug("platform.pr_list_failed", error=str(exc))
            if exc.status_code == 403:
                raise PlatformError(PLATFORM_AUTHENTICATION_ERROR) from exc
            raise
        return [
            massage_pr(
                Pr(
                    number=item["id"],
                    source_branch=item.get("source_branch", ""),
                    title=item.get("title", ""),
                    state=_pr_state(item.get("state", "")),
                    created_at=item.get("created_at"),
                )
            )
            for item in body or []
        ]

    async def get_pr_list(self, ctx: RepoContext) -> list[Pr]:
        if ctx.pr_list is None:
            ctx.pr_list = await self._fetch_pr_list(ctx)
        return ctx.pr_list

    async def _try_pr_automerge(self, ctx: RepoContext, pr_id: int, enabled: bool) -> None:
        if not enabled:
            return
        try:
            # wait for the MR to become mergeable before merging
            for attempt in range(1, _AUTOMERGE_ATTEMPTS + 1):
                mr = await merge_request.get_mr(self.http, ctx.repository, pr_id)
                if mr.merge_status == "can_be_merged":
                    break
                await asyncio.sleep(self._automerge_delay * attempt)

            strategy: MergeStrategy = (
                "merge-commit" if ctx.merge_method == "merge" else ctx.merge_method
            )
            await self.merge_pr(ctx, pr_id, strategy)
        except (TGitError, ValidationError) as exc:
            log.debug("platform.automerge_failed", pr=pr_id, error=str(exc))

    async def create_pr(
        self,
        ctx: RepoContext,
        *,
        source_branch: str,
        target_branch: str,
        pr_title: str,
        pr_body: str,
        draft_pr: bool = False,
        labels: list[str] | None = None,
        use_platform_automerge: bool = False,
    ) -> Pr:
        title = DRAFT_PREFIX + pr_title if draft_pr else pr_title
        description = sanitize(pr_body, self.host_rules.secrets())
        log.debug("platform.create_pr", title=title)
        body = (
            await self.http.post_json(
                f"projects/{ctx.repository}/merge_requests",
                json={
                    "source_branch": source_branch,
                    "target_branch": target_branch,
                    "title": title,
                    "description": description,
                    "labels": ",".join(labels or []),
                },
            )
        ).body
        pr = Pr(
            number=body["id"],
            source_branch=source_branch,
            target_branch=target_branch,
            title=body.get("title") or title,
            state=_pr_state(body.get("state") or "opened"),
            display_number=f"Merge Request #{body.get('iid')}",
            body=description,
        )
        if ctx.pr_list is not None:
            ctx.pr_list.append(pr)

        await self._try_pr_automerge(ctx, pr.number, use_platform_automerge)
        return massage_pr(pr)

    async def get_pr(self, ctx: RepoContext, pr_id: int) -> Pr:
        log.debug("platform.get_pr", pr=pr_id)
        mr = await merge_request.get_mr(self.http, ctx.repository, pr_id)
        pr = Pr(
            number=mr.id,
            source_branch=mr.source_branch,
            target_branch=mr.target_branch,
            display_number=f"Merge Request #{mr.iid}",
            body=mr.description,
            cannot_merge_reason=(
                None
                if mr.merge_status == "can_be_merged"
                else f'mr.merge_status="{mr.merge_status}"'
            ),
            state=_pr_state(mr.state),
            has_assignees=bool(mr.assignee and mr.assignee.id),
            has_reviewers=bool(mr.reviewers),
            title=mr.title,
            labels=list(mr.labels),
            sha=mr.sha,
        )
        return massage_pr(pr)

    async def update_pr(
        self,
        ctx: RepoContext,
        pr_id: int,
        *,
        pr_title: str,
        pr_body: str | None = None,
        state: PrState | None = None,
        use_platform_automerge: bool = False,
    ) -> None:
        title = pr_title
        existing = next((p for p in await self.get_pr_list(ctx) if p.number == pr_id), None)
        if existing and existing.is_draft:
            title = DRAFT_PREFIX + title

        data: dict[str, Any] = {
            "title": title,
            "description": sanitize(pr_body, self.host_rules.secrets()),
        }
        new_state = {PrState.CLOSED: "close", PrState.OPEN: "reopen"}.get(state)
        if new_state:
            data["state_event"] = new_state
        await merge_request.update_mr(self.http, ctx.repository, pr_id, data)

        await self._try_pr_automerge(ctx, pr_id, use_platform_automerge)

    async def merge_pr(self, ctx: RepoContext, pr_id: int, strategy: MergeStrategy) -> bool:
        try:
            await self.http.put_json(
                f"projects/{ctx.repository}/merge_request/{pr_id}/merge",
                json={"merge_type": strategy},
            )
        except AuthenticationError:
            log.debug("platform.merge_no_permission", pr=pr_id)
            return False
        except HttpError as exc:
            if exc.status_code == 406:
                log.debug("platform.merge_not_acceptable", pr=pr_id, error=str(exc))
            else:
                log.debug("platform.merge_failed", pr=pr_id, error=str(exc))
            return False
        except TGitError as exc:
            log.debug("platform.merge_failed", pr=pr_id, error=str(exc))
            return False
        return True

    def massage_markdown(self, text: str) -> str:
        desc = re.sub(r"\]\(\.\./pull/", "](!", _mr_wording(text))
        if Version(self.version) < _LONG_DESCRIPTION_VERSION:
            log.debug("platform.truncate_description", version=self.version, limit=25000)
            return smart_truncate(desc, 25000)
        return smart_truncate(desc, 1000000)

    async def find_pr(
        self,
        ctx: RepoContext,
        branch_name: str,
        pr_title: str | None = None,
        state: PrState = PrState.ALL,
    ) -> Pr | None:
        log.debug("platform.find_pr", branch=branch_name, title=pr_title, state=state.value)
        for pr in await self.get_pr_list(ctx):
            if (
                pr.source_branch == branch_name
                and (not pr_title or pr.title == pr_title)
                and matches_state(pr.state, state.value)
            ):
                return pr
        return None

    async def get_branch_pr(self, ctx: RepoContext, branch_name: str) -> Pr | None:
        """The open PR for *branch_name*, or ``None``."""
        existing = await self.find_pr(ctx, branch_name, state=PrState.OPEN)
        return await self.get_pr(ctx, existing.number) if existing else None

    # ── issues ─────────────────────────────────────────────────────────────

    async def get_issue_list(self, ctx: RepoContext) -> list[TGitIssue]:
        if ctx.issue_list is None:
            body = (
                await self.http.get_json(
                    f"projects/{ctx.repository}/issues",
                    params={"per_page": "100", "state": "opened"},
                    paginate=True,
                )
            ).body
            if not isinstance(body, list):
                log.warning("platform.issue_list_unavailable", body=body)
                return []
            ctx.issue_list = [TGitIssue.model_validate(item) for item in body]
        return ctx.issue_list

    async def get_issue(self, ctx: RepoContext, number: int) -> Issue | None:
        try:
            body = (await self.http.get_json(f"projects/{ctx.repository}/issues/{number}")).body
            detail = TGitIssueDetail.model_validate(body)
        except (TGitError, ValidationError) as exc:
            log.debug("platform.get_issue_failed", number=number, error=str(exc))
            return None
        return Issue(number=number, title=detail.title, body=detail.description)

    async def find_issue(self, ctx: RepoContext, title: str) -> Issue | None:
        log.debug("platform.find_issue", title=title)
        try:
            issue = next((i for i in await self.get_issue_list(ctx) if i.title == title), None)
        except (TGitError, ValidationError):
            log.warning("platform.find_issue_failed", title=title)
            return None
        if issue is None:
            return None
        return await self.get_issue(ctx, issue.id)

    async def ensure_issue(
        self,
        ctx: RepoContext,
        *,
        title: str,
        body: str,
        reuse_title: str | None = None,
        labels: list[str] | None = None,
        confidential: bool = False,
    ) -> Literal["created", "updated"] | None:
        description = self.massage_markdown(sanitize(body, self.host_rules.secrets()))
        try:
            issue_list = await self.get_issue_list(ctx)
            issue = next((i for i in issue_list if i.title == title), None)
            if issue is None and reuse_title:
                issue = next((i for i in issue_list if i.title == reuse_title), None)

            if issue is None:
                await self.http.post_json(
                    f"projects/{ctx.repository}/issues",
                    json={
                        "title": title,
                        "description": description,
                        "labels": ",".join(labels or []),
                        "confidential": confidential,
                    },
                )
                log.info("platform.issue_created", title=title)
                ctx.issue_list = None
                return "created"

            existing = (
                await self.http.get_json(f"projects/{ctx.repository}/issues/{issue.id}")
            ).body
            existing_description = (existing or {}).get("description")
            if issue.title != title or existing_description != description:
                log.debug("platform.issue_update", issue=issue.id)
                await self.http.put_json(
                    f"projects/{ctx.repository}/issues/{issue.id}",
                    json={
                        "title": title,
                        "description": description,
                        "labels": ",".join(labels or issue.labels or []),
                        "confidential": confidential,
                    },
                )
                return "updated"
        except (TGitError, ValidationError) as exc:
            if _error_message(exc).startswith(_ISSUES_DISABLED):
                log.debug("platform.issues_disabled", error=str(exc))
            else:
                log.warning("platform.ensure_issue_failed", error=str(exc))
        return None

    async def ensure_issue_closing(self, ctx: RepoContext, title: str) -> None:
        for issue in await self.get_issue_list(ctx):
            if issue.title == title:
                log.debug("platform.issue_close", issue=issue.id)
                await self.http.put_json(
                    f"projects/{ctx.repository}/issues/{issue.id}",
                    json={"state_event": "close"},
                )

    # ── people and labels ──────────────────────────────────────────────────

    async def add_assignees(self, ctx: RepoContext, pr_id: int, assignees: list[str]) -> None:
        log.debug("platform.add_assignees", pr=pr_id, assignees=assignees)
        try:
            assignee_ids = [await get_user_id(self.http, name) for name in assignees]
            await merge_request.update_mr(
                self.http, ctx.repository, pr_id, {"assignee_id": assignee_ids[0]}
            )
        except (TGitError, ValidationError, IndexError) as exc:
            log.warning("platform.add_assignees_failed", pr=pr_id, assignees=assignees, error=str(exc))

    async def add_reviewers(self, ctx: RepoContext, pr_id: int, reviewers: list[str]) -> None:
        """Add *reviewers* that are not already reviewing the MR."""
        log.debug("platform.add_reviewers", pr=pr_id, reviewers=reviewers)
        try:
            mr = await merge_request.get_mr(self.http, ctx.repository, pr_id)
        except (TGitError, ValidationError) as exc:
            log.warning("platform.get_reviewers_failed", pr=pr_id, error=str(exc))
            return

        existing_names = [r.username for r in mr.reviewers]
        new_reviewers = [r for r in reviewers if r not in existing_names]
        try:
            new_ids = list(
                await asyncio.gather(*(get_user_id(self.http, name) for name in new_reviewers))
            )
        except (TGitError, ValidationError) as exc:
            log.warning("platform.reviewer_ids_failed", pr=pr_id, error=str(exc))
            return

        existing_ids = [r.id for r in mr.reviewers]
        reviewer_ids = existing_ids + [i for i in new_ids if i not in existing_ids]
        try:
            await merge_request.update_mr_reviewers(self.http, ctx.repository, pr_id, reviewer_ids)
        except TGitError as exc:
            log.warning("platform.add_reviewers_failed", pr=pr_id, error=str(exc))

    async def delete_label(self, ctx: RepoContext, pr_id: int, label: str) -> None:
        log.debug("platform.delete_label", pr=pr_id, label=label)
        try:
            pr = await self.get_pr(ctx, pr_id)
            labels = ",".join(lbl for lbl in pr.labels if lbl != label)
            await merge_request.update_mr(self.http, ctx.repository, pr_id, {"labels": labels})
        except (TGitError, ValidationError) as exc:
            log.warning("platform.delete_label_failed", pr=pr_id, label=label, error=str(exc))

    async def filter_unavailable_users(self, users: list[str]) -> list[str]:
        return [user for user in users if await is_user_active(self.http, user)]

    @staticmethod
    async def get_vulnerability_alerts() -> list[Any]:
        return []

    # ── comments ───────────────────────────────────────────────────────────

    async def _get_comments(self, ctx: RepoContext, number: int) -> list[TGitComment]:
        log.debug("platform.get_comments", number=number)
        body = (
            await self.http.get_json(
                f"projects/{ctx.repository}/merge_requests/{number}/notes", paginate=True
            )
        ).body
        comments = [TGitComment.model_validate(item) for item in body or []]
        log.debug("platform.comments", number=number, count=len(comments))
        return comments

    async def _add_comment(self, ctx: RepoContext, number: int, body: str) -> None:
        await self.http.post_json(
            f"projects/{ctx.repository}/merge_requests/{number}/notes", json={"body": body}
        )

    async def _edit_comment(
        self, ctx: RepoContext, number: int, comment_id: int, body: str
    ) -> None:
        await self.http.put_json(
            f"projects/{ctx.repository}/merge_requests/{number}/notes/{comment_id}",
            json={"body": body},
        )

    async def _delete_comment(self, ctx: RepoContext, number: int, comment_id: int) -> None:
        # notes cannot be deleted through the API; blank them out instead
        await self._edit_comment(ctx, number, comment_id, "> deleted")

    async def ensure_comment(
        self,
        ctx: RepoContext,
        number: int,
        content: str,
        topic: str | None = None,
    ) -> bool:
        """Add or update a comment, keyed by *topic* header or by exact content."""
        sanitized = sanitize(content, self.host_rules.secrets())
        comments = await self._get_comments(ctx, number)
        comment_id: int | None = None
        needs_update = False

        if topic:
            massaged_topic = _mr_wording(topic)
            body = _mr_wording(f"### {topic}\n\n{sanitized}")
            for comment in comments:
                if comment.body.startswith(f"### {massaged_topic}\n\n"):
                    comment_id = comment.id
                    needs_update = comment.body != body
        else:
            body = sanitized
            for comment in comments:
                if comment.body == body:
                    comment_id = comment.id
                    needs_update = False

        if comment_id is None:
            await self._add_comment(ctx, number, body)
            log.debug("platform.comment_added", repository=ctx.repository, number=number)
        elif needs_update:
            await self._edit_comment(ctx, number, comment_id, body)
            log.debug("platform.comment_updated", repository=ctx.repository, number=number)
        else:
            log.debug("platform.comment_unchanged", number=number)
        return True

    async def ensure_comment_removal(
        self,
        ctx: RepoContext,
        number: int,
        *,
        topic: str | None = None,
        content: str | None = None,
    ) -> None:
        log.debug("platform.ensure_comment_removal", number=number, topic=topic)
        comments = await self._get_comments(ctx, number)
        comment_id: int | None = None
        if topic is not None:
            comment_id = next(
                (c.id for c in comments if c.body.startswith(f"### {topic}\n\n")), None
            )
        elif content is not None:
            comment_id = next((c.id for c in comments if c.body.strip() == content), None)

        if comment_id is not None:
            await self._delete_comment(ctx, number, comment_id)
