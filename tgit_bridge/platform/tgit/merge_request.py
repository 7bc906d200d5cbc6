"""Merge request and review helpers."""

from __future__ import annotations

from typing import Any

import structlog

from tgit_bridge.http.client import TGitHttp
from tgit_bridge.platform.tgit.models import TGitMergeRequest, TGitMergeRequestReview

log = structlog.get_logger("tgit_bridge.platform")


async def get_mr(http: TGitHttp, repository: str, mr_id: int) -> TGitMergeRequest:
    """Fetch a merge request with its review folded in.

    ``sha`` carries the source branch name. A mergeable MR whose review is not
    approved reports the review state as its ``merge_status``.
    """
    log.debug("mr.get", mr_id=mr_id)
    body = (await http.get_json(f"projects/{repository}/merge_request/{mr_id}")).body or {}
    mr = TGitMergeRequest.model_validate({"id": mr_id, **body})
    mr.sha = mr.source_branch

    review = await get_mr_review(http, repository, mr_id)
    mr.reviewers = review.reviewers
    if mr.merge_status == "can_be_merged" and review.state != "approved":
        mr.merge_status = review.state
    return mr


async def update_mr(http: TGitHttp, repository: str, mr_id: int, data: dict[str, Any]) -> None:
    log.debug("mr.update", mr_id=mr_id, fields=sorted(data))
    await http.put_json(f"projects/{repository}/merge_request/{mr_id}", json=data)


async def get_mr_review(http: TGitHttp, repository: str, mr_id: int) -> TGitMergeRequestReview:
    log.debug("mr.get_review", mr_id=mr_id)
    body = (await http.get_json(f"projects/{repository}/merge_request/{mr_id}/review")).body
    return TGitMergeRequestReview.model_validate(body or {})


async def update_mr_reviewers(
    http: TGitHttp, repository: str, mr_id: int, reviewer_ids: list[int]
) -> None:
    """Set the full reviewer list of a merge request."""
    await update_mr(http, repository, mr_id, {"reviewer_ids": reviewer_ids})
