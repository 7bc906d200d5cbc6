"""Commit status aggregation.

TGit re-reports a CI pipeline under the same ``target_url`` each time it
progresses, so raw status lists carry stale duplicates. Only the most
recently updated report per pipeline URL is considered.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

import structlog

from tgit_bridge.platform.tgit.models import BranchStatus, StatusEntry

log = structlog.get_logger("tgit_bridge.platform")

STATE_TO_BRANCH_STATUS: dict[str, BranchStatus] = {
    "pending": BranchStatus.YELLOW,
    "success": BranchStatus.GREEN,
    "failure": BranchStatus.RED,
    "error": BranchStatus.RED,
}

BRANCH_STATUS_TO_STATE: dict[BranchStatus, str] = {
    BranchStatus.GREEN: "success",
    BranchStatus.YELLOW: "pending",
    BranchStatus.RED: "failure",
}


def _parse_timestamp(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _is_newer(candidate: str, current: str) -> bool:
    a, b = _parse_timestamp(candidate), _parse_timestamp(current)
    if a is not None and b is not None:
        try:
            return a > b
        except TypeError:
            # naive vs aware
            pass
    return candidate > current


def uniq_branch_statuses(entries: Iterable[StatusEntry]) -> list[StatusEntry]:
    """Keep the latest entry per pipeline ``target_url``.

    Entries without a ``target_url`` or ``updated_at`` are kept as-is.
    """
    ret: list[StatusEntry] = []
    latest_by_url: dict[str, StatusEntry] = {}
    for entry in entries:
        if entry.target_url and entry.updated_at:
            existing = latest_by_url.get(entry.target_url)
            if existing is None or _is_newer(entry.updated_at, existing.updated_at or ""):
                latest_by_url[entry.target_url] = entry
        else:
            ret.append(entry)
    ret.extend(latest_by_url.values())
    return ret


def map_state(entry: StatusEntry) -> BranchStatus:
    status = STATE_TO_BRANCH_STATUS.get(entry.state) if entry.state else None
    if status is None:
        log.warning("status.unmapped_state", state=entry.state, check=entry.name)
        return BranchStatus.YELLOW
    return status


def compute_branch_status(entries: Sequence[StatusEntry]) -> BranchStatus:
    """Reduce commit statuses to one :class:`BranchStatus`.

    No statuses at all means checks have not reported yet (yellow). Checks
    marked ``allow_failure`` never affect the result. Red is sticky.
    """
    if not entries:
        return BranchStatus.YELLOW

    status = BranchStatus.GREEN
    for check in uniq_branch_statuses(entries):
        if check.allow_failure:
            continue
        if status is BranchStatus.RED:
            break
        mapped = map_state(check)
        if mapped is not BranchStatus.GREEN:
            log.debug("status.non_green", check=check.name, state=check.state)
            status = mapped
    return status


def find_status_check(entries: Iterable[StatusEntry], context: str) -> BranchStatus | None:
    """Status of the check named *context*, or ``None`` when it has not reported."""
    for check in entries:
        if check.name == context:
            return map_state(check)
    return None
