"""User lookups."""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from tgit_bridge.core.errors import TGitError
from tgit_bridge.http.client import TGitHttp
from tgit_bridge.platform.tgit.models import TGitUser, TGitUserStatus

log = structlog.get_logger("tgit_bridge.platform")


async def get_user_id(http: TGitHttp, username: str) -> int:
    body = (await http.get_json(f"users/{username}")).body
    return TGitUser.model_validate(body).id


async def is_user_active(http: TGitHttp, username: str) -> bool:
    try:
        body = (await http.get_json(f"users/{username}")).body
        return TGitUserStatus.model_validate(body).state == "active"
    except (TGitError, ValidationError) as exc:
        log.warning("user.status_failed", user=username, error=str(exc))
        return False
