"""Response schemas and result types for the TGit tags data source."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict


class TGitTagCommit(BaseModel):
    model_config = ConfigDict(extra="ignore")

    created_at: str | None = None


class TGitTag(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    commit: TGitTagCommit | None = None


class TGitCommit(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str


@dataclass(frozen=True)
class Release:
    version: str
    git_ref: str
    release_timestamp: str | None = None


@dataclass
class ReleaseResult:
    source_url: str
    releases: list[Release] = field(default_factory=list)
