"""Local working-copy operations consumed by the platform provider."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

import structlog

log = structlog.get_logger("tgit_bridge.git")


class LocalGit(Protocol):
    async def init_repo(self, url: str, default_branch: str, clone_submodules: bool) -> None: ...

    async def branch_exists(self, branch_name: str) -> bool: ...

    async def get_branch_commit(self, branch_name: str) -> str | None: ...


class GitCommandError(RuntimeError):
    """A git subprocess exited non-zero."""

    def __init__(self, returncode: int, stderr: str) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"git command failed (exit {returncode}): {stderr}")


class GitCli:
    """:class:`LocalGit` backed by the ``git`` executable.

    The clone lives in *workdir*; remote branches are read from
    ``refs/remotes/origin``.
    """

    def __init__(self, workdir: Path) -> None:
        self.workdir = workdir
        self._url: str | None = None

    async def init_repo(self, url: str, default_branch: str, clone_submodules: bool) -> None:
        self._url = url
        if (self.workdir / ".git").exists():
            await self._run("fetch", "--prune", "origin")
        else:
            self.workdir.parent.mkdir(parents=True, exist_ok=True)
            cmd = ["clone", "--branch", default_branch]
            if clone_submodules:
                cmd.append("--recurse-submodules")
            await _run(["git", *cmd, "--", url, str(self.workdir)])
        log.debug("git.repo_ready", workdir=str(self.workdir), branch=default_branch)

    async def branch_exists(self, branch_name: str) -> bool:
        try:
            await self._run("rev-parse", "--verify", "--quiet", f"refs/remotes/origin/{branch_name}")
        except GitCommandError:
            return False
        return True

    async def get_branch_commit(self, branch_name: str) -> str | None:
        try:
            out = await self._run("rev-parse", f"refs/remotes/origin/{branch_name}")
        except GitCommandError:
            return None
        return out.strip() or None

    async def _run(self, *args: str) -> str:
        return await _run(["git", "-C", str(self.workdir), *args])


async def _run(cmd: list[str]) -> str:
    """Run a git command, raising GitCommandError on failure."""
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise GitCommandError(proc.returncode, stderr.decode().strip())
    return stdout.decode()
