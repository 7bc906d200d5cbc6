"""Local git working-copy access."""

from tgit_bridge.git.local import GitCli, GitCommandError, LocalGit

__all__ = ["GitCli", "GitCommandError", "LocalGit"]
