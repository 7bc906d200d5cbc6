"""TGit HTTP client."""

from tgit_bridge.http.client import HttpResponse, PageCursor, TGitHttp, parse_page_cursor

__all__ = ["HttpResponse", "PageCursor", "TGitHttp", "parse_page_cursor"]
