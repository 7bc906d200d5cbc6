"""Text helpers for PR/issue bodies."""

from __future__ import annotations

import re
from collections.abc import Iterable

REDACTED = "**redacted**"

_RELEASE_NOTES_RE = re.compile(r"### Release Notes.*?(?=\n---|\Z)", re.S)


def sanitize(text: str | None, secrets: Iterable[str]) -> str:
    """Replace every known secret in *text* with a redaction marker."""
    if not text:
        return text or ""
    for secret in sorted({s for s in secrets if s}, key=len, reverse=True):
        text = text.replace(secret, REDACTED)
    return text


def smart_truncate(text: str, length: int) -> str:
    """Shorten *text* to *length* characters.

    Release notes are dropped first so the surrounding summary survives.
    """
    if len(text) <= length:
        return text
    without_notes = _RELEASE_NOTES_RE.sub("", text, count=1)
    if len(without_notes) <= length:
        return without_notes
    return text[:length]
