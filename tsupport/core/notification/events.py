"""Push payload shape and plain-text previews."""

from __future__ import annotations

import re
from typing import TypedDict

from tsupport.configs import configs

# Order matters: fenced blocks must go before inline code.
_MARKDOWN_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"```.*?```", re.DOTALL), ""),
    (re.compile(r"`([^`]*)`"), r"\1"),
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),
    (re.compile(r"!?\[([^\]]*)\]\([^)]*\)"), r"\1"),
    (re.compile(r"\*{1,3}(.+?)\*{1,3}"), r"\1"),
    (re.compile(r"~~(.+?)~~"), r"\1"),
    (re.compile(r"^\s*(?:[-*+]|\d+\.)\s+", re.MULTILINE), ""),
    (re.compile(r"^>\s?", re.MULTILINE), ""),
    (re.compile(r"^-{3,}$", re.MULTILINE), ""),
]


class PushPayload(TypedDict):
    title: str
    body: str
    url: str


def strip_markdown(text: str, max_len: int | None = None) -> str:
    """Single-line plain-text preview of a chat message, capped at *max_len*."""
    limit = configs.Push.PreviewLength if max_len is None else max_len
    for pattern, repl in _MARKDOWN_RULES:
        text = pattern.sub(repl, text)
    text = " ".join(text.split())
    if len(text) > limit:
        text = text[:limit].rstrip() + "…"
    return text


def build_push_payload(body: str, url: str) -> PushPayload:
    return {"title": configs.Push.Title, "body": strip_markdown(body), "url": url}
