"""
Content Classifier

Decides whether a note's text is substantial enough to be worth embedding,
and normalises markdown-heavy content into plain prose before it is sent
to the embeddings endpoint.

Everything here is pure: no I/O, no exceptions for any string input.
"""

from __future__ import annotations

import re

MIN_WORDS_FOR_EMBEDDING = 10

_HEADER = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_RULE = re.compile(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$", re.MULTILINE)
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+", re.MULTILINE)
_BOLD = re.compile(r"\*\*(.*?)\*\*", re.DOTALL)
_ITALIC = re.compile(r"\*(.*?)\*", re.DOTALL)
_CODE = re.compile(r"`(.*?)`", re.DOTALL)
_WHITESPACE = re.compile(r"\s+")
_LETTER = re.compile(r"[^\W\d_]")

# Status lines written by upload/transcription handlers
_METADATA_PATTERNS = (
    re.compile(r"^(file:|status:|job:|error:|transcription)", re.IGNORECASE),
    re.compile(r"^(uploading|processing|completed|failed)", re.IGNORECASE),
    re.compile(r"^\d+%\s+(confidence|completed)", re.IGNORECASE),
)


def prepare_content_for_embedding(text: str | None) -> str:
    """
    Strip markdown formatting and collapse whitespace.

    Removes headers, horizontal rules, bullet glyphs (``-``, ``*``, ``•``,
    ``1.``), bold/italic/inline-code markers. Inner text is kept.
    """
    if not text:
        return ""
    cleaned = _RULE.sub(" ", text)
    cleaned = _HEADER.sub("", cleaned)
    cleaned = _BULLET.sub("", cleaned)
    cleaned = _BOLD.sub(r"\1", cleaned)
    cleaned = _ITALIC.sub(r"\1", cleaned)
    cleaned = _CODE.sub(r"\1", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def is_metadata_only(text: str) -> bool:
    """True when the text opens like a processing status line."""
    stripped = text.strip()
    return any(pattern.match(stripped) for pattern in _METADATA_PATTERNS)


def should_generate_embedding(text: str | None) -> bool:
    """
    Decide whether ``text`` is worth embedding.

    Rejects empty input, fewer than ten words after markdown cleanup,
    processing-metadata lines and content without any letters.
    """
    prepared = prepare_content_for_embedding(text)
    if not prepared:
        return False
    if len(prepared.split(" ")) < MIN_WORDS_FOR_EMBEDDING:
        return False
    if is_metadata_only(prepared):
        return False
    return _LETTER.search(prepared) is not None


def build_embedding_text(title: str | None, content: str | None) -> str:
    """Title and cleaned content joined by a blank line."""
    return f"{title or ''}\n\n{prepare_content_for_embedding(content)}"
