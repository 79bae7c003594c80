"""Text cleanup utilities shared by extraction, persistence and chat context."""

import re

# Control characters except tab, newline and carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_NON_PRINTABLE_ASCII = re.compile(r"[^\x20-\x7e\n\t]+")
_INLINE_WHITESPACE = re.compile(r"[ \t]{2,}")
_BLANK_LINES = re.compile(r"\n{3,}")


def clean_text(text: str) -> str:
    """
    Remove null bytes and control characters, keeping line structure.

    Args:
        text: Raw extracted text

    Returns:
        Cleaned text with surrounding whitespace stripped
    """
    if not text:
        return ""

    text = text.replace("\x00", "")
    text = _CONTROL_CHARS.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _BLANK_LINES.sub("\n\n", text)

    return text.strip()


def to_printable_ascii(text: str) -> str:
    """
    Replace every run of non-printable-ASCII characters with a single space.

    Used as the last-resort path for binary formats when no parser produced
    readable text.
    """
    if not text:
        return ""

    text = _NON_PRINTABLE_ASCII.sub(" ", text)
    text = _INLINE_WHITESPACE.sub(" ", text)

    return text.strip()


def truncate(text: str | None, limit: int) -> str:
    """Return at most `limit` leading characters of `text` (empty for None)."""
    if not text:
        return ""
    return text[:limit]
