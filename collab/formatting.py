"""Plain-text cleanup for model output (strip Markdown emphasis and headers)."""

import re

_BOLD = re.compile(r"\*\*(.*?)\*\*")
_ITALIC = re.compile(r"\*(.*?)\*")
_HEADER = re.compile(r"^#+\s", re.MULTILINE)
_BULLET = re.compile(r"\s*-\s")
_PARAGRAPHS = re.compile(r"\n\n+")


def clean_text(text: str | None) -> str:
    """Strip Markdown from AI-generated text and normalise line breaks.

    Bullets are moved onto their own lines and every non-empty line is
    separated by a blank line.
    """
    if not text:
        return ""
    text = _BOLD.sub(r"\1", text)
    text = _ITALIC.sub(r"\1", text)
    text = _HEADER.sub("", text)
    text = _BULLET.sub("\n- ", text)
    text = _PARAGRAPHS.sub("\n\n", text)
    lines = [line.strip() for line in text.split("\n")]
    return "\n\n".join(line for line in lines if line)


def slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    value = re.sub(r"[^\w\s-]", "", text.lower())
    value = re.sub(r"[\s_-]+", "-", value).strip("-")
    return value[:max_len]
