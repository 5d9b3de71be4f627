"""
Text Normalization + Splitters

Sanitization applied before structural parsing, and the paragraph,
sentence and bullet splitters used by the size-bounded packer.
"""

import re

_TRAILING_WS_RE = re.compile(r"[ \t]+\n")
_BLANK_RUN_RE = re.compile(r"\n{3,}")

# Blank-line boundary, unless the next line starts a "*", "-" or numbered list item
_PARAGRAPH_SPLIT_RE = re.compile(r"\n{2,}(?!\s*[\*\-\d]+\s)")

# Whitespace after terminal punctuation (Latin and CJK)
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[\.\?!。；;:])\s+")

# Newline followed by "a)", "b.", "1)", "12." style list markers
_BULLET_SPLIT_RE = re.compile(r"\n(?=(?:[a-z]{1,2}[\)\.]|[0-9]{1,2}[\)\.])\s+)")


def sanitize(text: str | None) -> str:
    """Normalize raw extracted text.

    Removes carriage returns, strips trailing spaces/tabs before newlines,
    collapses 3+ newlines to exactly 2 and trims the result.

    Args:
        text: Raw text, possibly None.

    Returns:
        Normalized text ("" for None or blank input).
    """
    text = (text or "").replace("\r", "")
    text = _TRAILING_WS_RE.sub("\n", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def _pieces(parts: list[str]) -> list[str]:
    return [p.strip() for p in parts if p.strip()]


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines, keeping list items attached to their lead-in."""
    return _pieces(_PARAGRAPH_SPLIT_RE.split(text))


def split_sentences_with_gaps(text: str) -> list[tuple[str, str]]:
    """Split on sentence boundaries, keeping the whitespace between sentences.

    Returns:
        ``(gap, sentence)`` pairs where ``gap`` is the whitespace that
        preceded the sentence in ``text`` ("" for the first one).
    """
    pairs: list[tuple[str, str]] = []
    gap, start = "", 0
    for match in _SENTENCE_SPLIT_RE.finditer(text):
        pairs.append((gap, text[start : match.start()]))
        gap, start = match.group(), match.end()
    pairs.append((gap, text[start:]))
    return [(g, s.strip()) for g, s in pairs if s.strip()]


def split_bullets(text: str) -> list[str]:
    """Split before each lettered/numbered sub-item that starts a line."""
    return _pieces(_BULLET_SPLIT_RE.split(text))
