"""
Size-Bounded Splitting

Greedy paragraph packing into chunks of at most ``max_len`` characters,
with a bullet-aware fallback for legal articles, a merge pass for
too-small chunks and a per-unit chunk-count cap.
"""

import logging
import math

from knowledge_chunker.core.config import settings
from knowledge_chunker.services.text import (
    split_bullets,
    split_paragraphs,
    split_sentences_with_gaps,
)

logger = logging.getLogger(__name__)


def _pack(pieces: list[tuple[str, str]], limit: int) -> list[str]:
    """Greedily join consecutive ``(gap, piece)`` pairs while the result fits in ``limit``.

    A piece longer than ``limit`` on its own is emitted unchanged.
    """
    chunks: list[str] = []
    buf = ""
    for gap, piece in pieces:
        candidate = f"{buf}{gap}{piece}" if buf else piece
        if len(candidate) <= limit:
            buf = candidate
            continue
        if buf:
            chunks.append(buf)
        buf = piece
    if buf:
        chunks.append(buf)
    return chunks


class ChunkSplitter:
    """Splits unit content into size-bounded chunks.

    Args:
        max_len: Max characters per chunk. Defaults to settings.CHUNK_MAX_LEN.
        min_len: Chunks shorter than this are merged into the previous one.
            Defaults to settings.CHUNK_MIN_LEN.
        max_per_group: Max chunks per structural unit.
            Defaults to settings.CHUNK_MAX_PER_GROUP.
    """

    def __init__(
        self,
        max_len: int | None = None,
        min_len: int | None = None,
        max_per_group: int | None = None,
    ) -> None:
        self._max_len = max_len if max_len is not None else settings.CHUNK_MAX_LEN
        self._min_len = min_len if min_len is not None else settings.CHUNK_MIN_LEN
        self._max_per_group = (
            max_per_group if max_per_group is not None else settings.CHUNK_MAX_PER_GROUP
        )

        if self._max_len <= 0 or self._max_per_group <= 0:
            raise ValueError("max_len and max_per_group must be positive")
        if not 0 <= self._min_len < self._max_len:
            raise ValueError(
                f"min_len ({self._min_len}) must be less than max_len ({self._max_len})"
            )

    @property
    def max_len(self) -> int:
        return self._max_len

    @property
    def min_len(self) -> int:
        return self._min_len

    @property
    def max_per_group(self) -> int:
        return self._max_per_group

    def budget(self, reserved: int = 0) -> int:
        """Chunk length available once ``reserved`` characters of header are added."""
        return max(self._max_len - reserved, self._min_len + 1)

    def split(self, text: str, limit: int | None = None) -> list[str]:
        """Split chapter, section or generic content.

        Oversized paragraphs are split on sentence boundaries.

        Args:
            text: Unit content.
            limit: Max chunk length. Defaults to ``max_len``.

        Returns:
            Ordered chunk texts.
        """
        return self._split(text, limit or self._max_len, bullets=False)

    def split_article(self, text: str, limit: int | None = None) -> list[str]:
        """Split article content.

        Oversized paragraphs are split on "a)" / "1." sub-item boundaries
        first; sub-items that are still too long fall back to sentences.
        """
        return self._split(text, limit or self._max_len, bullets=True)

    def cap_group(self, chunks: list[str]) -> list[str]:
        """Merge fixed-size runs so one unit yields at most ``max_per_group`` chunks.

        With ``ratio = ceil(n / max_per_group)`` every ``ratio``-th chunk
        starts a new merged chunk; the following ones are appended to it
        with a blank line.
        """
        if len(chunks) <= self._max_per_group:
            return chunks

        ratio = math.ceil(len(chunks) / self._max_per_group)
        merged: list[str] = []
        for idx, chunk in enumerate(chunks):
            if idx % ratio == 0:
                merged.append(chunk)
            else:
                merged[-1] += "\n\n" + chunk

        logger.debug("Capped group of %d chunks to %d (ratio %d)", len(chunks), len(merged), ratio)
        return merged

    def _split(self, text: str, limit: int, bullets: bool) -> list[str]:
        chunks: list[str] = []
        buf = ""

        for para in split_paragraphs(text):
            candidate = f"{buf}\n\n{para}" if buf else para
            if len(candidate) <= limit:
                buf = candidate
                continue

            if buf:
                chunks.append(buf)
                buf = ""

            if len(para) <= limit:
                buf = para
                continue

            # The last fragment stays open so the next paragraph can join it
            *done, buf = self._split_oversized(para, limit, bullets) or [para]
            chunks.extend(done)

        if buf:
            chunks.append(buf)
        return self._merge_small(chunks, limit)

    @staticmethod
    def _split_oversized(para: str, limit: int, bullets: bool) -> list[str]:
        if not bullets:
            return _pack(split_sentences_with_gaps(para), limit)

        parts: list[str] = []
        items = [("\n", item) for item in split_bullets(para) or [para]]
        for part in _pack(items, limit):
            if len(part) <= limit:
                parts.append(part)
            else:
                parts.extend(_pack(split_sentences_with_gaps(part), limit))
        return parts

    def _merge_small(self, chunks: list[str], limit: int) -> list[str]:
        """Fold chunks shorter than ``min_len`` into a neighbour.

        A small chunk is appended to the previous chunk when the result fits
        in ``limit``; otherwise it is prepended to the next chunk if that fits.
        The first chunk is never merged forward.
        """
        out: list[str] = []
        carry: str | None = None
        for chunk in chunks:
            if carry is not None:
                if len(carry) + 1 + len(chunk) <= limit:
                    chunk = f"{carry} {chunk}"
                else:
                    out.append(carry)
                carry = None

            if out and len(chunk) < self._min_len:
                if len(out[-1]) + 1 + len(chunk) <= limit:
                    out[-1] += " " + chunk
                else:
                    carry = chunk
                continue
            out.append(chunk)

        if carry is not None:
            out.append(carry)
        return out
