"""
Pytest Configuration and Fixtures

Shared chunker fixtures configured with the production limits.
"""

import pytest

from knowledge_chunker.services.chunking import DocumentChunker
from knowledge_chunker.services.splitting import ChunkSplitter


@pytest.fixture()
def chunker() -> DocumentChunker:
    """DocumentChunker with the production limits (2400 / 80 / 12 / 1200)."""
    return DocumentChunker(
        max_len=2400, min_len=80, min_unit_len=20, max_per_group=12, max_total=1200
    )


@pytest.fixture()
def splitter() -> ChunkSplitter:
    """ChunkSplitter with the production limits."""
    return ChunkSplitter(max_len=2400, min_len=80, max_per_group=12)
