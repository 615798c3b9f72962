from __future__ import annotations

from typing import Protocol

from baby_cry_analysis.pipeline.media import MediaSource


class ChunkExtractor(Protocol):
    """Turns a time range of a media source into an uploadable audio payload."""

    def extract(self, source: MediaSource, start_ms: int, end_ms: int) -> bytes:
        raise NotImplementedError

    def extract_full(self, source: MediaSource) -> bytes:
        raise NotImplementedError

    def extract_trailing(self, source: MediaSource, seconds: float) -> bytes:
        raise NotImplementedError
