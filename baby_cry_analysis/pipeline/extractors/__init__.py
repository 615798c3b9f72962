from pathlib import Path

from baby_cry_analysis.pipeline.extractors.base import ChunkExtractor
from baby_cry_analysis.pipeline.extractors.decoded import DecodedAudioExtractor
from baby_cry_analysis.pipeline.extractors.ffmpeg import FfmpegAudioExtractor, ffprobe_duration_seconds
from baby_cry_analysis.pipeline.media import MediaSource


def build_extractor(kind: str, sample_rate: int = 16000) -> ChunkExtractor:
    if kind == "ffmpeg":
        return FfmpegAudioExtractor(sample_rate=sample_rate)
    if kind == "decoded":
        return DecodedAudioExtractor(sample_rate=sample_rate)
    raise ValueError(f"Unknown extractor: {kind}")


def open_source(path: str | Path, kind: str) -> MediaSource:
    """Media handle whose duration probe uses the same tooling as the ``kind`` extractor."""
    if kind == "ffmpeg":
        return MediaSource(path, prober=ffprobe_duration_seconds)
    if kind == "decoded":
        return MediaSource(path)
    raise ValueError(f"Unknown extractor: {kind}")


__all__ = [
    "ChunkExtractor",
    "DecodedAudioExtractor",
    "FfmpegAudioExtractor",
    "build_extractor",
    "open_source",
]
