from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from baby_cry_analysis.pipeline.client import ChunkResult


DEFAULT_SMOOTHING_WINDOW = 7
DEFAULT_MAX_POINTS = 45


@dataclass(frozen=True)
class AnalysisSummary:
    total_chunks: int
    chunks_with_cry: int
    average_cry_ratio: float | None
    total_segments: int


@dataclass(frozen=True)
class SeriesPoint:
    label: str
    value: float


def moving_average(values: Sequence[float], window: int) -> np.ndarray:
    """Centered moving average; the window shrinks at both edges instead of padding."""
    data = np.asarray(values, dtype=np.float64)
    if data.size == 0 or window <= 1:
        return data

    half = window // 2
    sums = np.concatenate(([0.0], np.cumsum(data)))
    idx = np.arange(data.size)
    lo = np.maximum(idx - half, 0)
    hi = np.minimum(idx + half + 1, data.size)
    return (sums[hi] - sums[lo]) / (hi - lo)


def downsample(points: list[SeriesPoint], max_points: int) -> list[SeriesPoint]:
    if len(points) <= max_points:
        return points
    stride = math.ceil(len(points) / max_points)
    return points[::stride]


def _seconds_label(seconds: float) -> str:
    return f"{seconds:.1f}s"


class ResultAggregator:
    def __init__(self, smoothing_window: int = DEFAULT_SMOOTHING_WINDOW, max_points: int = DEFAULT_MAX_POINTS) -> None:
        self.smoothing_window = smoothing_window
        self.max_points = max_points
        self._results: list[ChunkResult] = []

    def append(self, result: ChunkResult) -> None:
        self._results.append(result)

    @property
    def results(self) -> list[ChunkResult]:
        return list(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def result_at(self, elapsed_ms: int, chunk_ms: int) -> ChunkResult | None:
        """Result of the chunk playing at ``elapsed_ms``, if it was analyzed."""
        index = elapsed_ms // chunk_ms
        for result in self._results:
            if result.chunk_index == index:
                return result
        return None

    def summary(self) -> AnalysisSummary:
        total = len(self._results)
        average = sum(r.cry_ratio for r in self._results) / total if total else None
        return AnalysisSummary(
            total_chunks=total,
            chunks_with_cry=sum(1 for r in self._results if r.any_cry),
            average_cry_ratio=average,
            total_segments=sum(len(r.segments) for r in self._results),
        )

    def time_series(self) -> list[SeriesPoint]:
        return self._series(limit_sec=None)

    def replay_series(self, elapsed_ms: int) -> list[SeriesPoint]:
        return self._series(limit_sec=elapsed_ms / 1000.0)

    def _series(self, limit_sec: float | None) -> list[SeriesPoint]:
        if not self._results:
            return []

        first = self._results[0]
        if first.has_frames:
            times = np.asarray(first.frame_times_sec, dtype=np.float64)
            probabilities = np.asarray(first.frame_probabilities, dtype=np.float64)
            if limit_sec is not None:
                visible = times <= limit_sec
                times = times[visible]
                probabilities = probabilities[visible]
            smoothed = moving_average(probabilities * 100.0, self.smoothing_window)
            points = [SeriesPoint(label=_seconds_label(t), value=float(v)) for t, v in zip(times, smoothed)]
            return downsample(points, self.max_points)

        points = [
            SeriesPoint(label=f"{r.timestamp_ms // 1000}s", value=r.cry_ratio * 100.0)
            for r in self._results
            if limit_sec is None or r.timestamp_ms / 1000.0 <= limit_sec
        ]
        return downsample(points, self.max_points)
