from __future__ import annotations

from dataclasses import dataclass

from baby_cry_analysis.pipeline.errors import InvalidDuration


@dataclass(frozen=True)
class ChunkDescriptor:
    index: int
    start_ms: int
    end_ms: int

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


def plan(duration_ms: int, chunk_ms: int) -> list[ChunkDescriptor]:
    """Split ``[0, duration_ms)`` into consecutive ranges of at most ``chunk_ms``.

    The last range is clamped to ``duration_ms`` and may be shorter.
    """
    if duration_ms <= 0:
        raise InvalidDuration(f"Media duration is {duration_ms}ms. File might be corrupted.")
    if chunk_ms <= 0:
        raise ValueError("chunk_ms must be positive")

    count = -(-duration_ms // chunk_ms)
    return [
        ChunkDescriptor(
            index=i,
            start_ms=i * chunk_ms,
            end_ms=min((i + 1) * chunk_ms, duration_ms),
        )
        for i in range(count)
    ]
