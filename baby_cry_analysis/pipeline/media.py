from __future__ import annotations

from pathlib import Path
from typing import Callable

from baby_cry_analysis.pipeline.errors import InvalidDuration, SourceUnavailable


def librosa_duration_seconds(path: Path) -> float:
    import librosa

    return librosa.get_duration(path=str(path))


class MediaSource:
    """Handle on a recorded (or still-growing) media file.

    Duration comes from ``prober`` (librosa by default; the ffmpeg extractor
    pairs it with ffprobe). Pass ``duration_ms`` when the caller already knows it.
    """

    def __init__(
        self,
        path: str | Path,
        duration_ms: int | None = None,
        prober: Callable[[Path], float] | None = None,
    ) -> None:
        self.path = Path(path)
        self._duration_ms = duration_ms
        self._prober = prober or librosa_duration_seconds

    @property
    def name(self) -> str:
        return self.path.name

    def ensure_available(self) -> Path:
        if not self.path.exists():
            raise SourceUnavailable(f"Media file not found: {self.path}")
        if self.path.stat().st_size == 0:
            raise SourceUnavailable(f"Media file is empty: {self.path}")
        return self.path

    def size_bytes(self) -> int:
        return self.ensure_available().stat().st_size

    def get_duration_ms(self, refresh: bool = False) -> int:
        if self._duration_ms is not None and not refresh:
            return self._duration_ms

        path = self.ensure_available()
        try:
            seconds = self._prober(path)
        except Exception as exc:
            raise InvalidDuration(f"Could not determine media duration: {exc}") from exc

        duration_ms = int(round(seconds * 1000))
        if duration_ms <= 0:
            raise InvalidDuration(f"Media duration is {duration_ms}ms. File might be corrupted.")
        self._duration_ms = duration_ms
        return duration_ms

    def __repr__(self) -> str:
        return f"MediaSource({str(self.path)!r})"
