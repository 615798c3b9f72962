from __future__ import annotations

import io

import numpy as np

from baby_cry_analysis.pipeline.errors import SourceUnavailable
from baby_cry_analysis.pipeline.media import MediaSource


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    import soundfile as sf

    buffer = io.BytesIO()
    sf.write(buffer, np.asarray(samples, dtype=np.float32), sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


class DecodedAudioExtractor:
    """Decodes with librosa and re-encodes each range as 16-bit mono WAV."""

    def __init__(self, sample_rate: int = 16000) -> None:
        self.sample_rate = sample_rate

    def _decode(self, source: MediaSource, offset_seconds: float = 0.0, duration_seconds: float | None = None) -> np.ndarray:
        import librosa

        path = source.ensure_available()
        try:
            samples, _ = librosa.load(
                str(path),
                sr=self.sample_rate,
                mono=True,
                offset=offset_seconds,
                duration=duration_seconds,
            )
        except Exception as exc:
            raise SourceUnavailable(f"Could not decode audio from {path.name}: {exc}") from exc

        if samples.size == 0:
            raise SourceUnavailable(f"No audio decoded from {path.name} at offset {offset_seconds:.2f}s")
        return np.asarray(samples, dtype=np.float32)

    def extract(self, source: MediaSource, start_ms: int, end_ms: int) -> bytes:
        if end_ms <= start_ms:
            raise ValueError("end_ms must be greater than start_ms")
        samples = self._decode(source, offset_seconds=start_ms / 1000.0, duration_seconds=(end_ms - start_ms) / 1000.0)
        return encode_wav(samples, self.sample_rate)

    def extract_full(self, source: MediaSource) -> bytes:
        return encode_wav(self._decode(source), self.sample_rate)

    def extract_trailing(self, source: MediaSource, seconds: float) -> bytes:
        # live recordings keep growing, so the duration has to be re-probed each time
        duration_ms = source.get_duration_ms(refresh=True)
        start_ms = max(0, duration_ms - int(seconds * 1000))
        samples = self._decode(source, offset_seconds=start_ms / 1000.0)
        return encode_wav(samples, self.sample_rate)
