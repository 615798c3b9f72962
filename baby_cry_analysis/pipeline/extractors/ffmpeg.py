from __future__ import annotations

from pathlib import Path
import subprocess

from baby_cry_analysis.pipeline.errors import SourceUnavailable
from baby_cry_analysis.pipeline.media import MediaSource


def build_probe_command(path: Path, binary: str = "ffprobe") -> list[str]:
    return [
        binary,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]


def ffprobe_duration_seconds(path: Path, binary: str = "ffprobe") -> float:
    result = subprocess.run(build_probe_command(path, binary), capture_output=True, text=True)
    if result.returncode != 0:
        err = result.stderr.strip() or "unknown ffprobe error"
        raise RuntimeError(f"ffprobe failed: {err}")
    return float(result.stdout.strip())


class FfmpegAudioExtractor:
    """Pipes the audio track of any container ffmpeg understands out as mono WAV."""

    def __init__(self, sample_rate: int = 16000, binary: str = "ffmpeg") -> None:
        self.sample_rate = sample_rate
        self.binary = binary

    def build_command(self, source: MediaSource, start_ms: int | None = None, end_ms: int | None = None) -> list[str]:
        command = [self.binary, "-hide_banner", "-loglevel", "error"]
        if start_ms is not None:
            command += ["-ss", f"{start_ms / 1000.0:.3f}"]
        if start_ms is not None and end_ms is not None:
            command += ["-t", f"{(end_ms - start_ms) / 1000.0:.3f}"]
        command += [
            "-i",
            str(source.path),
            "-vn",
            "-ac",
            "1",
            "-ar",
            str(self.sample_rate),
            "-f",
            "wav",
            "pipe:1",
        ]
        return command

    def _run(self, command: list[str]) -> bytes:
        try:
            result = subprocess.run(command, capture_output=True)
        except FileNotFoundError as exc:
            raise SourceUnavailable(f"{self.binary} not found: {exc}") from exc

        if result.returncode != 0:
            err = result.stderr.decode("utf-8", errors="replace").strip() or "unknown ffmpeg error"
            raise SourceUnavailable(f"ffmpeg audio extraction failed: {err}")
        if not result.stdout:
            raise SourceUnavailable("ffmpeg produced no audio")
        return result.stdout

    def extract(self, source: MediaSource, start_ms: int, end_ms: int) -> bytes:
        if end_ms <= start_ms:
            raise ValueError("end_ms must be greater than start_ms")
        source.ensure_available()
        return self._run(self.build_command(source, start_ms=start_ms, end_ms=end_ms))

    def extract_full(self, source: MediaSource) -> bytes:
        source.ensure_available()
        return self._run(self.build_command(source))

    def extract_trailing(self, source: MediaSource, seconds: float) -> bytes:
        duration_ms = source.get_duration_ms(refresh=True)
        start_ms = max(0, duration_ms - int(seconds * 1000))
        return self._run(self.build_command(source, start_ms=start_ms))
