from __future__ import annotations

import json
import os
from dataclasses import dataclass, field

from baby_cry_analysis.pipeline.client import InferenceConfig, guess_mime_type


DEFAULT_HEADERS = {
    "Accept": "application/json",
    "ngrok-skip-browser-warning": "true",
}


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    return float(value)


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    return int(value)


def _headers_env(name: str) -> dict[str, str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a JSON object")
    return {str(key): str(value) for key, value in data.items()}


@dataclass(frozen=True)
class PipelineConfig:
    endpoint_url: str
    timeout_seconds: float = 30.0
    extra_headers: dict[str, str] = field(default_factory=dict)
    upload_name: str = "audio.wav"
    chunk_ms: int = 4000
    extractor: str = "decoded"
    sample_rate: int = 16000
    smoothing_window: int = 7
    max_chart_points: int = 45
    live_interval_seconds: float = 10.0
    live_trailing_seconds: float = 10.0
    artifact_dir: str = "./artifacts"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        endpoint_url = os.getenv("CRY_DETECTION_API_URL", "").strip()
        if not endpoint_url:
            raise ValueError("CRY_DETECTION_API_URL is required")

        extractor = os.getenv("EXTRACTOR", "decoded").strip().lower()
        if extractor not in {"decoded", "ffmpeg"}:
            raise ValueError("EXTRACTOR must be 'decoded' or 'ffmpeg'")

        chunk_ms = _int_env("CHUNK_MS", 4000)
        if chunk_ms <= 0:
            raise ValueError("CHUNK_MS must be positive")

        return cls(
            endpoint_url=endpoint_url,
            timeout_seconds=_float_env("CRY_DETECTION_TIMEOUT_SECONDS", 30.0),
            extra_headers=_headers_env("CRY_DETECTION_EXTRA_HEADERS"),
            upload_name=os.getenv("CRY_DETECTION_UPLOAD_NAME", "audio.wav").strip() or "audio.wav",
            chunk_ms=chunk_ms,
            extractor=extractor,
            sample_rate=_int_env("SAMPLE_RATE", 16000),
            smoothing_window=max(1, _int_env("SMOOTHING_WINDOW", 7)),
            max_chart_points=max(1, _int_env("MAX_CHART_POINTS", 45)),
            live_interval_seconds=_float_env("LIVE_INTERVAL_SECONDS", 10.0),
            live_trailing_seconds=_float_env("LIVE_TRAILING_SECONDS", 10.0),
            artifact_dir=os.getenv("ARTIFACT_DIR", "./artifacts").strip(),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )

    def inference_config(self) -> InferenceConfig:
        headers = dict(DEFAULT_HEADERS)
        headers.update(self.extra_headers)
        return InferenceConfig(
            endpoint_url=self.endpoint_url,
            headers=headers,
            timeout_seconds=self.timeout_seconds,
            upload_name=self.upload_name,
            upload_mime=guess_mime_type(self.upload_name),
        )
