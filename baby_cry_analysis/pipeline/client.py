from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

from baby_cry_analysis.pipeline.errors import InferenceMalformed, InferenceRejected, InferenceUnreachable


MIME_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "oga": "audio/ogg",
    "ogg": "audio/ogg",
}


def guess_mime_type(name: str) -> str:
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return MIME_TYPES.get(ext, "audio/wav")


@dataclass(frozen=True)
class InferenceConfig:
    endpoint_url: str
    headers: dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = 30.0
    upload_name: str = "audio.wav"
    upload_mime: str = "audio/wav"


@dataclass(frozen=True)
class Segment:
    start_sec: float
    end_sec: float
    duration_sec: float


@dataclass(frozen=True)
class ChunkResult:
    chunk_index: int
    timestamp_ms: int
    any_cry: bool
    cry_ratio: float
    segments: tuple[Segment, ...] = ()
    frame_predictions: tuple[int, ...] = ()
    frame_probabilities: tuple[float, ...] = ()
    frame_times_sec: tuple[float, ...] = ()
    threshold: float = 0.5
    model: str = ""
    num_frames: int = 0

    @property
    def has_frames(self) -> bool:
        return bool(self.frame_times_sec)


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InferenceMalformed(f"'{name}' must be a number, got {value!r}")
    return float(value)


def _unit_interval(value: Any, name: str) -> float:
    number = _number(value, name)
    if not 0.0 <= number <= 1.0:
        raise InferenceMalformed(f"'{name}' must be within [0, 1], got {number}")
    return number


def _number_list(payload: dict[str, Any], name: str) -> list[float]:
    raw = payload.get(name)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InferenceMalformed(f"'{name}' must be a list")
    return [_number(item, name) for item in raw]


def _parse_segments(raw: Any) -> tuple[Segment, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise InferenceMalformed("'segments' must be a list")

    segments = []
    for item in raw:
        if not isinstance(item, dict) or "start" not in item or "end" not in item:
            raise InferenceMalformed(f"segment needs 'start' and 'end': {item!r}")
        start = _number(item["start"], "segments.start")
        end = _number(item["end"], "segments.end")
        if end < start:
            raise InferenceMalformed(f"segment ends before it starts: {item!r}")
        duration = _number(item["duration"], "segments.duration") if item.get("duration") is not None else end - start
        segments.append(Segment(start_sec=start, end_sec=end, duration_sec=duration))

    segments.sort(key=lambda segment: segment.start_sec)
    for previous, current in zip(segments, segments[1:]):
        if current.start_sec < previous.end_sec:
            raise InferenceMalformed(f"segments overlap at {current.start_sec:.2f}s")
    return tuple(segments)


def parse_response(payload: Any, chunk_index: int = 0, timestamp_ms: int = 0) -> ChunkResult:
    if not isinstance(payload, dict):
        raise InferenceMalformed(f"Expected a JSON object, got {type(payload).__name__}")

    for name in ("any_cry", "cry_ratio"):
        if name not in payload:
            raise InferenceMalformed(f"Response is missing required field '{name}'")
    if not isinstance(payload["any_cry"], bool):
        raise InferenceMalformed(f"'any_cry' must be a boolean, got {payload['any_cry']!r}")

    predictions = _number_list(payload, "frame_predictions")
    probabilities = _number_list(payload, "frame_probabilities")
    times = _number_list(payload, "frame_times_sec")
    if not len(predictions) == len(probabilities) == len(times):
        raise InferenceMalformed(
            "frame arrays differ in length "
            f"(predictions={len(predictions)} probabilities={len(probabilities)} times={len(times)})"
        )

    for value in predictions:
        if value not in (0.0, 1.0):
            raise InferenceMalformed(f"'frame_predictions' must contain only 0 or 1, got {value!r}")

    num_frames = payload.get("num_frames")
    if num_frames is None:
        num_frames = len(times)
    elif isinstance(num_frames, bool) or not isinstance(num_frames, int) or num_frames < 0:
        raise InferenceMalformed(f"'num_frames' must be a non-negative integer, got {num_frames!r}")

    threshold = payload.get("threshold")
    return ChunkResult(
        chunk_index=chunk_index,
        timestamp_ms=timestamp_ms,
        any_cry=payload["any_cry"],
        cry_ratio=_unit_interval(payload["cry_ratio"], "cry_ratio"),
        segments=_parse_segments(payload.get("segments")),
        frame_predictions=tuple(int(value) for value in predictions),
        frame_probabilities=tuple(probabilities),
        frame_times_sec=tuple(times),
        threshold=0.5 if threshold is None else _unit_interval(threshold, "threshold"),
        model=str(payload.get("model") or ""),
        num_frames=num_frames,
    )


class InferenceClient:
    def __init__(self, config: InferenceConfig) -> None:
        self.config = config
        self._session = requests.Session()

    def post_raw(self, payload: bytes, filename: str | None = None, mime_type: str | None = None) -> Any:
        """POST ``payload`` as the multipart ``audio`` field and return the decoded JSON body."""
        name = filename or self.config.upload_name
        mime = mime_type or (guess_mime_type(name) if filename else self.config.upload_mime)
        try:
            response = self._session.post(
                self.config.endpoint_url,
                files={"audio": (name, payload, mime)},
                headers=self.config.headers,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise InferenceUnreachable(f"Cry detection endpoint unreachable: {exc}") from exc

        logging.debug("Cry detection response status=%s bytes_sent=%d", response.status_code, len(payload))
        if not 200 <= response.status_code < 300:
            raise InferenceRejected(status_code=response.status_code, body=response.text)

        try:
            return response.json()
        except ValueError as exc:
            raise InferenceMalformed(
                f"Response is not valid JSON: {response.text[:200]!r}", body=response.text
            ) from exc

    def detect(self, payload: bytes, chunk_index: int = 0, timestamp_ms: int = 0) -> ChunkResult:
        body = self.post_raw(payload)
        return parse_response(body, chunk_index=chunk_index, timestamp_ms=timestamp_ms)
