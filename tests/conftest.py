import threading

import pytest

from baby_cry_analysis.pipeline.client import parse_response


CRY_PAYLOAD = {
    "any_cry": True,
    "cry_ratio": 0.4,
    "segments": [{"start": 1, "end": 2, "duration": 1}],
}


class FakeSource:
    def __init__(self, duration_ms, name="clip.mp4"):
        self.duration_ms = duration_ms
        self.name = name
        self.duration_calls = 0

    def get_duration_ms(self, refresh=False):
        self.duration_calls += 1
        return self.duration_ms


class FakeExtractor:
    def __init__(self, fail_at=None, error=None):
        self.fail_at = fail_at
        self.error = error
        self.calls = []

    def extract(self, source, start_ms, end_ms):
        self.calls.append((start_ms, end_ms))
        if self.fail_at is not None and start_ms == self.fail_at:
            raise self.error
        return b"\x00" * 16

    def extract_full(self, source):
        self.calls.append("full")
        return b"\x00" * 64

    def extract_trailing(self, source, seconds):
        self.calls.append(("trailing", seconds))
        if self.error is not None and self.fail_at == "trailing":
            raise self.error
        return b"\x00" * 32


class FakeClient:
    def __init__(self, payload=None, fail_on=None, error=None):
        self.payload = payload or CRY_PAYLOAD
        self.fail_on = fail_on
        self.error = error
        self.calls = []

    def detect(self, payload, chunk_index=0, timestamp_ms=0):
        self.calls.append((chunk_index, timestamp_ms, len(payload)))
        if self.fail_on is not None and chunk_index == self.fail_on:
            raise self.error
        return parse_response(self.payload, chunk_index=chunk_index, timestamp_ms=timestamp_ms)


class BlockingClient(FakeClient):
    """Holds every detect() call until ``release`` is set."""

    def __init__(self, payload=None):
        super().__init__(payload=payload)
        self.entered = threading.Event()
        self.release = threading.Event()

    def detect(self, payload, chunk_index=0, timestamp_ms=0):
        self.entered.set()
        self.release.wait(timeout=5)
        return super().detect(payload, chunk_index=chunk_index, timestamp_ms=timestamp_ms)


@pytest.fixture
def extractor():
    return FakeExtractor()
