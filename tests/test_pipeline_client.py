import json

import pytest
import requests

from baby_cry_analysis.pipeline.client import (
    InferenceClient,
    InferenceConfig,
    Segment,
    guess_mime_type,
    parse_response,
)
from baby_cry_analysis.pipeline.errors import InferenceMalformed, InferenceRejected, InferenceUnreachable


class _FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text

    def json(self):
        return json.loads(self.text)


class _FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, files=None, headers=None, timeout=None):
        self.calls.append({"url": url, "files": files, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


FULL_RESPONSE = {
    "any_cry": True,
    "cry_ratio": 0.25,
    "frame_predictions": [0, 1, 1, 0],
    "frame_probabilities": [0.1, 0.8, 0.9, 0.2],
    "frame_times_sec": [0.0, 0.5, 1.0, 1.5],
    "model": "crnn-v2",
    "num_frames": 4,
    "segments": [{"start": 0.5, "end": 1.5, "duration": 1.0}],
    "threshold": 0.6,
}


def _client(session):
    client = InferenceClient(
        InferenceConfig(
            endpoint_url="https://detector.example/predict",
            headers={"Accept": "application/json"},
            timeout_seconds=7,
        )
    )
    # test double for network calls
    client._session = session  # type: ignore[assignment]
    return client


def test_detect_posts_multipart_audio_and_parses():
    session = _FakeSession(_FakeResponse(200, json.dumps(FULL_RESPONSE)))

    result = _client(session).detect(b"RIFF", chunk_index=3, timestamp_ms=12000)

    call = session.calls[0]
    assert call["url"] == "https://detector.example/predict"
    assert call["files"] == {"audio": ("audio.wav", b"RIFF", "audio/wav")}
    assert call["headers"] == {"Accept": "application/json"}
    assert call["timeout"] == 7

    assert result.chunk_index == 3
    assert result.timestamp_ms == 12000
    assert result.any_cry is True
    assert result.cry_ratio == 0.25
    assert result.segments == (Segment(start_sec=0.5, end_sec=1.5, duration_sec=1.0),)
    assert result.frame_predictions == (0, 1, 1, 0)
    assert result.frame_times_sec == (0.0, 0.5, 1.0, 1.5)
    assert result.threshold == 0.6
    assert result.model == "crnn-v2"


def test_optional_fields_default():
    result = parse_response({"any_cry": False, "cry_ratio": 0})

    assert result.segments == ()
    assert result.frame_probabilities == ()
    assert result.threshold == 0.5
    assert result.model == ""
    assert not result.has_frames


def test_segments_sorted_and_duration_filled():
    result = parse_response(
        {
            "any_cry": True,
            "cry_ratio": 0.5,
            "segments": [{"start": 3.0, "end": 4.5}, {"start": 1.0, "end": 2.0, "duration": 1.0}],
        }
    )

    assert [s.start_sec for s in result.segments] == [1.0, 3.0]
    assert result.segments[1].duration_sec == 1.5


@pytest.mark.parametrize(
    "payload",
    [
        {"cry_ratio": 0.2},
        {"any_cry": True},
        {"any_cry": "yes", "cry_ratio": 0.2},
        {"any_cry": True, "cry_ratio": 1.4},
        {"any_cry": True, "cry_ratio": 0.2, "frame_times_sec": [0.0, 0.5], "frame_probabilities": [0.1]},
        {"any_cry": True, "cry_ratio": 0.2, "segments": [{"start": 0, "end": 2}, {"start": 1, "end": 3}]},
        {"any_cry": True, "cry_ratio": 0.2, "segments": [{"start": 0}]},
        {"any_cry": True, "cry_ratio": 0.2, "num_frames": -1},
        {"any_cry": True, "cry_ratio": 0.2, "num_frames": 2.5},
        [1, 2, 3],
    ],
)
def test_invalid_payloads_are_malformed(payload):
    with pytest.raises(InferenceMalformed):
        parse_response(payload)


def test_non_json_body_is_malformed():
    session = _FakeSession(_FakeResponse(200, "not json"))

    with pytest.raises(InferenceMalformed):
        _client(session).detect(b"RIFF")


def test_non_2xx_is_rejected_with_status_and_body():
    session = _FakeSession(_FakeResponse(502, "Bad gateway from tunnel"))

    with pytest.raises(InferenceRejected) as info:
        _client(session).detect(b"RIFF")

    assert info.value.status_code == 502
    assert "502" in str(info.value)
    assert "Bad gateway from tunnel" in str(info.value)


@pytest.mark.parametrize("error", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_transport_failures_are_unreachable(error):
    session = _FakeSession(error=error)

    with pytest.raises(InferenceUnreachable):
        _client(session).detect(b"RIFF")


def test_post_raw_uses_given_filename():
    session = _FakeSession(_FakeResponse(200, json.dumps({"any_cry": False, "cry_ratio": 0.0})))

    body = _client(session).post_raw(b"ID3", filename="clip.mp3")

    assert body == {"any_cry": False, "cry_ratio": 0.0}
    assert session.calls[0]["files"]["audio"] == ("clip.mp3", b"ID3", "audio/mpeg")


def test_guess_mime_type():
    assert guess_mime_type("a.MP3") == "audio/mpeg"
    assert guess_mime_type("a.oga") == "audio/ogg"
    assert guess_mime_type("a.flac") == "audio/wav"
    assert guess_mime_type("noext") == "audio/wav"


def test_num_frames_read_or_defaulted():
    reported = parse_response(FULL_RESPONSE)
    derived = parse_response({key: value for key, value in FULL_RESPONSE.items() if key != "num_frames"})
    bare = parse_response({"any_cry": False, "cry_ratio": 0.0})

    assert reported.num_frames == 4
    assert derived.num_frames == 4
    assert bare.num_frames == 0


@pytest.mark.parametrize("prediction", [2, 0.5, -1])
def test_frame_predictions_must_be_binary(prediction):
    payload = dict(FULL_RESPONSE, frame_predictions=[0, prediction, 1, 0])

    with pytest.raises(InferenceMalformed):
        parse_response(payload)


def test_malformed_error_keeps_full_body():
    body = "<html>" + "x" * 507
    session = _FakeSession(_FakeResponse(200, body))

    with pytest.raises(InferenceMalformed) as info:
        _client(session).detect(b"RIFF")

    assert info.value.body == body
