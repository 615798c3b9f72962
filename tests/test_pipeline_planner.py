import pytest

from baby_cry_analysis.pipeline.errors import InvalidDuration
from baby_cry_analysis.pipeline.planner import ChunkDescriptor, plan


def test_plan_clamps_last_chunk():
    chunks = plan(10000, 4000)

    assert chunks == [
        ChunkDescriptor(index=0, start_ms=0, end_ms=4000),
        ChunkDescriptor(index=1, start_ms=4000, end_ms=8000),
        ChunkDescriptor(index=2, start_ms=8000, end_ms=10000),
    ]
    assert chunks[-1].duration_ms == 2000


@pytest.mark.parametrize(
    "duration_ms,chunk_ms",
    [(1, 4000), (4000, 4000), (4001, 4000), (12000, 4000), (59999, 7), (60000, 1)],
)
def test_plan_covers_duration_exactly_once(duration_ms, chunk_ms):
    chunks = plan(duration_ms, chunk_ms)

    assert len(chunks) == -(-duration_ms // chunk_ms)
    assert [c.index for c in chunks] == list(range(len(chunks)))
    assert chunks[0].start_ms == 0
    assert chunks[-1].end_ms == duration_ms
    for previous, current in zip(chunks, chunks[1:]):
        assert current.start_ms == previous.end_ms
    assert all(0 < c.end_ms - c.start_ms <= chunk_ms for c in chunks)


@pytest.mark.parametrize("duration_ms", [0, -5])
def test_plan_rejects_non_positive_duration(duration_ms):
    with pytest.raises(InvalidDuration):
        plan(duration_ms, 4000)


def test_plan_rejects_non_positive_chunk():
    with pytest.raises(ValueError):
        plan(1000, 0)
