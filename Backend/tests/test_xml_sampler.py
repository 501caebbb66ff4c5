from __future__ import annotations

import io

import pytest

from healthpipe.errors import StreamFailure
from healthpipe.utils.xml_sampler import SamplerState, StreamSampler, sample_stream

HEADER = b'<?xml version="1.0" encoding="UTF-8"?>\n<HealthData locale="en_US">\n'
FOOTER = b"</HealthData>\n"


def _step(i: int) -> bytes:
    return (
        f'<Record type="HKQuantityTypeIdentifierStepCount" sourceName="Apple Watch" unit="count" '
        f'value="{i}" startDate="2020-01-01 10:00:00 -0500" endDate="2020-01-01 10:05:00 -0500"/>\n'
    ).encode()


def _heart_rate(i: int) -> bytes:
    return (
        f'<Record type="HKQuantityTypeIdentifierHeartRate" unit="count/min" value="{60 + i}" '
        f'startDate="2020-01-01 10:00:00 -0500">\n'
        f' <MetadataEntry key="HKMetadataKeyHeartRateMotionContext" value="{i}"/>\n'
        f"</Record>\n"
    ).encode()


def _document(*entries: bytes) -> bytes:
    return HEADER + b"".join(entries) + FOOTER


def test_both_entry_shapes_are_found():
    doc = _document(_step(0), _heart_rate(1), _step(2))
    sampler = StreamSampler(io.BytesIO(doc), max_entries=100, sample_every=1)
    entries = list(sampler)

    assert [e.attributes["value"] for e in entries] == ["0", "61", "2"]
    assert entries[1].metadata == {"HKMetadataKeyHeartRateMotionContext": "1"}
    assert entries[0].tag == "Record"
    assert sampler.state is SamplerState.COMPLETED
    assert sampler.stats.total_seen == 3


def test_entries_split_across_chunks_are_reassembled():
    doc = _document(*(_heart_rate(i) for i in range(20)))
    entries = list(sample_stream(io.BytesIO(doc), max_entries=100, sample_every=1, chunk_size=7))
    assert len(entries) == 20


def test_sample_every_yields_every_nth_entry():
    doc = _document(*(_step(i) for i in range(10)))
    sampler = StreamSampler(io.BytesIO(doc), max_entries=100, sample_every=3)
    values = [e.attributes["value"] for e in sampler]

    assert values == ["2", "5", "8"]
    assert sampler.stats.total_seen == 10
    assert sampler.stats.yielded == 3


def test_limit_closes_stream():
    stream = io.BytesIO(_document(*(_step(i) for i in range(50))))
    sampler = StreamSampler(stream, max_entries=4, sample_every=1, chunk_size=64)
    entries = list(sampler)

    assert len(entries) == 4
    assert sampler.state is SamplerState.LIMITED
    assert stream.closed


def test_malformed_entries_are_counted_and_skipped():
    bad = b'<Record type="HKQuantityTypeIdentifierStepCount" value="1" broken/>\n'
    sampler = StreamSampler(io.BytesIO(_document(_step(0), bad, _step(2))), max_entries=10, sample_every=1)
    entries = list(sampler)

    assert [e.attributes["value"] for e in entries] == ["0", "2"]
    assert sampler.stats.malformed == 1


def test_buffer_stays_bounded_across_noise():
    noise = b"<Correlation>" + b"x" * 100_000 + b"</Correlation>\n"
    doc = _document(_step(0), noise, _step(1))
    sampler = StreamSampler(io.BytesIO(doc), max_entries=10, sample_every=1,
                            chunk_size=1000, max_buffer_bytes=4096)
    entries = list(sampler)
    stats = sampler.stats

    assert [e.attributes["value"] for e in entries] == ["0", "1"]
    assert stats.max_buffered_bytes <= 4096 + 1000
    assert stats.truncations > 0
    assert stats.discarded_bytes > 0
    assert stats.skipped_estimate == 0


def test_truncated_entry_is_reported_as_skipped():
    runaway = b'<Record type="HKQuantityTypeIdentifierStepCount" note="' + b"a" * 20_000
    doc = HEADER + runaway + b'"/>\n' + _step(7) + FOOTER
    sampler = StreamSampler(io.BytesIO(doc), max_entries=10, sample_every=1,
                            chunk_size=512, max_buffer_bytes=2048)
    entries = list(sampler)
    stats = sampler.stats

    assert [e.attributes["value"] for e in entries] == ["7"]
    assert stats.skipped_estimate >= 1
    assert stats.max_buffered_bytes <= 2048 + 512


def test_read_failure_raises_after_partial_output():
    def chunks():
        yield HEADER + _step(0) + _step(1)
        raise OSError("device went away")

    sampler = StreamSampler(chunks(), max_entries=10, sample_every=1)
    seen = []
    with pytest.raises(StreamFailure):
        for entry in sampler:
            seen.append(entry)

    assert len(seen) == 2
    assert sampler.state is SamplerState.FAILED


class _TruncatedReader(io.RawIOBase):
    """Hands out its data once, then fails like a cut-off gzip member."""

    def __init__(self, data: bytes):
        super().__init__()
        self._data = data

    def readable(self):
        return True

    def read(self, size=-1):
        if not self._data:
            raise EOFError("Compressed file ended before the end-of-stream marker was reached")
        data, self._data = self._data, b""
        return data


def _failing_chunks():
    yield HEADER + _step(0)
    raise RuntimeError("upstream iterator broke")


@pytest.mark.parametrize(
    "source, cause",
    [
        (lambda: _TruncatedReader(HEADER + _step(0)), EOFError),
        (_failing_chunks, RuntimeError),
    ],
)
def test_any_read_error_becomes_stream_failure(source, cause):
    sampler = StreamSampler(source(), max_entries=10, sample_every=1)
    seen = []
    with pytest.raises(StreamFailure) as excinfo:
        for entry in sampler:
            seen.append(entry)

    assert isinstance(excinfo.value.__cause__, cause)
    assert len(seen) == 1
    assert sampler.state is SamplerState.FAILED


def test_iterable_chunks_larger_than_chunk_size_are_split():
    doc = _document(*(_step(i) for i in range(30)))
    sampler = StreamSampler([doc], max_entries=100, sample_every=1, chunk_size=256, max_buffer_bytes=1024)
    assert len(list(sampler)) == 30
    assert sampler.stats.max_buffered_bytes <= 1024 + 256


def test_sampler_is_single_pass():
    sampler = StreamSampler(io.BytesIO(_document(_step(0))), max_entries=10, sample_every=1)
    list(sampler)
    with pytest.raises(RuntimeError):
        list(sampler)


@pytest.mark.parametrize("kwargs", [{"max_entries": 0}, {"sample_every": 0}, {"chunk_size": 0}])
def test_invalid_settings_are_rejected(kwargs):
    options = {"max_entries": 10, "sample_every": 1}
    options.update(kwargs)
    with pytest.raises(ValueError):
        StreamSampler(io.BytesIO(b""), **options)


def test_custom_tag():
    doc = HEADER + b'<Workout workoutActivityType="HKWorkoutActivityTypeRunning"/>\n' + FOOTER
    entries = list(sample_stream(io.BytesIO(doc), max_entries=10, sample_every=1, tag="Workout"))
    assert entries[0].attributes["workoutActivityType"] == "HKWorkoutActivityTypeRunning"
