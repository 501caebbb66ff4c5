"""
Bounded-memory sampling of very large tag-based exports.

Apple Health export.xml files run to several gigabytes. Rather than parse
the whole document, raw bytes are pulled chunk by chunk into a working
buffer, complete <Record .../> and <Record ...>...</Record> entries are cut
out with a pattern match, and every Nth one is parsed and yielded until a cap
is reached.

The buffer never holds more than max_buffer_bytes + chunk_size bytes. When
it overflows without producing an entry its front is discarded; those drops
are counted in SamplerStats rather than passed over silently.
"""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Iterable, Iterator

from healthpipe.config import (
    STREAM_CHUNK_SIZE,
    STREAM_MAX_BUFFER_BYTES,
    STREAM_MAX_ENTRIES,
    STREAM_SAMPLE_EVERY,
)
from healthpipe.db.schemas.results import SamplerStats
from healthpipe.errors import StreamFailure

logger = logging.getLogger(__name__)


class SamplerState(str, Enum):
    ACCUMULATING = "accumulating"
    COMPLETED = "completed"
    LIMITED = "limited"
    FAILED = "failed"


@dataclass(frozen=True)
class SampledEntry:
    tag: str
    attributes: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)


def _entry_pattern(tag: str) -> re.Pattern:
    name = re.escape(tag.encode("utf-8"))
    # self-terminating | open/close pair
    return re.compile(rb"<" + name + rb"\b(?:[^>]*?/>|[^>]*>.*?</" + name + rb"\s*>)", re.DOTALL)


def parse_entry(snippet: bytes) -> SampledEntry:
    elem = ET.fromstring(snippet)
    metadata = {}
    for meta in elem.iter("MetadataEntry"):
        key = meta.get("key")
        if key is not None:
            metadata[key] = meta.get("value")
    return SampledEntry(tag=elem.tag, attributes=dict(elem.attrib), metadata=metadata)


class StreamSampler:
    """Single-pass iterator over sampled entries of a byte stream.

    To start over, open the source again and build a new sampler.
    """

    def __init__(
        self,
        stream: BinaryIO | Iterable[bytes],
        max_entries: int = STREAM_MAX_ENTRIES,
        sample_every: int = STREAM_SAMPLE_EVERY,
        *,
        tag: str = "Record",
        chunk_size: int = STREAM_CHUNK_SIZE,
        max_buffer_bytes: int = STREAM_MAX_BUFFER_BYTES,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if sample_every < 1:
            raise ValueError("sample_every must be at least 1")
        if chunk_size < 1 or max_buffer_bytes < 1:
            raise ValueError("chunk_size and max_buffer_bytes must be positive")

        self.stream = stream
        self.max_entries = max_entries
        self.sample_every = sample_every
        self.tag = tag
        self.chunk_size = chunk_size
        self.max_buffer_bytes = max_buffer_bytes

        self._pattern = _entry_pattern(tag)
        self._marker = b"<" + tag.encode("utf-8")
        self._started = False

        self.state = SamplerState.ACCUMULATING
        self.total_seen = 0
        self.yielded = 0
        self.malformed = 0
        self.truncations = 0
        self.discarded_bytes = 0
        self.skipped_estimate = 0
        self.max_buffered_bytes = 0

    @property
    def stats(self) -> SamplerStats:
        return SamplerStats(
            state=self.state.value,
            total_seen=self.total_seen,
            yielded=self.yielded,
            malformed=self.malformed,
            truncations=self.truncations,
            discarded_bytes=self.discarded_bytes,
            skipped_estimate=self.skipped_estimate,
            max_buffered_bytes=self.max_buffered_bytes,
        )

    def _chunks(self) -> Iterator[bytes]:
        if hasattr(self.stream, "read"):
            while True:
                chunk = self.stream.read(self.chunk_size)
                if not chunk:
                    return
                yield chunk
        else:
            for chunk in self.stream:
                # Oversized chunks are split so the buffer bound still holds.
                for start in range(0, len(chunk), self.chunk_size):
                    yield chunk[start:start + self.chunk_size]

    def _close_stream(self) -> None:
        close = getattr(self.stream, "close", None)
        if close is not None:
            close()

    def _truncate(self, buffer: bytes) -> bytes:
        keep_from = buffer.rfind(self._marker)
        if keep_from == -1 or len(buffer) - keep_from > self.max_buffer_bytes // 2:
            # Keep just enough to catch a marker split across chunks.
            keep_from = max(len(buffer) - (len(self._marker) - 1), 0)
        discarded = buffer[:keep_from]
        self.truncations += 1
        self.discarded_bytes += len(discarded)
        self.skipped_estimate += discarded.count(self._marker)
        logger.warning(
            f"Sampler buffer exceeded {self.max_buffer_bytes} bytes; "
            f"discarded {len(discarded)} bytes (~{discarded.count(self._marker)} entries)"
        )
        return buffer[keep_from:]

    def __iter__(self) -> Iterator[SampledEntry]:
        if self._started:
            raise RuntimeError("StreamSampler is single-pass; reopen the source to sample again")
        self._started = True

        buffer = b""
        chunks = self._chunks()
        while True:
            try:
                chunk = next(chunks)
            except StopIteration:
                break
            except Exception as e:
                self.state = SamplerState.FAILED
                raise StreamFailure(f"Stream read failed after {self.total_seen} entries: {e}") from e

            buffer += chunk
            self.max_buffered_bytes = max(self.max_buffered_bytes, len(buffer))

            consumed_to = 0
            for match in self._pattern.finditer(buffer):
                consumed_to = match.end()
                self.total_seen += 1
                if self.total_seen % self.sample_every:
                    continue
                try:
                    entry = parse_entry(match.group(0))
                except ET.ParseError as e:
                    self.malformed += 1
                    logger.debug(f"Skipping malformed {self.tag} entry: {e}")
                    continue

                self.yielded += 1
                yield entry
                if self.yielded >= self.max_entries:
                    self.state = SamplerState.LIMITED
                    logger.info(f"Reached {self.max_entries} sampled entries; closing stream")
                    self._close_stream()
                    return

            if consumed_to:
                buffer = buffer[consumed_to:]
            if len(buffer) > self.max_buffer_bytes:
                buffer = self._truncate(buffer)

        self.state = SamplerState.COMPLETED


def sample_stream(
    stream: BinaryIO | Iterable[bytes],
    max_entries: int = STREAM_MAX_ENTRIES,
    sample_every: int = STREAM_SAMPLE_EVERY,
    **kwargs,
) -> Iterator[SampledEntry]:
    """Lazy, single-pass sequence of sampled entries (see StreamSampler)."""
    return iter(StreamSampler(stream, max_entries, sample_every, **kwargs))
