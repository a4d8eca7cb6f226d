"""Streaming pipeline: byte source -> transforms -> byte sink"""

import hashlib
import logging
import os
import stat
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import BinaryIO, Iterator, List, Optional

import brotli

from .errors import PipelineError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class Stage(ABC):
    """Common base for every pipeline stage.

    A stage owns whatever handle it opens in ``open()`` and must release it
    in ``close()``. ``close()`` may be called on a stage whose ``open()``
    failed half-way, so it has to tolerate a missing handle.
    """

    name = "stage"
    path: Optional[str] = None

    def open(self) -> None:
        """Acquire resources before any data flows"""

    def close(self) -> None:
        """Release resources; called on success and on failure"""

    def __repr__(self):
        if self.path:
            return f"{self.name}({self.path})"
        return self.name


class Source(Stage):
    """Produces the bytes that flow through the pipeline"""

    name = "source"

    @abstractmethod
    def chunks(self) -> Iterator[bytes]:
        """Yield successive chunks until end of stream"""


class Transform(Stage):
    """Maps input chunks to output chunks"""

    name = "transform"

    @abstractmethod
    def process(self, chunk: bytes) -> bytes:
        """Transform one chunk; may return b'' while input is buffered"""

    def finish(self) -> bytes:
        """Called once after end of stream; returns any remaining output"""
        return b""


class Sink(Stage):
    """Consumes the bytes produced by the last transform"""

    name = "sink"

    @abstractmethod
    def write(self, chunk: bytes) -> None:
        """Write one chunk; returns only once the chunk was accepted"""

    def finish(self) -> None:
        """Called once after the last chunk was written"""


# ============================================================================
# Sources
# ============================================================================


class FileSource(Source):
    """Reads a file sequentially in bounded chunks"""

    name = "file-source"

    def __init__(self, path: str, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.path = path
        self.chunk_size = chunk_size
        self._file: Optional[BinaryIO] = None

    def open(self) -> None:
        self._file = open(self.path, "rb")

    def chunks(self) -> Iterator[bytes]:
        while True:
            chunk = self._file.read(self.chunk_size)
            if not chunk:
                break
            yield chunk

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


# ============================================================================
# Transforms
# ============================================================================


class DigestTransform(Transform):
    """Feeds every chunk into a hashlib digest and passes nothing on"""

    name = "digest"

    def __init__(self, algorithm: str = "sha256"):
        self.algorithm = algorithm
        self._hash = hashlib.new(algorithm)
        self._finished = False

    def process(self, chunk: bytes) -> bytes:
        self._hash.update(chunk)
        return b""

    def finish(self) -> bytes:
        self._finished = True
        return b""

    def hexdigest(self) -> str:
        """Lowercase hex digest; only available once end of stream was seen"""
        if not self._finished:
            raise PipelineError(self.name, "digest requested before end of stream")
        return self._hash.hexdigest()


class BrotliCompressTransform(Transform):
    """Streaming Brotli encoder"""

    name = "brotli-compress"

    def __init__(self, quality: int = 11):
        self.quality = quality
        self._compressor = brotli.Compressor(quality=quality)

    def process(self, chunk: bytes) -> bytes:
        return self._compressor.process(chunk)

    def finish(self) -> bytes:
        return self._compressor.finish()


class BrotliDecompressTransform(Transform):
    """Streaming Brotli decoder that insists on a complete stream"""

    name = "brotli-decompress"

    def __init__(self):
        self._decompressor = brotli.Decompressor()

    def process(self, chunk: bytes) -> bytes:
        if self._decompressor.is_finished():
            raise ValueError("unexpected data after end of brotli stream")
        return self._decompressor.process(chunk)

    def finish(self) -> bytes:
        if not self._decompressor.is_finished():
            raise ValueError("truncated brotli stream")
        return b""


# ============================================================================
# Sinks
# ============================================================================


class FileSink(Sink):
    """Creates or truncates a file and writes to it sequentially"""

    name = "file-sink"

    def __init__(self, path: str):
        self.path = path
        self._file: Optional[BinaryIO] = None

    def open(self) -> None:
        self._file = open(self.path, "wb")

    def write(self, chunk: bytes) -> None:
        self._file.write(chunk)

    def finish(self) -> None:
        # Everything must reach the OS before the pipeline reports success
        self._file.flush()
        fd = self._file.fileno()
        # Devices and FIFOs (/dev/null, pipes) reject fsync
        if stat.S_ISREG(os.fstat(fd).st_mode):
            os.fsync(fd)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


class StreamSink(Sink):
    """Writes to an already open binary stream such as stdout.

    The stream is borrowed, not owned, so it is flushed but never closed.
    """

    name = "stream-sink"

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.bytes_written = 0
        self.ends_with_newline = False

    def write(self, chunk: bytes) -> None:
        self.stream.write(chunk)
        self.stream.flush()
        self.bytes_written += len(chunk)
        self.ends_with_newline = chunk.endswith(b"\n")

    def finish(self) -> None:
        self.stream.flush()


class NullSink(Sink):
    """Discards everything"""

    name = "null-sink"

    def write(self, chunk: bytes) -> None:
        pass


# ============================================================================
# Engine
# ============================================================================


@contextmanager
def _stage_errors(stage: Stage):
    """Turn any failure inside a stage into a PipelineError naming it"""
    try:
        yield
    except PipelineError:
        raise
    except Exception as e:
        reason = getattr(e, "strerror", None) or str(e) or e.__class__.__name__
        raise PipelineError(stage.name, reason, stage.path) from e


def _close_all(stages: List[Stage], quiet: bool) -> None:
    """Close stages in reverse order.

    With quiet=True close errors are only logged so the original failure
    stays the one that is reported.
    """
    first_error = None
    for stage in reversed(stages):
        try:
            with _stage_errors(stage):
                stage.close()
        except PipelineError as e:
            if quiet:
                logger.debug("ignoring close failure of %r: %s", stage, e)
            elif first_error is None:
                first_error = e
    if first_error is not None:
        raise first_error


def _push(chunk: bytes, transforms: List[Transform], sink: Sink) -> None:
    """Send one chunk through the remaining transforms into the sink"""
    for transform in transforms:
        if not chunk:
            return
        with _stage_errors(transform):
            chunk = transform.process(chunk)
    if chunk:
        with _stage_errors(sink):
            sink.write(chunk)


def run_pipeline(source: Source, transforms: List[Transform], sink: Sink) -> None:
    """
    Run source -> transforms -> sink to completion

    Chunks are pulled from the source one at a time and pushed all the way
    into the sink before the next read, so memory use is bounded by the
    chunk size and a slow sink slows down reading.

    Raises:
        PipelineError: first failure of any stage; all stages are closed
            before it propagates. Output already written is left in place.
    """
    transforms = list(transforms)
    stages: List[Stage] = [source] + transforms + [sink]
    opened: List[Stage] = []

    logger.debug("pipeline start: %s", " | ".join(repr(s) for s in stages))
    try:
        for stage in stages:
            # Register before opening so a half-open stage is still closed
            opened.append(stage)
            with _stage_errors(stage):
                stage.open()

        chunks = source.chunks()
        while True:
            with _stage_errors(source):
                chunk = next(chunks, None)
            if chunk is None:
                break
            _push(chunk, transforms, sink)

        # Flush buffered output of each transform through the stages after it
        for index, transform in enumerate(transforms):
            with _stage_errors(transform):
                tail = transform.finish()
            _push(tail, transforms[index + 1:], sink)

        with _stage_errors(sink):
            sink.finish()
    except BaseException as e:
        logger.debug("pipeline aborted: %s", e)
        _close_all(opened, quiet=True)
        raise

    _close_all(opened, quiet=False)
    logger.debug("pipeline done: %s", " | ".join(repr(s) for s in stages))


class Pipeline:
    """Builder for a single pipeline run.

    Example:
        Pipeline(FileSource(src)).through(BrotliCompressTransform()).into(FileSink(dst)).run()
    """

    def __init__(self, source: Source):
        self.source = source
        self.transforms: List[Transform] = []
        self.sink: Sink = NullSink()

    def through(self, transform: Transform) -> "Pipeline":
        """Append a transform stage"""
        self.transforms.append(transform)
        return self

    def into(self, sink: Sink) -> "Pipeline":
        """Set the sink (defaults to NullSink)"""
        self.sink = sink
        return self

    def run(self) -> None:
        """Execute the pipeline, see run_pipeline()"""
        run_pipeline(self.source, self.transforms, self.sink)

    def __repr__(self):
        stages = [self.source] + self.transforms + [self.sink]
        return f"Pipeline({' | '.join(repr(s) for s in stages)})"
