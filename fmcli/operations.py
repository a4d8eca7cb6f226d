"""Filesystem operations behind the shell commands.

Each function takes absolute paths and either returns normally or raises
(OSError, OperationFailed, PipelineError). Formatting and error reporting
are left to the command handlers.
"""

import locale
import logging
import os
from typing import BinaryIO, List, Tuple

from .errors import InvalidInput, OperationFailed
from .pipeline import (
    DEFAULT_CHUNK_SIZE,
    BrotliCompressTransform,
    BrotliDecompressTransform,
    DigestTransform,
    FileSink,
    FileSource,
    Pipeline,
    StreamSink,
)

logger = logging.getLogger(__name__)


def _entry_type(entry: os.DirEntry) -> str:
    if entry.is_symlink():
        return "symlink"
    if entry.is_dir(follow_symlinks=False):
        return "directory"
    if entry.is_file(follow_symlinks=False):
        return "file"
    return "other"


def _collation_key(name: str):
    # Case-insensitive first, then case-sensitive as a tie breaker
    return (locale.strxfrm(name.casefold()), locale.strxfrm(name))


def list_directory(path: str) -> List[Tuple[str, str]]:
    """
    List a directory as (name, type) pairs

    Directories (and symlinks to them) come first, then every other entry;
    each group is sorted with locale-aware collation.
    """
    dirs = []
    others = []
    with os.scandir(path) as it:
        for entry in it:
            entry_type = _entry_type(entry)
            # A symlink to a directory keeps its tag but sorts with directories
            if entry.is_dir():
                dirs.append((entry.name, entry_type))
            else:
                others.append((entry.name, entry_type))

    dirs.sort(key=lambda item: _collation_key(item[0]))
    others.sort(key=lambda item: _collation_key(item[0]))
    return dirs + others


def _ensure_distinct(source: str, destination: str) -> None:
    """Refuse to pipe a file into itself; opening the sink would truncate it"""
    if os.path.exists(destination) and os.path.samefile(source, destination):
        raise OperationFailed(f"'{source}' and '{destination}' are the same file")


def cat_file(path: str, stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
    """Stream a file to a binary stream, terminating the output with a newline"""
    sink = StreamSink(stream)
    Pipeline(FileSource(path, chunk_size)).into(sink).run()
    if not sink.ends_with_newline:
        stream.write(b"\n")
        stream.flush()


def create_file(path: str) -> None:
    """Create an empty file; fails if anything already exists at path"""
    with open(path, "xb"):
        pass


def rename_file(path: str, new_name: str) -> str:
    """
    Rename path to new_name inside the same parent directory

    Returns:
        The new absolute path

    Raises:
        InvalidInput: if new_name is not a plain file name
        OperationFailed: if the new name is already taken
    """
    separators = [sep for sep in (os.sep, os.altsep) if sep]
    if new_name in (".", "..") or any(sep in new_name for sep in separators):
        raise InvalidInput(f"{new_name}: not a plain file name")
    new_path = os.path.join(os.path.dirname(path), new_name)
    if os.path.lexists(new_path):
        raise OperationFailed(f"{new_path}: already exists")
    os.rename(path, new_path)
    return new_path


def copy_file(source: str, destination: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
    """Byte-copy source into destination (created or truncated)"""
    _ensure_distinct(source, destination)
    Pipeline(FileSource(source, chunk_size)).into(FileSink(destination)).run()


def move_file(source: str, destination: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
    """
    Copy source to destination, then delete source

    The source is only removed after the copy completed and was flushed.
    Not atomic: if removal fails the copy stays and the error propagates.
    """
    copy_file(source, destination, chunk_size)
    os.remove(source)
    logger.debug("moved %s -> %s", source, destination)


def remove_file(path: str) -> None:
    os.remove(path)


def hash_file(path: str, algorithm: str = "sha256",
              chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Hex digest of a file's contents"""
    digest = DigestTransform(algorithm)
    Pipeline(FileSource(path, chunk_size)).through(digest).run()
    return digest.hexdigest()


def compress_file(source: str, destination: str, quality: int = 11,
                  chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
    """Brotli-compress source into destination"""
    _ensure_distinct(source, destination)
    (Pipeline(FileSource(source, chunk_size))
        .through(BrotliCompressTransform(quality))
        .into(FileSink(destination))
        .run())


def decompress_file(source: str, destination: str,
                    chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
    """Brotli-decompress source into destination"""
    _ensure_distinct(source, destination)
    (Pipeline(FileSource(source, chunk_size))
        .through(BrotliDecompressTransform())
        .into(FileSink(destination))
        .run())
