"""S3-compatible ETag calculation for local files.

A file no larger than the part size gets the plain MD5 of its content. Larger
files get the multipart form: the MD5 of the concatenated binary MD5s of every
part, followed by ``-<part count>``. Parts are hashed in parallel on a thread
pool; each worker reads its own byte range with positioned reads so no file
cursor is shared between threads.
"""

import hashlib
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from ..errors import ConfigurationError, LocalIOError
from ..utils.logging import TimedOperation

logger = logging.getLogger(__name__)

# Read buffer for both the whole-file and the per-part digests
CHUNK_SIZE = 1024 * 1024

EMPTY_ETAG = hashlib.md5(b"").hexdigest()


@dataclass(frozen=True)
class PartRange:
    """A contiguous byte range of a file hashed as one multipart part."""
    index: int
    offset: int
    length: int


def part_count(file_size: int, part_size: int) -> int:
    """Number of parts a file of ``file_size`` bytes splits into."""
    return -(-file_size // part_size)


def iter_part_ranges(file_size: int, part_size: int) -> Iterator[PartRange]:
    """Yield the parts of a file in ascending order.

    Every part is ``part_size`` long except the last, which holds the
    remainder and is never empty.
    """
    for index in range(part_count(file_size, part_size)):
        offset = index * part_size
        yield PartRange(index, offset, min(part_size, file_size - offset))


class PositionalReader:
    """Read exact byte ranges of one file from several threads at once.

    Uses ``os.pread`` on a single descriptor where the platform has it and
    falls back to an independent file handle per read elsewhere.
    """

    def __init__(self, file_path: Path):
        self.file_path = file_path
        self._fd: Optional[int] = None

    def __enter__(self) -> "PositionalReader":
        if hasattr(os, "pread"):
            try:
                self._fd = os.open(self.file_path, os.O_RDONLY)
            except OSError as exc:
                raise LocalIOError(self.file_path, exc.strerror or str(exc)) from exc
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def read_range(self, offset: int, length: int, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the bytes of ``[offset, offset + length)`` in bounded chunks.

        Raises:
            LocalIOError: If the range cannot be read in full.
        """
        try:
            if self._fd is not None:
                yield from self._pread_range(offset, length, chunk_size)
            else:
                yield from self._seek_range(offset, length, chunk_size)
        except OSError as exc:
            raise LocalIOError(self.file_path, exc.strerror or str(exc), offset, length) from exc

    def _pread_range(self, offset: int, length: int, chunk_size: int) -> Iterator[bytes]:
        position = offset
        remaining = length
        while remaining > 0:
            chunk = os.pread(self._fd, min(chunk_size, remaining), position)
            if not chunk:
                raise LocalIOError(self.file_path, "unexpected end of file", offset, length)
            position += len(chunk)
            remaining -= len(chunk)
            yield chunk

    def _seek_range(self, offset: int, length: int, chunk_size: int) -> Iterator[bytes]:
        with open(self.file_path, "rb") as f:
            f.seek(offset)
            remaining = length
            while remaining > 0:
                chunk = f.read(min(chunk_size, remaining))
                if not chunk:
                    raise LocalIOError(self.file_path, "unexpected end of file", offset, length)
                remaining -= len(chunk)
                yield chunk


def calculate_file_hash(file_path: Path, file_size: int, chunk_size: int = CHUNK_SIZE) -> str:
    """Calculate the MD5 hash of the first ``file_size`` bytes of a file.

    Args:
        file_path: Path to the file
        file_size: Size of the file when it was listed
        chunk_size: Size of chunks to read

    Returns:
        MD5 hash as hex string

    Raises:
        LocalIOError: With the unread byte range if reading fails or the file
            ends early
    """
    hash_md5 = hashlib.md5()
    position = 0

    try:
        with open(file_path, "rb") as f:
            while position < file_size:
                chunk = f.read(min(chunk_size, file_size - position))
                if not chunk:
                    raise LocalIOError(file_path, "unexpected end of file",
                                       position, file_size - position)
                hash_md5.update(chunk)
                position += len(chunk)
    except OSError as exc:
        offset, length = (position, file_size - position) if position < file_size else (0, file_size)
        raise LocalIOError(file_path, exc.strerror or str(exc), offset, length) from exc

    return hash_md5.hexdigest()


def _hash_part(reader: PositionalReader, part: PartRange, chunk_size: int) -> Tuple[int, bytes]:
    digest = hashlib.md5()
    for chunk in reader.read_range(part.offset, part.length, chunk_size):
        digest.update(chunk)
    return part.index, digest.digest()


def calculate_s3_etag(file_path: Union[str, Path], part_size: int,
                      max_workers: Optional[int] = None, chunk_size: int = CHUNK_SIZE) -> str:
    """Calculate the ETag an S3-compatible store reports for a file.

    Args:
        file_path: Path to the file
        part_size: Multipart threshold and part length in bytes
        max_workers: Threads used to hash parts (default: one per CPU, at most one per part)
        chunk_size: Read buffer size

    Returns:
        ``"<md5 hex>"`` for files up to ``part_size`` bytes,
        ``"<md5 hex>-<parts>"`` for larger files

    Raises:
        ConfigurationError: If ``part_size`` or ``max_workers`` is not positive
        LocalIOError: If the file cannot be read; no partial result is returned
    """
    if part_size is None or part_size <= 0:
        raise ConfigurationError(f"part_size must be a positive number of bytes, got {part_size!r}")
    if max_workers is not None and max_workers <= 0:
        raise ConfigurationError(f"max_workers must be positive, got {max_workers!r}")

    path = Path(file_path)
    try:
        file_size = path.stat().st_size
    except OSError as exc:
        raise LocalIOError(path, exc.strerror or str(exc)) from exc

    if file_size == 0:
        return EMPTY_ETAG

    if file_size <= part_size:
        return calculate_file_hash(path, file_size, chunk_size)

    parts = list(iter_part_ranges(file_size, part_size))
    workers = max_workers or min(len(parts), os.cpu_count() or 1)
    digests: List[Optional[bytes]] = [None] * len(parts)

    with TimedOperation(logger, f"ETag calculation for {path.name} ({len(parts)} parts)", "DEBUG"):
        with PositionalReader(path) as reader, ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(_hash_part, reader, part, chunk_size) for part in parts]
            try:
                for future in as_completed(futures):
                    index, digest = future.result()
                    digests[index] = digest
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

    final_digest = hashlib.md5(b"".join(digests))
    return f"{final_digest.hexdigest()}-{len(parts)}"
