"""Buffer cache: in-memory copies of disk blocks, recycled least recently used first."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from .disk import DiskError, MemoryDisk
from .layout import BSIZE

NBUF = 30


class CacheError(Exception):
    """Raised when the buffer cache is misused or exhausted."""


@dataclass(eq=False)
class Buffer:
    """A cached disk block.

    ``valid`` means the data has been read from disk; ``dirty`` means it has
    been modified and must be written before it may be recycled.
    """

    dev: int = 0
    blockno: int = 0
    data: bytearray = field(default_factory=lambda: bytearray(BSIZE))
    valid: bool = False
    dirty: bool = False
    refcnt: int = 0
    locked: bool = False


class BufferCache:
    """A fixed set of buffers in front of one disk."""

    def __init__(self, disk: MemoryDisk, nbuf: int = NBUF) -> None:
        if nbuf < 1:
            raise ValueError("the cache needs at least one buffer")
        self.disk = disk
        # Most recently used first.
        self._buffers = [Buffer() for _ in range(nbuf)]

    @staticmethod
    def _lock(buf: Buffer) -> None:
        if buf.locked:
            raise CacheError(f"block {buf.blockno} is already locked")
        buf.locked = True

    def _get(self, dev: int, blockno: int) -> Buffer:
        for buf in self._buffers:
            if buf.dev == dev and buf.blockno == blockno:
                self._lock(buf)
                buf.refcnt += 1
                return buf
        # A dirty buffer is pinned by the log even when unreferenced.
        for buf in reversed(self._buffers):
            if buf.refcnt == 0 and not buf.dirty:
                buf.dev = dev
                buf.blockno = blockno
                buf.valid = False
                buf.dirty = False
                buf.refcnt = 1
                self._lock(buf)
                return buf
        raise CacheError("no buffers")

    def _sync(self, buf: Buffer) -> None:
        if not buf.locked:
            raise DiskError("buffer not locked")
        if buf.valid and not buf.dirty:
            raise DiskError("nothing to do")
        if buf.dev != self.disk.dev:
            raise DiskError(f"request not for disk {self.disk.dev}")
        if buf.dirty:
            self.disk.write_block(buf.blockno, bytes(buf.data))
            buf.dirty = False
        else:
            buf.data[:] = self.disk.read_block(buf.blockno)
        buf.valid = True

    def bread(self, dev: int, blockno: int) -> Buffer:
        """Return the locked buffer for a block, reading it if not cached."""
        buf = self._get(dev, blockno)
        if not buf.valid:
            try:
                self._sync(buf)
            except DiskError:
                buf.locked = False
                buf.refcnt -= 1
                raise
        return buf

    def bwrite(self, buf: Buffer) -> None:
        """Write a locked buffer's contents to disk."""
        if not buf.locked:
            raise CacheError("bwrite")
        buf.dirty = True
        self._sync(buf)

    def brelse(self, buf: Buffer) -> None:
        """Unlock a buffer; once unreferenced it becomes the most recently used."""
        if not buf.locked:
            raise CacheError("brelse")
        buf.locked = False
        buf.refcnt -= 1
        if buf.refcnt == 0:
            self._buffers.remove(buf)
            self._buffers.insert(0, buf)

    @contextmanager
    def block(self, dev: int, blockno: int) -> Iterator[Buffer]:
        """Read a block and release it when the ``with`` body ends."""
        buf = self.bread(dev, blockno)
        try:
            yield buf
        finally:
            self.brelse(buf)