"""Write-ahead redo log that makes groups of block writes atomic."""

from __future__ import annotations

import struct
from collections.abc import Iterator
from contextlib import contextmanager

from .bufcache import Buffer, BufferCache
from .layout import BSIZE, SuperBlock

LOGSIZE = 30
MAXOPBLOCKS = 10

_INT = struct.Struct("<i")


class LogError(Exception):
    """Raised when the log is misused or a transaction cannot fit."""


def read_superblock(cache: BufferCache, dev: int) -> SuperBlock:
    """Read the superblock from block 1."""
    with cache.block(dev, 1) as buf:
        return SuperBlock.unpack(bytes(buf.data))


class Log:
    """The on-disk log: a header block of block numbers followed by their copies.

    File system operations run between ``begin_op`` and ``end_op``; the log
    commits once no operation is outstanding.
    """

    def __init__(
        self,
        cache: BufferCache,
        dev: int,
        logsize: int = LOGSIZE,
        maxopblocks: int = MAXOPBLOCKS,
    ) -> None:
        if (logsize + 1) * _INT.size >= BSIZE:
            raise LogError("initlog: too big logheader")
        self.cache = cache
        self.dev = dev
        self.logsize = logsize
        self.maxopblocks = maxopblocks
        sb = read_superblock(cache, dev)
        self.start = sb.logstart
        self.size = sb.nlog
        self.outstanding = 0
        self.committing = False
        self._blocks: list[int] = []
        self._recover()

    @property
    def blocks(self) -> tuple[int, ...]:
        """Block numbers logged in the current transaction."""
        return tuple(self._blocks)

    def _install_trans(self) -> None:
        for tail, blockno in enumerate(self._blocks):
            with self.cache.block(self.dev, self.start + tail + 1) as lbuf:
                with self.cache.block(self.dev, blockno) as dbuf:
                    dbuf.data[:] = lbuf.data
                    self.cache.bwrite(dbuf)

    def _read_head(self) -> None:
        with self.cache.block(self.dev, self.start) as buf:
            (n,) = _INT.unpack_from(buf.data, 0)
            self._blocks = list(struct.unpack_from(f"<{n}i", buf.data, _INT.size))

    def _write_head(self) -> None:
        with self.cache.block(self.dev, self.start) as buf:
            n = len(self._blocks)
            _INT.pack_into(buf.data, 0, n)
            struct.pack_into(f"<{n}i", buf.data, _INT.size, *self._blocks)
            self.cache.bwrite(buf)

    def _recover(self) -> None:
        self._read_head()
        self._install_trans()
        self._blocks = []
        self._write_head()

    def _write_log(self) -> None:
        for tail, blockno in enumerate(self._blocks):
            with self.cache.block(self.dev, self.start + tail + 1) as to:
                with self.cache.block(self.dev, blockno) as src:
                    to.data[:] = src.data
                self.cache.bwrite(to)

    def _commit(self) -> None:
        if self._blocks:
            self._write_log()
            self._write_head()  # the real commit point
            self._install_trans()
            self._blocks = []
            self._write_head()

    def begin_op(self) -> None:
        """Start a file system operation, reserving log space for it."""
        if self.committing:
            raise LogError("log is committing")
        if len(self._blocks) + (self.outstanding + 1) * self.maxopblocks > self.logsize:
            raise LogError("log space exhausted")
        self.outstanding += 1

    def end_op(self) -> None:
        """Finish an operation; commit if it was the last outstanding one."""
        if self.outstanding < 1:
            raise LogError("end_op without begin_op")
        self.outstanding -= 1
        if self.committing:
            raise LogError("log.committing")
        if self.outstanding == 0:
            self.committing = True
            try:
                self._commit()
            finally:
                self.committing = False

    def log_write(self, buf: Buffer) -> None:
        """Record a modified buffer in the transaction and pin it in the cache."""
        if len(self._blocks) >= self.logsize or len(self._blocks) >= self.size - 1:
            raise LogError("too big a transaction")
        if self.outstanding < 1:
            raise LogError("log_write outside of trans")
        if buf.blockno not in self._blocks:
            self._blocks.append(buf.blockno)
        buf.dirty = True

    @contextmanager
    def transaction(self) -> Iterator["Log"]:
        """Run the ``with`` body as one operation."""
        self.begin_op()
        try:
            yield self
        finally:
            self.end_op()