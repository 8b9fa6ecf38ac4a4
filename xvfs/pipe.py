"""A bounded byte pipe with one read end and one write end."""

from __future__ import annotations

PIPESIZE = 512


class PipeError(Exception):
    """Raised when a pipe is written after its other end has gone."""


class Pipe:
    """A ring buffer of PIPESIZE bytes shared by a reader and a writer.

    ``nread`` and ``nwrite`` count the bytes that have passed through each end
    so far; the buffer is full when they differ by PIPESIZE.
    """

    def __init__(self) -> None:
        self._data = bytearray(PIPESIZE)
        self.nread = 0
        self.nwrite = 0
        self.readopen = True
        self.writeopen = True

    @property
    def closed(self) -> bool:
        """True once both ends have been closed."""
        return not self.readopen and not self.writeopen

    def __len__(self) -> int:
        return self.nwrite - self.nread

    def write(self, data: bytes) -> int:
        """Append as much of ``data`` as fits; return the number of bytes taken.

        A full pipe whose read end is closed raises PipeError.
        """
        if not self.writeopen:
            raise PipeError("write end closed")
        written = 0
        for byte in data:
            if self.nwrite == self.nread + PIPESIZE:
                if not self.readopen:
                    raise PipeError("read end closed")
                break
            self._data[self.nwrite % PIPESIZE] = byte
            self.nwrite += 1
            written += 1
        return written

    def read(self, n: int) -> bytes:
        """Take up to ``n`` bytes.

        An empty pipe returns b"" once the write end is closed and raises
        BlockingIOError while it is still open.
        """
        if n < 0:
            raise ValueError("negative read size")
        if self.nread == self.nwrite:
            if self.writeopen:
                raise BlockingIOError("pipe is empty")
            return b""
        count = min(n, self.nwrite - self.nread)
        start = self.nread % PIPESIZE
        ring = self._data[start:] + self._data[:start]
        self.nread += count
        return bytes(ring[:count])

    def close(self, writable: bool) -> None:
        """Close the write end if ``writable``, otherwise the read end."""
        if writable:
            self.writeopen = False
        else:
            self.readopen = False