"""A disk held entirely in memory, addressed in blocks."""

from __future__ import annotations

from .layout import BSIZE


class DiskError(Exception):
    """Raised for a disk request that cannot be served."""


class MemoryDisk:
    """A block device backed by a byte array."""

    def __init__(self, image: bytes = b"", dev: int = 1) -> None:
        self._data = bytearray(image)
        self.dev = dev
        self.nblocks = len(self._data) // BSIZE

    @classmethod
    def blank(cls, nblocks: int, dev: int = 1) -> "MemoryDisk":
        """A zero-filled disk of ``nblocks`` blocks."""
        return cls(bytes(nblocks * BSIZE), dev)

    def _offset(self, blockno: int) -> int:
        if not 0 <= blockno < self.nblocks:
            raise DiskError(f"block {blockno} out of range")
        return blockno * BSIZE

    def read_block(self, blockno: int) -> bytes:
        off = self._offset(blockno)
        return bytes(self._data[off : off + BSIZE])

    def write_block(self, blockno: int, data: bytes) -> None:
        off = self._offset(blockno)
        if len(data) != BSIZE:
            raise DiskError(f"a block is {BSIZE} bytes, got {len(data)}")
        self._data[off : off + BSIZE] = data

    def to_bytes(self) -> bytes:
        return bytes(self._data)