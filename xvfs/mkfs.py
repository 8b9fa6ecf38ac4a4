"""Build a file system image holding a root directory of given files."""

from __future__ import annotations

import struct
import sys
from collections.abc import Iterable, Mapping

from .disk import MemoryDisk
from .journal import LOGSIZE
from .layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    IPB,
    MAXFILE,
    NDIRECT,
    ROOTINO,
    DirEntry,
    DiskInode,
    InodeType,
    SuperBlock,
    iblock,
)

FSSIZE = 1000
NINODES = 200

_UINT = struct.Struct("<I")


class ImageBuilder:
    """Lays out a fresh image: boot, superblock, log, inodes, bitmap, data.

    The root directory is created with "." and ".." on construction.
    """

    def __init__(
        self, fssize: int = FSSIZE, ninodes: int = NINODES, nlog: int = LOGSIZE
    ) -> None:
        self.fssize = fssize
        self.nbitmap = fssize // BPB + 1
        self.ninodeblocks = ninodes // IPB + 1
        self.nlog = nlog
        self.nmeta = 2 + nlog + self.ninodeblocks + self.nbitmap
        self.nblocks = fssize - self.nmeta
        if self.nblocks <= 0:
            raise ValueError(f"an image of {fssize} blocks has no room for data")
        self.sb = SuperBlock(
            size=fssize,
            nblocks=self.nblocks,
            ninodes=ninodes,
            nlog=nlog,
            logstart=2,
            inodestart=2 + nlog,
            bmapstart=2 + nlog + self.ninodeblocks,
        )
        self.disk = MemoryDisk.blank(fssize)
        self.freeinode = 1
        self.freeblock = self.nmeta
        self._finished = False
        self.disk.write_block(1, self.sb.pack().ljust(BSIZE, b"\0"))

        self.rootino = self.ialloc(InodeType.DIR)
        if self.rootino != ROOTINO:
            raise ValueError("root directory did not get the root inode")
        self.iappend(self.rootino, DirEntry(self.rootino, ".").pack())
        self.iappend(self.rootino, DirEntry(self.rootino, "..").pack())

    def _rinode(self, inum: int) -> DiskInode:
        off = (inum % IPB) * DINODE_SIZE
        block = self.disk.read_block(iblock(inum, self.sb))
        return DiskInode.unpack(block[off : off + DINODE_SIZE])

    def _winode(self, inum: int, din: DiskInode) -> None:
        bn = iblock(inum, self.sb)
        off = (inum % IPB) * DINODE_SIZE
        block = bytearray(self.disk.read_block(bn))
        block[off : off + DINODE_SIZE] = din.pack()
        self.disk.write_block(bn, bytes(block))

    def _alloc_block(self) -> int:
        if self.freeblock >= self.fssize:
            raise ValueError("image out of blocks")
        b = self.freeblock
        self.freeblock += 1
        return b

    def ialloc(self, type: int) -> int:
        """Allocate the next inode with one link and return its number."""
        if self.freeinode >= self.sb.ninodes:
            raise ValueError("image out of inodes")
        inum = self.freeinode
        self.freeinode += 1
        self._winode(inum, DiskInode(type=int(type), nlink=1, size=0))
        return inum

    def iappend(self, inum: int, data: bytes) -> None:
        """Append ``data`` to the end of inode ``inum``."""
        din = self._rinode(inum)
        off = din.size
        pos = 0
        while pos < len(data):
            fbn = off // BSIZE
            if fbn >= MAXFILE:
                raise ValueError("file too large for the image")
            if fbn < NDIRECT:
                if din.addrs[fbn] == 0:
                    din.addrs[fbn] = self._alloc_block()
                x = din.addrs[fbn]
            else:
                if din.addrs[NDIRECT] == 0:
                    din.addrs[NDIRECT] = self._alloc_block()
                indirect = bytearray(self.disk.read_block(din.addrs[NDIRECT]))
                slot = (fbn - NDIRECT) * _UINT.size
                (x,) = _UINT.unpack_from(indirect, slot)
                if x == 0:
                    x = self._alloc_block()
                    _UINT.pack_into(indirect, slot, x)
                    self.disk.write_block(din.addrs[NDIRECT], bytes(indirect))
            n1 = min(len(data) - pos, (fbn + 1) * BSIZE - off)
            block = bytearray(self.disk.read_block(x))
            start = off - fbn * BSIZE
            block[start : start + n1] = data[pos : pos + n1]
            self.disk.write_block(x, bytes(block))
            pos += n1
            off += n1
        din.size = off
        self._winode(inum, din)

    def add_file(self, name: str, data: bytes) -> int:
        """Add a file to the root directory; a leading "_" is dropped from its name."""
        if self._finished:
            raise ValueError("image already finished")
        if "/" in name:
            raise ValueError(f"file name {name!r} contains '/'")
        if name.startswith("_"):
            name = name[1:]
        inum = self.ialloc(InodeType.FILE)
        self.iappend(self.rootino, DirEntry(inum, name).pack())
        self.iappend(inum, data)
        return inum

    def finish(self) -> bytes:
        """Round the root directory up past its last block, write the bitmap, return the image."""
        if self._finished:
            raise ValueError("image already finished")
        din = self._rinode(self.rootino)
        din.size = (din.size // BSIZE + 1) * BSIZE
        self._winode(self.rootino, din)

        used = self.freeblock
        if used >= BPB:
            raise ValueError("more used blocks than one bitmap block covers")
        bitmap = bytearray(BSIZE)
        full, rest = divmod(used, 8)
        bitmap[:full] = b"\xff" * full
        if rest:
            bitmap[full] = (1 << rest) - 1
        self.disk.write_block(self.sb.bmapstart, bytes(bitmap))
        self._finished = True
        return self.disk.to_bytes()


def build_image(
    files: Mapping[str, bytes] | Iterable[tuple[str, bytes]],
    fssize: int = FSSIZE,
    ninodes: int = NINODES,
    nlog: int = LOGSIZE,
) -> bytes:
    """An image whose root directory holds ``files`` (name to contents)."""
    builder = ImageBuilder(fssize, ninodes, nlog)
    pairs = files.items() if isinstance(files, Mapping) else files
    for name, data in pairs:
        builder.add_file(name, data)
    return builder.finish()


def main(argv: list[str] | None = None) -> int:
    """Command line: mkfs fs.img files..."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Usage: mkfs fs.img files...", file=sys.stderr)
        return 1
    builder = ImageBuilder()
    print(
        f"nmeta {builder.nmeta} (boot, super, log blocks {builder.nlog} "
        f"inode blocks {builder.ninodeblocks}, bitmap blocks {builder.nbitmap}) "
        f"blocks {builder.nblocks} total {builder.fssize}"
    )
    try:
        for path in args[1:]:
            if "/" in path:
                raise ValueError(f"file name {path!r} contains '/'")
            with open(path, "rb") as fh:
                data = fh.read()
            builder.add_file(path, data)
        used = builder.freeblock
        print(f"balloc: first {used} blocks have been allocated")
        image = builder.finish()
        print(f"balloc: write bitmap block at sector {builder.sb.bmapstart}")
        with open(args[0], "wb") as out:
            out.write(image)
    except (OSError, ValueError) as exc:
        print(f"mkfs: {exc}", file=sys.stderr)
        return 1
    return 0