"""Inodes, directories and path names on top of the log and the buffer cache."""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from .bufcache import BufferCache
from .journal import Log, read_superblock
from .layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    DIRENT_SIZE,
    DIRSIZ,
    IPB,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    ROOTINO,
    DirEntry,
    DiskInode,
    InodeType,
    bblock,
    iblock,
)

NINODE = 50

_UINT = struct.Struct("<I")


class FsError(Exception):
    """Raised when a file system operation fails or the structures are misused."""


@dataclass(frozen=True)
class Stat:
    """Metadata reported for an inode."""

    dev: int
    ino: int
    type: int
    nlink: int
    size: int


@dataclass
class Device:
    """Read and write handlers for a device inode's major number."""

    read: Callable[["Inode", int], bytes] | None = None
    write: Callable[["Inode", bytes], int] | None = None


@dataclass(eq=False)
class Inode:
    """In-memory copy of an inode, with cache bookkeeping."""

    dev: int = 0
    inum: int = 0
    ref: int = 0
    locked: bool = False
    valid: bool = False
    type: int = InodeType.FREE
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))


def skipelem(path: str) -> tuple[str, str] | None:
    """Split off the first element of ``path``.

    Returns the element (cut to DIRSIZ characters) and the rest of the path
    without leading slashes, or None if there is no element left.
    """
    path = path.lstrip("/")
    if not path:
        return None
    elem, _, rest = path.partition("/")
    return elem[:DIRSIZ], rest.lstrip("/")


class FileSystem:
    """A mounted file system on one device."""

    def __init__(
        self,
        cache: BufferCache,
        dev: int | None = None,
        log: Log | None = None,
        ninode: int = NINODE,
    ) -> None:
        self.cache = cache
        self.dev = cache.disk.dev if dev is None else dev
        self.log = log if log is not None else Log(cache, self.dev)
        self.sb = read_superblock(cache, self.dev)
        self.devices: dict[int, Device] = {}
        self._icache = [Inode() for _ in range(ninode)]

    @contextmanager
    def transaction(self) -> Iterator["FileSystem"]:
        """Run the ``with`` body as one logged operation."""
        with self.log.transaction():
            yield self

    # Blocks.

    def _bzero(self, bno: int) -> None:
        with self.cache.block(self.dev, bno) as bp:
            bp.data[:] = bytes(BSIZE)
            self.log.log_write(bp)

    def balloc(self) -> int:
        """Allocate a zeroed disk block and return its number."""
        for b in range(0, self.sb.size, BPB):
            found = None
            with self.cache.block(self.dev, bblock(b, self.sb)) as bp:
                for bi in range(min(BPB, self.sb.size - b)):
                    m = 1 << (bi % 8)
                    if not bp.data[bi // 8] & m:
                        bp.data[bi // 8] |= m
                        self.log.log_write(bp)
                        found = b + bi
                        break
            if found is not None:
                self._bzero(found)
                return found
        raise FsError("balloc: out of blocks")

    def bfree(self, b: int) -> None:
        """Mark disk block ``b`` free."""
        with self.cache.block(self.dev, bblock(b, self.sb)) as bp:
            bi = b % BPB
            m = 1 << (bi % 8)
            if not bp.data[bi // 8] & m:
                raise FsError("freeing free block")
            bp.data[bi // 8] &= ~m & 0xFF
            self.log.log_write(bp)

    # Inodes.

    @staticmethod
    def _dinode_offset(inum: int) -> int:
        return (inum % IPB) * DINODE_SIZE

    def ialloc(self, type: int) -> Inode:
        """Allocate an on-disk inode of the given type; return it unlocked."""
        for inum in range(1, self.sb.ninodes):
            off = self._dinode_offset(inum)
            with self.cache.block(self.dev, iblock(inum, self.sb)) as bp:
                dip = DiskInode.unpack(bytes(bp.data[off : off + DINODE_SIZE]))
                if dip.type != InodeType.FREE:
                    continue
                bp.data[off : off + DINODE_SIZE] = DiskInode(type=int(type)).pack()
                self.log.log_write(bp)
            return self.iget(inum)
        raise FsError("ialloc: no inodes")

    def iupdate(self, ip: Inode) -> None:
        """Copy a modified in-memory inode to disk."""
        off = self._dinode_offset(ip.inum)
        dip = DiskInode(ip.type, ip.major, ip.minor, ip.nlink, ip.size, list(ip.addrs))
        with self.cache.block(ip.dev, iblock(ip.inum, self.sb)) as bp:
            bp.data[off : off + DINODE_SIZE] = dip.pack()
            self.log.log_write(bp)

    def iget(self, inum: int) -> Inode:
        """Return the cached inode for ``inum``, neither locked nor read."""
        empty = None
        for ip in self._icache:
            if ip.ref > 0 and ip.dev == self.dev and ip.inum == inum:
                ip.ref += 1
                return ip
            if empty is None and ip.ref == 0:
                empty = ip
        if empty is None:
            raise FsError("iget: no inodes")
        empty.dev = self.dev
        empty.inum = inum
        empty.ref = 1
        empty.valid = False
        empty.locked = False
        return empty

    def idup(self, ip: Inode) -> Inode:
        """Take another reference to ``ip``."""
        ip.ref += 1
        return ip

    def ilock(self, ip: Inode) -> None:
        """Lock an inode, reading it from disk if needed."""
        if ip is None or ip.ref < 1:
            raise FsError("ilock")
        if ip.locked:
            raise FsError(f"ilock: inode {ip.inum} already locked")
        ip.locked = True
        if not ip.valid:
            off = self._dinode_offset(ip.inum)
            with self.cache.block(ip.dev, iblock(ip.inum, self.sb)) as bp:
                dip = DiskInode.unpack(bytes(bp.data[off : off + DINODE_SIZE]))
            ip.type = dip.type
            ip.major = dip.major
            ip.minor = dip.minor
            ip.nlink = dip.nlink
            ip.size = dip.size
            ip.addrs = list(dip.addrs)
            ip.valid = True
            if ip.type == InodeType.FREE:
                ip.locked = False
                raise FsError("ilock: no type")

    def iunlock(self, ip: Inode) -> None:
        """Unlock an inode."""
        if ip is None or not ip.locked or ip.ref < 1:
            raise FsError("iunlock")
        ip.locked = False

    def iput(self, ip: Inode) -> None:
        """Drop a reference; free the inode on disk if it was the last and unlinked."""
        if ip.locked:
            raise FsError(f"iput: inode {ip.inum} is locked")
        ip.locked = True
        try:
            if ip.valid and ip.nlink == 0 and ip.ref == 1:
                self.itrunc(ip)
                ip.type = InodeType.FREE
                self.iupdate(ip)
                ip.valid = False
        finally:
            ip.locked = False
        ip.ref -= 1

    def iunlockput(self, ip: Inode) -> None:
        """Unlock, then drop a reference."""
        self.iunlock(ip)
        self.iput(ip)

    # Inode content.

    def bmap(self, ip: Inode, bn: int) -> int:
        """Disk block holding block ``bn`` of ``ip``, allocated if missing."""
        if bn < 0:
            raise FsError("bmap: out of range")
        if bn < NDIRECT:
            if ip.addrs[bn] == 0:
                ip.addrs[bn] = self.balloc()
            return ip.addrs[bn]
        bn -= NDIRECT
        if bn < NINDIRECT:
            if ip.addrs[NDIRECT] == 0:
                ip.addrs[NDIRECT] = self.balloc()
            with self.cache.block(ip.dev, ip.addrs[NDIRECT]) as bp:
                (addr,) = _UINT.unpack_from(bp.data, bn * _UINT.size)
                if addr == 0:
                    addr = self.balloc()
                    _UINT.pack_into(bp.data, bn * _UINT.size, addr)
                    self.log.log_write(bp)
            return addr
        raise FsError("bmap: out of range")

    def itrunc(self, ip: Inode) -> None:
        """Discard the contents of ``ip``."""
        for i in range(NDIRECT):
            if ip.addrs[i]:
                self.bfree(ip.addrs[i])
                ip.addrs[i] = 0
        if ip.addrs[NDIRECT]:
            with self.cache.block(ip.dev, ip.addrs[NDIRECT]) as bp:
                addrs = struct.unpack_from(f"<{NINDIRECT}I", bp.data, 0)
            for addr in addrs:
                if addr:
                    self.bfree(addr)
            self.bfree(ip.addrs[NDIRECT])
            ip.addrs[NDIRECT] = 0
        ip.size = 0
        self.iupdate(ip)

    def stati(self, ip: Inode) -> Stat:
        """Metadata of a locked inode."""
        return Stat(ip.dev, ip.inum, ip.type, ip.nlink, ip.size)

    def _device(self, ip: Inode, op: str) -> Callable:
        device = self.devices.get(ip.major)
        handler = getattr(device, op) if device is not None else None
        if handler is None:
            raise FsError(f"no {op} handler for device {ip.major}")
        return handler

    def readi(self, ip: Inode, off: int, n: int) -> bytes:
        """Read up to ``n`` bytes at ``off`` from a locked inode."""
        if ip.type == InodeType.DEVICE:
            return self._device(ip, "read")(ip, n)
        if off < 0 or n < 0 or off > ip.size:
            raise FsError(f"readi: bad offset {off}")
        n = min(n, ip.size - off)
        out = bytearray()
        while len(out) < n:
            pos = off + len(out)
            start = pos % BSIZE
            m = min(n - len(out), BSIZE - start)
            with self.cache.block(ip.dev, self.bmap(ip, pos // BSIZE)) as bp:
                out += bp.data[start : start + m]
        return bytes(out)

    def writei(self, ip: Inode, data: bytes, off: int) -> int:
        """Write ``data`` at ``off`` into a locked inode; return the count written."""
        if ip.type == InodeType.DEVICE:
            return self._device(ip, "write")(ip, data)
        n = len(data)
        if off < 0 or off > ip.size:
            raise FsError(f"writei: bad offset {off}")
        if off + n > MAXFILE * BSIZE:
            raise FsError("writei: file too large")
        tot = 0
        while tot < n:
            pos = off + tot
            start = pos % BSIZE
            m = min(n - tot, BSIZE - start)
            with self.cache.block(ip.dev, self.bmap(ip, pos // BSIZE)) as bp:
                bp.data[start : start + m] = data[tot : tot + m]
                self.log.log_write(bp)
            tot += m
        if n > 0 and off + n > ip.size:
            ip.size = off + n
            self.iupdate(ip)
        return n

    # Directories.

    def _entries(self, dp: Inode) -> Iterator[tuple[int, DirEntry]]:
        for off in range(0, dp.size, DIRENT_SIZE):
            raw = self.readi(dp, off, DIRENT_SIZE)
            if len(raw) != DIRENT_SIZE:
                raise FsError("directory read")
            yield off, DirEntry.unpack(raw)

    def dirlookup(self, dp: Inode, name: str) -> tuple[Inode, int] | None:
        """Find ``name`` in a locked directory; return its inode and entry offset."""
        if dp.type != InodeType.DIR:
            raise FsError("dirlookup not DIR")
        name = name[:DIRSIZ]
        for off, de in self._entries(dp):
            if de.inum and de.name == name:
                return self.iget(de.inum), off
        return None

    def dirlink(self, dp: Inode, name: str, inum: int) -> None:
        """Add the entry (``name``, ``inum``) to a locked directory."""
        found = self.dirlookup(dp, name)
        if found is not None:
            self.iput(found[0])
            raise FsError(f"dirlink: {name!r} already exists")
        off = dp.size
        for entry_off, de in self._entries(dp):
            if de.inum == 0:
                off = entry_off
                break
        if self.writei(dp, DirEntry(inum, name[:DIRSIZ]).pack(), off) != DIRENT_SIZE:
            raise FsError("dirlink")

    # Path names.

    def _namex(
        self, path: str, parent: bool, cwd: Inode | None
    ) -> tuple[Inode, str] | None:
        if path.startswith("/") or cwd is None:
            ip = self.iget(ROOTINO)
        else:
            ip = self.idup(cwd)
        name = ""
        while (step := skipelem(path)) is not None:
            name, path = step
            self.ilock(ip)
            if ip.type != InodeType.DIR:
                self.iunlockput(ip)
                return None
            if parent and not path:
                self.iunlock(ip)
                return ip, name
            found = self.dirlookup(ip, name)
            self.iunlockput(ip)
            if found is None:
                return None
            ip = found[0]
        if parent:
            self.iput(ip)
            return None
        return ip, name

    def namei(self, path: str, cwd: Inode | None = None) -> Inode | None:
        """Inode named by ``path``, or None; relative paths start at ``cwd``."""
        result = self._namex(path, False, cwd)
        return None if result is None else result[0]

    def nameiparent(self, path: str, cwd: Inode | None = None) -> tuple[Inode, str] | None:
        """Parent directory of ``path`` and the final element's name, or None."""
        return self._namex(path, True, cwd)