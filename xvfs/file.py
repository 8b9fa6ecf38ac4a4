"""Open files: a shared table of reference-counted handles on inodes and pipes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .fs import FileSystem, Inode, Stat
from .layout import BSIZE
from .pipe import Pipe

NFILE = 100


class FileError(Exception):
    """Raised when an open file is misused or the table is full."""


class FileKind(Enum):
    NONE = 0
    PIPE = 1
    INODE = 2


@dataclass(eq=False)
class File:
    """One open file: what it refers to, its access mode and offset."""

    kind: FileKind = FileKind.NONE
    ref: int = 0
    readable: bool = False
    writable: bool = False
    pipe: Pipe | None = None
    ip: Inode | None = None
    off: int = 0


class FileTable:
    """A fixed number of open-file slots over one file system."""

    def __init__(self, fs: FileSystem | None = None, nfile: int = NFILE) -> None:
        self.fs = fs
        self._files = [File() for _ in range(nfile)]

    def _require_fs(self) -> FileSystem:
        if self.fs is None:
            raise FileError("no file system attached")
        return self.fs

    def alloc(self) -> File:
        """Take a free slot with one reference."""
        for f in self._files:
            if f.ref == 0:
                f.kind = FileKind.NONE
                f.ref = 1
                f.readable = f.writable = False
                f.pipe = None
                f.ip = None
                f.off = 0
                return f
        raise FileError("file table full")

    def open_inode(self, ip: Inode, readable: bool, writable: bool) -> File:
        """Open a referenced inode; the file takes over the reference."""
        f = self.alloc()
        f.kind = FileKind.INODE
        f.ip = ip
        f.readable = readable
        f.writable = writable
        return f

    def open_pipe(self) -> tuple[File, File]:
        """Create a pipe and return its read end and write end."""
        rf = self.alloc()
        try:
            wf = self.alloc()
        except FileError:
            self.close(rf)
            raise
        pipe = Pipe()
        rf.kind = wf.kind = FileKind.PIPE
        rf.pipe = wf.pipe = pipe
        rf.readable, rf.writable = True, False
        wf.readable, wf.writable = False, True
        return rf, wf

    def dup(self, f: File) -> File:
        """Take another reference to ``f``."""
        if f.ref < 1:
            raise FileError("filedup")
        f.ref += 1
        return f

    def close(self, f: File) -> None:
        """Drop a reference; release what the file refers to on the last one."""
        if f.ref < 1:
            raise FileError("fileclose")
        f.ref -= 1
        if f.ref > 0:
            return
        kind, pipe, ip, writable = f.kind, f.pipe, f.ip, f.writable
        f.kind = FileKind.NONE
        f.pipe = None
        f.ip = None
        f.off = 0
        f.readable = f.writable = False
        if kind is FileKind.PIPE and pipe is not None:
            pipe.close(writable)
        elif kind is FileKind.INODE and ip is not None:
            fs = self._require_fs()
            with fs.transaction():
                fs.iput(ip)

    def stat(self, f: File) -> Stat:
        """Metadata of an inode file."""
        if f.kind is not FileKind.INODE or f.ip is None:
            raise FileError("stat needs an inode file")
        fs = self._require_fs()
        fs.ilock(f.ip)
        try:
            return fs.stati(f.ip)
        finally:
            fs.iunlock(f.ip)

    def read(self, f: File, n: int) -> bytes:
        """Read up to ``n`` bytes, advancing the offset of an inode file."""
        if not f.readable:
            raise FileError("file not open for reading")
        if f.kind is FileKind.PIPE and f.pipe is not None:
            return f.pipe.read(n)
        if f.kind is FileKind.INODE and f.ip is not None:
            fs = self._require_fs()
            fs.ilock(f.ip)
            try:
                data = fs.readi(f.ip, f.off, n)
                f.off += len(data)
            finally:
                fs.iunlock(f.ip)
            return data
        raise FileError("fileread")

    def write(self, f: File, data: bytes) -> int:
        """Write ``data``; inode writes go in chunks small enough for one transaction."""
        if not f.writable:
            raise FileError("file not open for writing")
        if f.kind is FileKind.PIPE and f.pipe is not None:
            return f.pipe.write(data)
        if f.kind is FileKind.INODE and f.ip is not None:
            fs = self._require_fs()
            # Room for the inode, an indirect block, bitmap blocks and
            # two blocks of slop for unaligned writes.
            chunk = ((fs.log.maxopblocks - 1 - 1 - 2) // 2) * BSIZE
            done = 0
            while done < len(data):
                piece = data[done : done + chunk]
                with fs.transaction():
                    fs.ilock(f.ip)
                    try:
                        r = fs.writei(f.ip, piece, f.off)
                        f.off += r
                    finally:
                        fs.iunlock(f.ip)
                if r != len(piece):
                    raise FileError("short filewrite")
                done += r
            return done
        raise FileError("filewrite")