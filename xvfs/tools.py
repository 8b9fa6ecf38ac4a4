"""Small user tools: ls over the file system, cat and echo."""

from __future__ import annotations

from typing import BinaryIO, TextIO

from .fs import FileSystem, FsError, Stat
from .layout import DIRENT_SIZE, DIRSIZ, DirEntry, InodeType

_PATHBUF = 512
_CHUNK = 512


def fmtname(path: str) -> str:
    """Last element of ``path``, padded with blanks to DIRSIZ characters."""
    name = path.rsplit("/", 1)[-1]
    if len(name) >= DIRSIZ:
        return name
    return name.ljust(DIRSIZ)


def _stat(fs: FileSystem, path: str) -> Stat | None:
    with fs.transaction():
        ip = fs.namei(path)
        if ip is None:
            return None
        try:
            fs.ilock(ip)
            try:
                return fs.stati(ip)
            finally:
                fs.iunlock(ip)
        finally:
            fs.iput(ip)


def _line(path: str, st: Stat) -> str:
    return f"{fmtname(path)} {int(st.type)} {st.ino} {st.size}\n"


def ls(fs: FileSystem, path: str, out: TextIO) -> None:
    """List a file, or each entry of a directory, as name, type, inode and size."""
    with fs.transaction():
        ip = fs.namei(path)
    if ip is None:
        raise FsError(f"ls: cannot open {path}")
    try:
        fs.ilock(ip)
        try:
            st = fs.stati(ip)
            entries: list[DirEntry] = []
            if st.type == InodeType.DIR:
                entries = [
                    DirEntry.unpack(fs.readi(ip, off, DIRENT_SIZE))
                    for off in range(0, st.size - DIRENT_SIZE + 1, DIRENT_SIZE)
                ]
        finally:
            fs.iunlock(ip)
    finally:
        with fs.transaction():
            fs.iput(ip)

    if st.type == InodeType.FILE:
        out.write(_line(path, st))
    elif st.type == InodeType.DIR:
        if len(path) + 1 + DIRSIZ + 1 > _PATHBUF:
            out.write("ls: path too long\n")
            return
        for de in entries:
            if de.inum == 0:
                continue
            child = f"{path}/{de.name}"
            cst = _stat(fs, child)
            if cst is None:
                out.write(f"ls: cannot stat {child}\n")
                continue
            out.write(_line(child, cst))


def cat(stream: BinaryIO, out: BinaryIO) -> int:
    """Copy ``stream`` to ``out``; return the number of bytes copied."""
    total = 0
    while chunk := stream.read(_CHUNK):
        out.write(chunk)
        total += len(chunk)
    return total


def echo(args: list[str]) -> str:
    """The arguments separated by blanks and ended by a newline; nothing for none."""
    return " ".join(args) + "\n" if args else ""