# xvfs

xvfs is a compact Unix-style file system written in pure Python. Disk blocks
are kept in memory. The package builds on them in layers:

- `xvfs.layout` defines the on-disk format. `SuperBlock`, `DiskInode` and
  `DirEntry` each `pack()` to bytes and `unpack()` from bytes. `InodeType`
  names the inode kinds (`FREE`, `DIR`, `FILE`, `DEVICE`). `iblock` and
  `bblock` locate inode and bitmap blocks.
- `xvfs.disk` provides `MemoryDisk`, a block device backed by a byte array,
  with `read_block`, `write_block`, `to_bytes` and `MemoryDisk.blank(n)`.
- `xvfs.bufcache` provides `BufferCache`, a fixed set of buffers recycled
  least recently used first. It has `bread`, `bwrite`, `brelse`, and the
  `block(dev, blockno)` context manager that releases the buffer for you.
- `xvfs.journal` provides `Log`, a redo log that makes groups of block
  writes atomic. It has `begin_op`, `end_op`, `log_write` and the
  `transaction()` context manager. It replays a committed log when it is
  opened.
- `xvfs.fs` provides `FileSystem`, covering:
  - block allocation (`balloc`, `bfree`);
  - the inode cache (`ialloc`, `iget`, `idup`, `ilock`, `iunlock`, `iput`);
  - inode contents (`readi`, `writei`, `bmap`, `itrunc`);
  - directories (`dirlookup`, `dirlink`);
  - path lookup (`namei`, `nameiparent`).

  Device inodes dispatch to handlers registered in `FileSystem.devices`
  (a dict of major number to `Device`).
- `xvfs.file` provides `FileTable`, reference-counted open files on inodes
  and pipes. It has `open_inode`, `open_pipe`, `dup`, `close`, `stat`,
  `read` and `write`.
- `xvfs.pipe` provides `Pipe`, a 512-byte ring buffer with a read end and a
  write end.
- `xvfs.mkfs` provides `ImageBuilder` and `build_image`, which lay out a fresh
  image with a root directory holding the given files.
- `xvfs.console` provides `Console`, a line-editing console model, and
  `cprintf`. Input is fed with `interrupt` and read with `read`. Output
  collects in `output` and on an 80x25 character screen in `crt`.
- `xvfs.kbd` provides `Keyboard`, which turns PC scan codes into characters
  and tracks shift, control and caps lock.
- `xvfs.userfmt.sprintf` is a small formatter that understands `%d %x %p %s %c %%`.
- `xvfs.grep` is a matcher for `^ . * $` patterns.
- `xvfs.tools` provides `ls`, `cat`, `echo` and `fmtname`.

The package has no dependencies outside the standard library.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Building an image

`xvfs-mkfs` writes a new image of 1000 blocks. The named files go into its
root directory. File names may not contain `/`. A leading `_` is dropped
inside the image, so `_cat` is stored as `cat`.

```
xvfs-mkfs fs.img README _cat _ls
```

From Python, `build_image` returns the image as bytes:

```python
from xvfs.mkfs import build_image

image = build_image({"README": b"hello\n"})
```

## Mounting and reading an image

```python
import sys

from xvfs.bufcache import BufferCache
from xvfs.disk import MemoryDisk
from xvfs.file import FileTable
from xvfs.fs import FileSystem
from xvfs.tools import ls

fs = FileSystem(BufferCache(MemoryDisk(image)))
ls(fs, "/", sys.stdout)          # name, type, inode number and size per entry

with fs.transaction():
    ip = fs.namei("/README")
files = FileTable(fs)
f = files.open_inode(ip, readable=True, writable=False)
files.read(f, 100)               # b"hello\n"
files.close(f)
```

`MemoryDisk.to_bytes()` returns the current image. Use it to save changes
made through the file system.

## Searching text

`xvfs-grep` prints the lines that match a pattern. It reads the named files,
or standard input when no files are given. Only lines ending in a newline are
examined.

```
xvfs-grep '^de.*fs$' notes.txt
```

The matcher and the formatter are also available from Python:

```python
from xvfs.grep import match
from xvfs.userfmt import sprintf

match("^ab*c$", "abbbc")     # True
match("x.z", "one xyz two")  # True
sprintf("%d blocks in %s", 42, "fs.img")
```

## What it does not do

- There is no process model, scheduler or system-call layer. Operations are
  plain method calls made by the caller.
- There are no ready-made operations to create, unlink, rename or make
  directories in a mounted image. Only the building blocks exist:
  `ialloc`, `dirlink`, `writei` and friends.
- Nothing ever blocks:
  - `Log.begin_op` raises `LogError` when the log is full or committing;
  - an empty `Pipe` or `Console` raises `BlockingIOError` rather than waiting.
- The console and keyboard are in-memory models. No terminal or real
  keyboard is attached.