import pytest

from xvfs.bufcache import BufferCache
from xvfs.disk import MemoryDisk
from xvfs.file import FileError, FileKind, FileTable
from xvfs.fs import FileSystem
from xvfs.layout import InodeType
from xvfs.mkfs import build_image


def mount(image):
    return FileSystem(BufferCache(MemoryDisk(image)))


@pytest.fixture
def fs():
    return mount(build_image([("README", b"hello")]))


def create(fs, name):
    with fs.transaction():
        ip = fs.ialloc(InodeType.FILE)
        fs.ilock(ip)
        ip.nlink = 1
        fs.iupdate(ip)
        fs.iunlock(ip)
        root = fs.namei("/")
        fs.ilock(root)
        fs.dirlink(root, name, ip.inum)
        fs.iunlockput(root)
    return ip


def test_read_inode_file(fs):
    table = FileTable(fs)
    f = table.open_inode(fs.namei("/README"), True, False)
    assert table.read(f, 100) == b"hello"
    assert table.read(f, 100) == b""
    assert f.off == 5


def test_read_in_pieces(fs):
    table = FileTable(fs)
    f = table.open_inode(fs.namei("/README"), True, False)
    assert table.read(f, 2) + table.read(f, 10) == b"hello"


def test_write_to_read_only_raises(fs):
    table = FileTable(fs)
    f = table.open_inode(fs.namei("/README"), True, False)
    with pytest.raises(FileError):
        table.write(f, b"x")


def test_read_from_write_only_raises(fs):
    table = FileTable(fs)
    f = table.open_inode(fs.namei("/README"), False, True)
    with pytest.raises(FileError):
        table.read(f, 1)


def test_large_write_round_trip_and_persists(fs):
    table = FileTable(fs)
    ip = create(fs, "big")
    payload = bytes(i % 251 for i in range(8000))
    wf = table.open_inode(ip, False, True)
    assert table.write(wf, payload) == len(payload)
    table.close(wf)

    rf = table.open_inode(fs.namei("/big"), True, False)
    assert table.read(rf, len(payload) + 10) == payload
    table.close(rf)

    fresh = mount(fs.cache.disk.to_bytes())
    ip2 = fresh.namei("/big")
    fresh.ilock(ip2)
    assert fresh.readi(ip2, 0, ip2.size) == payload
    fresh.iunlock(ip2)


def test_stat(fs):
    table = FileTable(fs)
    f = table.open_inode(fs.namei("/README"), True, False)
    st = table.stat(f)
    assert st.size == len(b"hello")
    assert st.type == InodeType.FILE


def test_dup_and_close(fs):
    table = FileTable(fs)
    f = table.open_inode(fs.namei("/README"), True, False)
    table.dup(f)
    table.close(f)
    assert f.ref == 1
    assert f.kind is FileKind.INODE
    table.close(f)
    assert f.ref == 0
    assert f.kind is FileKind.NONE
    with pytest.raises(FileError):
        table.close(f)
    with pytest.raises(FileError):
        table.dup(f)


def test_close_releases_inode_reference(fs):
    table = FileTable(fs)
    ip = fs.namei("/README")
    before = ip.ref
    f = table.open_inode(fs.idup(ip), True, False)
    assert ip.ref == before + 1
    table.close(f)
    assert ip.ref == before


def test_pipe_through_table():
    table = FileTable()
    rf, wf = table.open_pipe()
    assert table.write(wf, b"data") == 4
    assert table.read(rf, 10) == b"data"
    with pytest.raises(FileError):
        table.read(wf, 1)
    with pytest.raises(FileError):
        table.write(rf, b"x")
    table.close(wf)
    assert table.read(rf, 10) == b""


def test_stat_on_pipe_raises():
    table = FileTable()
    rf, _ = table.open_pipe()
    with pytest.raises(FileError):
        table.stat(rf)


def test_table_exhaustion():
    table = FileTable(nfile=2)
    table.alloc()
    table.alloc()
    with pytest.raises(FileError):
        table.alloc()


def test_open_pipe_failure_frees_first_slot():
    table = FileTable(nfile=1)
    with pytest.raises(FileError):
        table.open_pipe()
    f = table.alloc()
    assert f.ref == 1