import pytest

from xvfs.layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    DIRENT_SIZE,
    DIRSIZ,
    IPB,
    NDIRECT,
    SUPERBLOCK_SIZE,
    DirEntry,
    DiskInode,
    InodeType,
    SuperBlock,
    bblock,
    iblock,
)


def make_sb():
    return SuperBlock(
        size=1000, nblocks=941, ninodes=200, nlog=30, logstart=2, inodestart=32, bmapstart=58
    )


def test_superblock_round_trip():
    sb = make_sb()
    assert SuperBlock.unpack(sb.pack()) == sb


def test_superblock_size():
    assert len(make_sb().pack()) == SUPERBLOCK_SIZE == 28


def test_superblock_little_endian():
    packed = make_sb().pack()
    assert packed[:4] == (1000).to_bytes(4, "little")


def test_superblock_unpack_ignores_trailing_bytes():
    sb = make_sb()
    assert SuperBlock.unpack(sb.pack() + bytes(BSIZE)) == sb


def test_superblock_unpack_short_raises():
    with pytest.raises(ValueError):
        SuperBlock.unpack(b"\0" * 4)


def test_dinode_fills_block_evenly():
    assert BSIZE % DINODE_SIZE == 0
    assert IPB * DINODE_SIZE == BSIZE
    assert len(DiskInode().pack()) == DINODE_SIZE


def test_dinode_round_trip():
    addrs = list(range(100, 100 + NDIRECT + 1))
    din = DiskInode(type=InodeType.DIR, major=-1, minor=3, nlink=2, size=4096, addrs=addrs)
    back = DiskInode.unpack(din.pack())
    assert back == din
    assert back.type == InodeType.DIR


def test_dinode_wrong_addr_count_raises():
    with pytest.raises(ValueError):
        DiskInode(addrs=[0] * NDIRECT).pack()


def test_dinode_unpack_short_raises():
    with pytest.raises(ValueError):
        DiskInode.unpack(bytes(DINODE_SIZE - 1))


def test_dirent_size_divides_block():
    assert BSIZE % DIRENT_SIZE == 0
    assert len(DirEntry(1, "x").pack()) == DIRENT_SIZE


def test_dirent_round_trip():
    de = DirEntry(7, "README")
    assert DirEntry.unpack(de.pack()) == de


def test_dirent_wire_bytes():
    packed = DirEntry(7, "ab").pack()
    assert packed[:2] == (7).to_bytes(2, "little")
    assert packed[2:] == b"ab" + b"\0" * (DIRSIZ - 2)


def test_dirent_long_name_truncated():
    name = "abcdefghijklmnopqrstuvwxyz"
    back = DirEntry.unpack(DirEntry(3, name).pack())
    assert back.name == name[:DIRSIZ]


def test_dirent_full_length_name_has_no_terminator():
    name = "n" * DIRSIZ
    assert DirEntry.unpack(DirEntry(3, name).pack()).name == name


def test_iblock():
    sb = make_sb()
    assert iblock(0, sb) == sb.inodestart
    assert iblock(IPB - 1, sb) == sb.inodestart
    assert iblock(IPB, sb) == sb.inodestart + 1


def test_bblock():
    sb = make_sb()
    assert bblock(0, sb) == sb.bmapstart
    assert bblock(BPB - 1, sb) == sb.bmapstart
    assert bblock(BPB, sb) == sb.bmapstart + 1