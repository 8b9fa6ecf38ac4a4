import pytest

from xvfs.disk import DiskError, MemoryDisk
from xvfs.layout import BSIZE


def test_blank_disk_is_zeroed():
    disk = MemoryDisk.blank(4)
    assert disk.nblocks == 4
    assert disk.to_bytes() == bytes(4 * BSIZE)


def test_write_then_read():
    disk = MemoryDisk.blank(4)
    block = bytes([9]) * BSIZE
    disk.write_block(2, block)
    assert disk.read_block(2) == block


def test_write_leaves_neighbours_alone():
    disk = MemoryDisk.blank(4)
    disk.write_block(2, b"\xff" * BSIZE)
    assert disk.read_block(1) == bytes(BSIZE)
    assert disk.read_block(3) == bytes(BSIZE)


def test_to_bytes_reflects_writes():
    disk = MemoryDisk.blank(3)
    disk.write_block(1, b"\x01" * BSIZE)
    image = disk.to_bytes()
    assert image[BSIZE : 2 * BSIZE] == b"\x01" * BSIZE
    assert image[:BSIZE] == bytes(BSIZE)


def test_image_keeps_contents():
    image = b"".join(bytes([i]) * BSIZE for i in range(3))
    disk = MemoryDisk(image)
    assert disk.read_block(1) == bytes([1]) * BSIZE


def test_partial_trailing_block_not_addressable():
    disk = MemoryDisk(bytes(BSIZE * 2 + 10))
    assert disk.nblocks == 2
    with pytest.raises(DiskError):
        disk.read_block(2)


@pytest.mark.parametrize("blockno", [-1, 4, 100])
def test_out_of_range(blockno):
    disk = MemoryDisk.blank(4)
    with pytest.raises(DiskError):
        disk.read_block(blockno)
    with pytest.raises(DiskError):
        disk.write_block(blockno, bytes(BSIZE))


@pytest.mark.parametrize("size", [0, BSIZE - 1, BSIZE + 1])
def test_wrong_block_size(size):
    disk = MemoryDisk.blank(2)
    with pytest.raises(DiskError):
        disk.write_block(0, bytes(size))