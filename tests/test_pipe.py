import pytest

from xvfs.pipe import PIPESIZE, Pipe, PipeError


def test_round_trip():
    p = Pipe()
    assert p.write(b"hello") == 5
    assert p.read(100) == b"hello"


def test_read_limited_to_n():
    p = Pipe()
    p.write(b"abcdef")
    assert p.read(2) == b"ab"
    assert p.read(10) == b"cdef"


def test_empty_with_writer_open_would_block():
    p = Pipe()
    with pytest.raises(BlockingIOError):
        p.read(1)


def test_empty_with_writer_closed_is_eof():
    p = Pipe()
    p.write(b"x")
    p.close(True)
    assert p.read(5) == b"x"
    assert p.read(5) == b""


def test_write_stops_when_full():
    p = Pipe()
    assert p.write(bytes(PIPESIZE + 100)) == PIPESIZE
    assert len(p) == PIPESIZE


def test_wraps_around_ring():
    p = Pipe()
    p.write(b"a" * (PIPESIZE - 3))
    p.read(PIPESIZE - 3)
    data = bytes(range(10))
    assert p.write(data) == len(data)
    assert p.read(len(data)) == data


def test_full_pipe_with_reader_closed_raises():
    p = Pipe()
    p.write(bytes(PIPESIZE))
    p.close(False)
    with pytest.raises(PipeError):
        p.write(b"more")


def test_write_after_reader_closed_still_fills_space():
    p = Pipe()
    p.close(False)
    assert p.write(b"abc") == 3


def test_closed_after_both_ends():
    p = Pipe()
    p.close(True)
    assert not p.closed
    p.close(False)
    assert p.closed


def test_write_after_write_end_closed_raises():
    p = Pipe()
    p.close(True)
    with pytest.raises(PipeError):
        p.write(b"a")