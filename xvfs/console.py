"""Console: line-edited keyboard input, and output to a serial log and a text screen."""

from __future__ import annotations

from collections.abc import Iterable

INPUT_BUF = 128
BACKSPACE = 0x100
COLS = 80
ROWS = 25
_ATTR = 0x0700  # grey on black


def _ctrl(x: str) -> int:
    return ord(x) - ord("@")


def _int32(x: int) -> int:
    return ((x & 0xFFFFFFFF) ^ 0x80000000) - 0x80000000


def cprintf(fmt: str, *args: object) -> str:
    """Format with the console's conventions: only %d, %x, %p, %s and %%."""
    if fmt is None:
        raise ValueError("null fmt")
    out: list[str] = []
    params = iter(args)

    def arg() -> object:
        try:
            return next(params)
        except StopIteration:
            raise TypeError("not enough arguments for format") from None

    chars = iter(fmt)
    for c in chars:
        if c != "%":
            out.append(c)
            continue
        c = next(chars, None)
        if c is None:
            break
        if c == "d":
            out.append(str(_int32(int(arg()))))
        elif c in ("x", "p"):
            out.append(format(int(arg()) & 0xFFFFFFFF, "x"))
        elif c == "s":
            s = arg()
            if s is None:
                s = "(null)"
            elif isinstance(s, (bytes, bytearray)):
                s = s.decode("latin-1")
            out.append(str(s))
        elif c == "%":
            out.append("%")
        else:
            out.append("%" + c)
    return "".join(out)


class Console:
    """The system console.

    ``output`` collects what goes to the serial port; ``crt`` holds the
    80x25 text screen as character/attribute cells, with ``cursor`` the
    position of the cursor on it.
    """

    def __init__(self) -> None:
        self.output = bytearray()
        self.crt = [0] * (COLS * ROWS)
        self.cursor = 0
        self._buf = bytearray(INPUT_BUF)
        self._r = 0  # read index
        self._w = 0  # write index
        self._e = 0  # edit index

    def _cgaputc(self, c: int) -> None:
        pos = self.cursor
        if c == ord("\n"):
            pos += COLS - pos % COLS
        elif c == BACKSPACE:
            if pos > 0:
                pos -= 1
        else:
            self.crt[pos] = (c & 0xFF) | _ATTR
            pos += 1
        if pos < 0 or pos > ROWS * COLS:
            raise RuntimeError("pos under/overflow")
        if pos // COLS >= 24:  # scroll up
            self.crt[: 23 * COLS] = self.crt[COLS : 24 * COLS]
            pos -= COLS
            self.crt[pos : 24 * COLS] = [0] * (24 * COLS - pos)
        self.cursor = pos
        self.crt[pos] = ord(" ") | _ATTR

    def putc(self, c: int) -> None:
        """Put one character, or BACKSPACE, on the serial port and the screen."""
        if c == BACKSPACE:
            self.output += b"\b \b"
        else:
            self.output.append(c & 0xFF)
        self._cgaputc(c)

    def interrupt(self, chars: Iterable[int] | str) -> bool:
        """Feed typed characters through line editing.

        Returns True if a process listing (^P) was requested.
        """
        procdump = False
        for c in chars:
            if isinstance(c, str):
                c = ord(c)
            if c < 0:
                break
            if c == _ctrl("P"):
                procdump = True
            elif c == _ctrl("U"):
                while self._e != self._w and self._buf[(self._e - 1) % INPUT_BUF] != ord("\n"):
                    self._e -= 1
                    self.putc(BACKSPACE)
            elif c in (_ctrl("H"), 0x7F):
                if self._e != self._w:
                    self._e -= 1
                    self.putc(BACKSPACE)
            elif c != 0 and self._e - self._r < INPUT_BUF:
                if c == ord("\r"):
                    c = ord("\n")
                self._buf[self._e % INPUT_BUF] = c & 0xFF
                self._e += 1
                self.putc(c)
                if c in (ord("\n"), _ctrl("D")) or self._e == self._r + INPUT_BUF:
                    self._w = self._e
        return procdump

    def read(self, n: int) -> bytes:
        """Read up to ``n`` bytes of completed input, stopping after a newline.

        ^D ends input: b"" is returned for it once nothing precedes it.
        Raises BlockingIOError when no completed input is waiting.
        """
        if n < 0:
            raise ValueError("negative read size")
        out = bytearray()
        while len(out) < n:
            if self._r == self._w:
                if not out:
                    raise BlockingIOError("no console input")
                break
            c = self._buf[self._r % INPUT_BUF]
            self._r += 1
            if c == _ctrl("D"):
                if out:
                    # Keep ^D so the next read returns nothing.
                    self._r -= 1
                break
            out.append(c)
            if c == ord("\n"):
                break
        return bytes(out)

    def write(self, data: bytes) -> int:
        """Write bytes to the console; return how many."""
        for byte in data:
            self.putc(byte)
        return len(data)

    def printf(self, fmt: str, *args: object) -> str:
        """Format as ``cprintf`` does, write the result and return it."""
        text = cprintf(fmt, *args)
        self.write(text.encode("latin-1", "replace"))
        return text