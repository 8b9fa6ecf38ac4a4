"""PC keyboard: turns scan codes into characters, tracking modifier keys."""

from __future__ import annotations

from collections.abc import Iterable

NO = 0

SHIFT = 1 << 0
CTL = 1 << 1
ALT = 1 << 2
CAPSLOCK = 1 << 3
NUMLOCK = 1 << 4
SCROLLLOCK = 1 << 5
E0ESC = 1 << 6

KEY_HOME = 0xE0
KEY_END = 0xE1
KEY_UP = 0xE2
KEY_DN = 0xE3
KEY_LF = 0xE4
KEY_RT = 0xE5
KEY_PGUP = 0xE6
KEY_PGDN = 0xE7
KEY_INS = 0xE8
KEY_DEL = 0xE9


def _ctrl(ch: str) -> int:
    return (ord(ch) - ord("@")) & 0xFF


_SHIFTCODE = {0x1D: CTL, 0x2A: SHIFT, 0x36: SHIFT, 0x38: ALT, 0x9D: CTL, 0xB8: ALT}
_TOGGLECODE = {0x3A: CAPSLOCK, 0x45: NUMLOCK, 0x46: SCROLLLOCK}

_SPECIAL = {
    0xC8: KEY_UP,
    0xD0: KEY_DN,
    0xC9: KEY_PGUP,
    0xD1: KEY_PGDN,
    0xCB: KEY_LF,
    0xCD: KEY_RT,
    0x97: KEY_HOME,
    0xCF: KEY_END,
    0xD2: KEY_INS,
    0xD3: KEY_DEL,
}

_KEYPAD_ROWS = (
    "\0 \0\0\0\0\0\0",  # 0x38
    "\0\0\0\0\0\0\0" "7",  # 0x40
    "89-456+1",
    "230.\0\0\0\0",  # 0x50
)

_NORMAL_ROWS = (
    "\0\x1b123456",  # 0x00
    "7890-=\b\t",
    "qwertyui",  # 0x10
    "op[]\n\0as",
    "dfghjkl;",  # 0x20
    "'`\0\\zxcv",
    "bnm,./\0*",  # 0x30
) + _KEYPAD_ROWS

_SHIFT_ROWS = (
    "\0\x1b!@#$%^",  # 0x00
    "&*()_+\b\t",
    "QWERTYUI",  # 0x10
    "OP{}\n\0AS",
    "DFGHJKL:",  # 0x20
    '"~\0|ZXCV',
    "BNM<>?\0*",  # 0x30
) + _KEYPAD_ROWS


def _table(rows: Iterable[str], extra: dict[int, int]) -> tuple[int, ...]:
    table = [NO] * 256
    for code, ch in enumerate("".join(rows)):
        table[code] = ord(ch)
    for code, value in {**_SPECIAL, **extra}.items():
        table[code] = value
    return tuple(table)


def _ctl_table() -> tuple[int, ...]:
    table = [NO] * 256
    for start, letters in ((0x10, "QWERTYUIOP"), (0x1E, "ASDFGHJKL"), (0x2C, "ZXCVBNM")):
        for offset, letter in enumerate(letters):
            table[start + offset] = _ctrl(letter)
    table[0x1C] = ord("\r")
    table[0x2B] = _ctrl("\\")
    table[0x35] = _ctrl("/")
    for code, value in {**_SPECIAL, 0x9C: ord("\r"), 0xB5: _ctrl("/")}.items():
        table[code] = value
    return tuple(table)


_NORMALMAP = _table(_NORMAL_ROWS, {0x9C: ord("\n"), 0xB5: ord("/")})
_SHIFTMAP = _table(_SHIFT_ROWS, {0x9C: ord("\n"), 0xB5: ord("/")})
_CTLMAP = _ctl_table()
_CHARCODE = (_NORMALMAP, _SHIFTMAP, _CTLMAP, _CTLMAP)


class Keyboard:
    """Keyboard state: which modifier and lock keys are in effect."""

    def __init__(self) -> None:
        self.shift = 0

    def getc(self, data: int) -> int:
        """Process one scan code; return the character it yields, or 0 for none."""
        if not 0 <= data <= 0xFF:
            raise ValueError(f"scan code out of range: {data}")
        if data == 0xE0:
            self.shift |= E0ESC
            return 0
        if data & 0x80:
            # Key released.
            if not self.shift & E0ESC:
                data &= 0x7F
            self.shift &= ~(_SHIFTCODE.get(data, 0) | E0ESC)
            return 0
        if self.shift & E0ESC:
            # The previous code was an E0 escape.
            data |= 0x80
            self.shift &= ~E0ESC

        self.shift |= _SHIFTCODE.get(data, 0)
        self.shift ^= _TOGGLECODE.get(data, 0)
        c = _CHARCODE[self.shift & (CTL | SHIFT)][data]
        if self.shift & CAPSLOCK:
            if ord("a") <= c <= ord("z"):
                c -= ord("a") - ord("A")
            elif ord("A") <= c <= ord("Z"):
                c += ord("a") - ord("A")
        return c

    def decode(self, scancodes: Iterable[int]) -> bytes:
        """Process a run of scan codes and return the characters they yield."""
        return bytes(c for c in map(self.getc, scancodes) if c)