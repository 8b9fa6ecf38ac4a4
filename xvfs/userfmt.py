"""Formatting as done by user programs: %d, %x, %p, %s, %c and %%."""

from __future__ import annotations

_DIGITS = "0123456789ABCDEF"


def _int32(x: int) -> int:
    return ((x & 0xFFFFFFFF) ^ 0x80000000) - 0x80000000


def _printint(value: object, base: int, signed: bool) -> str:
    x = int(value)  # type: ignore[arg-type]
    neg = signed and _int32(x) < 0
    mag = -_int32(x) if neg else x & 0xFFFFFFFF
    digits = []
    while True:
        mag, d = divmod(mag, base)
        digits.append(_DIGITS[d])
        if mag == 0:
            break
    if neg:
        digits.append("-")
    return "".join(reversed(digits))


def _char(value: object) -> str:
    if isinstance(value, str):
        if len(value) != 1:
            raise TypeError("%c needs a single character")
        return value
    return chr(int(value) & 0xFF)  # type: ignore[arg-type]


def sprintf(fmt: str, *args: object) -> str:
    """Format ``args`` into ``fmt``; unknown conversions are copied as they stand."""
    params = iter(args)

    def arg() -> object:
        try:
            return next(params)
        except StopIteration:
            raise TypeError("not enough arguments for format") from None

    out: list[str] = []
    pending = False
    for c in fmt:
        if not pending:
            if c == "%":
                pending = True
            else:
                out.append(c)
            continue
        pending = False
        if c == "d":
            out.append(_printint(arg(), 10, True))
        elif c in ("x", "p"):
            out.append(_printint(arg(), 16, False))
        elif c == "s":
            s = arg()
            if s is None:
                s = "(null)"
            elif isinstance(s, (bytes, bytearray)):
                s = s.decode("latin-1")
            out.append(str(s))
        elif c == "c":
            out.append(_char(arg()))
        elif c == "%":
            out.append("%")
        else:
            out.append("%" + c)
    return "".join(out)