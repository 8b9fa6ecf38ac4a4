"""A small grep supporting only the ^ . * $ operators."""

from __future__ import annotations

import sys
from typing import BinaryIO

BUFSIZE = 1024


def match(re: str, text: str) -> bool:
    """True if ``re`` matches anywhere in ``text``."""
    if re.startswith("^"):
        return matchhere(re[1:], text)
    # The empty tail must be tried too.
    return any(matchhere(re, text[i:]) for i in range(len(text) + 1))


def matchhere(re: str, text: str) -> bool:
    """True if ``re`` matches at the start of ``text``."""
    if not re:
        return True
    if len(re) > 1 and re[1] == "*":
        return matchstar(re[0], re[2:], text)
    if re == "$":
        return text == ""
    if text and (re[0] == "." or re[0] == text[0]):
        return matchhere(re[1:], text[1:])
    return False


def matchstar(c: str, re: str, text: str) -> bool:
    """True if ``c*`` followed by ``re`` matches at the start of ``text``."""
    i = 0
    while True:
        if matchhere(re, text[i:]):
            return True
        if i < len(text) and (text[i] == c or c == "."):
            i += 1
        else:
            return False


def grep(pattern: str, stream: BinaryIO, out: BinaryIO) -> None:
    """Copy to ``out`` each newline-terminated line of ``stream`` that matches.

    A final line without a newline is not examined, and a run of more than
    BUFSIZE - 1 bytes without a newline is discarded.
    """
    buf = b""
    while chunk := stream.read(BUFSIZE - 1 - len(buf)):
        buf += chunk
        *lines, rest = buf.split(b"\n")
        for line in lines:
            if match(pattern, line.decode("latin-1")):
                out.write(line + b"\n")
        buf = rest if lines else b""


def main(argv: list[str] | None = None) -> int:
    """Command line: grep pattern [file ...]"""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("usage: grep pattern [file ...]", file=sys.stderr)
        return 1
    pattern, paths = args[0], args[1:]
    out = sys.stdout.buffer
    try:
        if not paths:
            grep(pattern, sys.stdin.buffer, out)
            return 0
        for path in paths:
            try:
                fh = open(path, "rb")
            except OSError:
                out.write(f"grep: cannot open {path}\n".encode())
                return 1
            with fh:
                grep(pattern, fh, out)
    finally:
        out.flush()
    return 0