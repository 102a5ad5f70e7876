"""
Commodore BASIC 2.0 decoder (C64 / VIC-20).

A tokenized BASIC program in a PRG is a chain of lines, each starting with a
link to the next line and a 16 bit line number, followed by the tokenized
body and a 0x00 terminator. A zero link ends the program. Whatever follows the
end marker is reported as trailing bytes; in a program with a SYS stub that is
usually the machine code.
"""

from __future__ import annotations

import dataclasses
from typing import Dict, List, Optional, Tuple

from .blob import FileBlob
from .errors import BasicDecodeError
from .petscii import listing_char


# --- BASIC v2 token table ---

TOKEN_SPACE = 0x20
TOKEN_QUOTE = 0x22
TOKEN_FOR = 0x81
TOKEN_NEXT = 0x82
TOKEN_REM = 0x8F
TOKEN_PRINT = 0x99
TOKEN_SYS = 0x9E

TOKEN_TO_KEYWORD: Dict[int, str] = {
    0x80: "END",
    0x81: "FOR",
    0x82: "NEXT",
    0x83: "DATA",
    0x84: "INPUT#",
    0x85: "INPUT",
    0x86: "DIM",
    0x87: "READ",
    0x88: "LET",
    0x89: "GOTO",
    0x8A: "RUN",
    0x8B: "IF",
    0x8C: "RESTORE",
    0x8D: "GOSUB",
    0x8E: "RETURN",
    0x8F: "REM",
    0x90: "STOP",
    0x91: "ON",
    0x92: "WAIT",
    0x93: "LOAD",
    0x94: "SAVE",
    0x95: "VERIFY",
    0x96: "DEF",
    0x97: "POKE",
    0x98: "PRINT#",
    0x99: "PRINT",
    0x9A: "CONT",
    0x9B: "LIST",
    0x9C: "CLR",
    0x9D: "CMD",
    0x9E: "SYS",
    0x9F: "OPEN",
    0xA0: "CLOSE",
    0xA1: "GET",
    0xA2: "NEW",
    0xA3: "TAB(",
    0xA4: "TO",
    0xA5: "FN",
    0xA6: "SPC(",
    0xA7: "THEN",
    0xA8: "NOT",
    0xA9: "STEP",
    0xAA: "+",
    0xAB: "-",
    0xAC: "*",
    0xAD: "/",
    0xAE: "^",
    0xAF: "AND",
    0xB0: "OR",
    0xB1: ">",
    0xB2: "=",
    0xB3: "<",
    0xB4: "SGN",
    0xB5: "INT",
    0xB6: "ABS",
    0xB7: "USR",
    0xB8: "FRE",
    0xB9: "POS",
    0xBA: "SQR",
    0xBB: "RND",
    0xBC: "LOG",
    0xBD: "EXP",
    0xBE: "COS",
    0xBF: "SIN",
    0xC0: "TAN",
    0xC1: "ATN",
    0xC2: "PEEK",
    0xC3: "LEN",
    0xC4: "STR$",
    0xC5: "VAL",
    0xC6: "ASC",
    0xC7: "CHR$",
    0xC8: "LEFT$",
    0xC9: "RIGHT$",
    0xCA: "MID$",
    0xCB: "GO",
    0xFF: "PI",
}

LOAD_ADDRESS_OFFSET = 0
CONTENT_START_OFFSET = 2

# 10 REM with a load address and end marker is the smallest real program
MINIMUM_SIZE = 10


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in ("_", "$")


def detokenize_basic_line(body: bytes) -> str:
    """
    body is the tokenized portion *after* the 2-byte line number and before the 0x00 terminator.
    Returns the listing text, PETSCII characters shown the way petcat shows them.
    """
    out: List[str] = []
    in_quotes = False
    in_rem = False

    for b in body:
        if in_rem or in_quotes:
            out.append(listing_char(b))
            if in_quotes and b == TOKEN_QUOTE:
                in_quotes = False
            continue

        if b == TOKEN_QUOTE:
            in_quotes = True
            out.append('"')
            continue

        if b >= 0x80:
            kw = TOKEN_TO_KEYWORD.get(b, f"{{TOK:{b:02X}}}")
            # keep "PRINTA" from happening in output
            if out:
                prev = out[-1][-1:]
                if prev and _is_word_char(prev) and _is_word_char(kw[0]):
                    out.append(" ")
            out.append(kw)
            if b == TOKEN_REM:
                in_rem = True
            continue

        out.append(listing_char(b))

    return "".join(out).rstrip()


@dataclasses.dataclass(frozen=True)
class LogicalLine:
    """
    One decoded program line, or a note about bytes that are not part of the program.

    Notes have no line number or next address.
    """

    address: int
    byte_size: int
    text: str
    number: Optional[int] = None
    next_address: Optional[int] = None
    body: bytes = b""

    @property
    def is_note(self) -> bool:
        return self.number is None


def count_for_next(line: LogicalLine) -> Tuple[int, int]:
    """Counts FOR and NEXT tokens in a line, ignoring quoted text and REM comments."""
    fors = nexts = 0
    in_quotes = False
    for b in line.body:
        if b == TOKEN_QUOTE:
            in_quotes = not in_quotes
        elif in_quotes:
            continue
        elif b == TOKEN_REM:
            break
        elif b == TOKEN_FOR:
            fors += 1
        elif b == TOKEN_NEXT:
            nexts += 1
    return fors, nexts


def _zeroish(data: bytes, i: int) -> bool:
    return i >= len(data) or data[i] == 0


def _plural(n: int, word: str) -> str:
    return word if n == 1 else word + "s"


def decode_basic(fb: FileBlob) -> List[LogicalLine]:
    """
    Decodes fb as a BASIC PRG, the load address being the first two bytes.

    Lines are read one after another until a line terminator is followed by
    a zero word or the bytes run out. A line cut short by the end of the
    blob is dropped.
    """
    if len(fb) < MINIMUM_SIZE:
        raise BasicDecodeError(f"{fb.name} is too small to be a valid basic program")
    data = fb.data
    base = fb.read16(LOAD_ADDRESS_OFFSET)

    def addr_of(offset: int) -> int:
        return base + offset - CONTENT_START_OFFSET

    lines: List[LogicalLine] = []
    i = CONTENT_START_OFFSET
    while i < len(data):
        start = i
        if i + 4 > len(data):
            raise BasicDecodeError(f"Truncated BASIC line header at ${addr_of(i):04X}")
        link = fb.read16(i)
        if link == 0:
            raise BasicDecodeError(f"Unexpected end of program marker at ${addr_of(i):04X}")
        number = fb.read16(i + 2)

        p = i + 4
        terminated = False
        while p < len(data):
            b = data[p]
            p += 1
            if b == 0x00:
                terminated = True
                break
        i = p
        if not terminated:
            break

        body = data[start + 4:p - 1]
        lines.append(LogicalLine(
            address=addr_of(start),
            byte_size=p - start,
            text=detokenize_basic_line(body),
            number=number,
            next_address=link,
            body=body,
        ))
        # two zero bytes mark the end, running out of bytes is the same thing
        if _zeroish(data, i) and _zeroish(data, i + 1):
            break

    # i points at the end marker
    remaining = len(data) - i - 2
    if remaining > 0:
        trailing = data[len(data) - remaining:]
        if remaining < 16:
            desc = ", ".join(f"${b:02x}" for b in trailing)
        else:
            desc = str(remaining)
        lines.append(LogicalLine(
            address=addr_of(i + 2),
            byte_size=remaining,
            text=f"{remaining} trailing {_plural(remaining, 'byte')}: {desc}",
        ))
    return lines


def read_digits(fb: FileBlob, offset: int) -> str:
    """Collects consecutive PETSCII decimal digits starting at offset."""
    out: List[str] = []
    i = offset
    while i < len(fb) and 0x30 <= fb.read8(i) <= 0x39:
        out.append(chr(fb.read8(i)))
        i += 1
    return "".join(out)
